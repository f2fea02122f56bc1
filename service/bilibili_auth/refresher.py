"""
Cookie 刷新

相关 API 参考
https://socialsisteryi.github.io/bilibili-API-collect/docs/login/cookie_refresh.html

流程（线性，任何一步失败整体中止，不跨步重试）：
1. 检查是否需要刷新，不需要则直接返回
2. 用返回的 timestamp 生成 correspond path（RSA-OAEP / SHA-256 加密后转小写十六进制）
3. 请求 correspond 页面，取出 id 为 1-name 的元素文本作为 refresh_csrf
4. 从 cookie jar 读取 bili_jct
5. 用旧 refresh_token 换取新 refresh_token，新 cookie 由响应写入 jar
6. 确认刷新，使旧 refresh_token 失效
7. 导出 jar，连同新 refresh_token 写回 Credential

correspond path 与第 1 步的时间戳绑定，延迟后重放并不安全，失败后必须从第 1 步重新开始。
"""

import asyncio
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

from infra.logger import logger
from .errors import BiliError, InternalError, RefreshConfirmError
from .models import CookieInfoData, CookieRefreshData, Credential

if TYPE_CHECKING:
    from .client import BiliClient

CORRESPOND_PUBLIC_KEY = """-----BEGIN PUBLIC KEY-----
MIGfMA0GCSqGSIb3DQEBAQUAA4GNADCBiQKBgQDLgd2OAkcGVtoE3ThUREbio0Eg
Uc/prcajMKXvkCKFCWhJYJcLkcM2DKKcSeFpD/j6Boy538YXnR6VhcuUJOhH2x71
nzPjfdTcqMz7djHum0qSZA0AyCBDABUqCrfNgCiJ00Ra7GmRj+YCK1NJEuewlb40
JNrRuoEUXpabUzGB8QIDAQAB
-----END PUBLIC KEY-----
"""

REFRESH_CSRF_ELEMENT_ID = "1-name"
REFRESH_SOURCE = "main_web"


def gen_correspond_path(timestamp: int, public_key_pem: str = CORRESPOND_PUBLIC_KEY) -> str:
    """对 refresh_{timestamp} 做 RSA-OAEP(SHA-256) 加密，返回小写十六进制"""
    try:
        public_key = serialization.load_pem_public_key(public_key_pem.encode())
        encrypted = public_key.encrypt(
            f"refresh_{timestamp}".encode(),
            padding.OAEP(
                mgf=padding.MGF1(algorithm=hashes.SHA256()),
                algorithm=hashes.SHA256(),
                label=None,
            ),
        )
    except (ValueError, TypeError) as e:
        raise InternalError(f"cannot generate correspond path: {e}") from e
    return encrypted.hex()


def extract_refresh_csrf(html: str) -> str:
    """从 correspond 页面中取出 refresh_csrf，页面结构变化时抛出 InternalError"""
    soup = BeautifulSoup(html, "html.parser")
    node = soup.find(id=REFRESH_CSRF_ELEMENT_ID)
    if node is None:
        raise InternalError(f"Cannot get {REFRESH_CSRF_ELEMENT_ID}.")
    text = node.get_text(strip=True)
    if not text:
        raise InternalError(f"Empty {REFRESH_CSRF_ELEMENT_ID}.")
    return text


class CookieRefresher:
    """
    刷新流程协调器

    同一个 Credential 的刷新不可重入：两次并发刷新可能都完成了第 5 步才轮到第 6 步，
    互相使对方已经换过的 token 失效。因此整个流程持有 _lock。
    一个 CookieRefresher 对应一个会话（BiliClient）及其凭据。
    """

    def __init__(self, client: "BiliClient", public_key_pem: str = CORRESPOND_PUBLIC_KEY):
        self.client = client
        self.public_key_pem = public_key_pem
        self._lock = asyncio.Lock()

    async def check_refresh(self) -> CookieInfoData:
        resp = await self.client.fetch("GET", self.client.endpoints.cookie_info, CookieInfoData)
        return resp.data

    async def get_refresh_csrf(self, correspond_path: str) -> str:
        url = f"{self.client.endpoints.correspond_template}{correspond_path}"
        html = await self.client.fetch_text(url)
        return extract_refresh_csrf(html)

    async def exchange_token(self, csrf: str, refresh_csrf: str, old_token: str) -> str:
        resp = await self.client.fetch(
            "POST",
            self.client.endpoints.cookie_refresh,
            CookieRefreshData,
            data={
                "csrf": csrf,
                "refresh_csrf": refresh_csrf,
                "source": REFRESH_SOURCE,
                "refresh_token": old_token,
            },
        )
        return resp.data.refresh_token

    async def confirm_refresh(self, refresh_csrf: str, old_token: str):
        await self.client.fetch(
            "POST",
            self.client.endpoints.confirm_refresh,
            dict,
            data={"csrf": refresh_csrf, "refresh_token": old_token},
            require_data=False,
        )

    async def refresh_if_needed(self, credential: Credential) -> bool:
        """
        检查并在需要时刷新凭据

        Args:
            credential: 当前凭据，刷新成功时被原地替换 cookies 与 refresh_token
        Returns:
            True 表示发生了刷新，调用方应重新保存凭据
        Raises:
            BiliError: 任一步失败；第 6 步失败时为 RefreshConfirmError
        """
        async with self._lock:
            info = await self.check_refresh()
            if not info.refresh_required:
                logger.debug("CookieRefresher", "Cookie 无需刷新")
                return False

            logger.info("CookieRefresher", "Cookie 需要刷新，开始刷新流程...")
            correspond_path = gen_correspond_path(info.timestamp, self.public_key_pem)
            refresh_csrf = await self.get_refresh_csrf(correspond_path)
            csrf = self.client.cookie_store.csrf()

            old_token = credential.refresh_token
            new_token = await self.exchange_token(csrf, refresh_csrf, old_token)

            try:
                await self.confirm_refresh(refresh_csrf, old_token)
            except BiliError as e:
                logger.error("CookieRefresher", f"确认刷新失败，旧 refresh_token 可能仍然有效: {e}")
                raise RefreshConfirmError(e, new_token, self.client.dump_cookies()) from e

            credential.cookies = await self.client.cookie_store.snapshot()
            credential.refresh_token = new_token
            logger.info("CookieRefresher", "Cookie 刷新完成")
            return True
