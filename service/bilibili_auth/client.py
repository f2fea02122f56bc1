import httpx
from typing import Any, Iterable, Mapping, Optional, Type, TypeVar

from pydantic import ValidationError

from infra.config.settings import Settings, settings as default_settings
from infra.logger import logger
from .cookies import CookieStore
from .endpoints import BiliEndpoints
from .errors import BilibiliApiError, NetworkError, ParseError
from .models import BiliResponse, Credential, NavInfo
from .wbi import WbiKey, sign_params

"""
相关 API 参考
https://socialsisteryi.github.io/bilibili-API-collect/docs/misc/sign/wbi.html
"""

T = TypeVar("T")


class BiliClient:
    """
    持有 httpx.AsyncClient 与会话 cookie jar 的传输封装

    所有协议模块（扫码登录、Cookie 刷新、WBI 签名）共享同一个实例，
    因而共享同一个 CookieStore。
    """

    def __init__(self, endpoints: Optional[BiliEndpoints] = None, config: Optional[Settings] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        config = config or default_settings
        self.settings = config
        self.endpoints = endpoints or BiliEndpoints.from_settings(config)
        self.headers = {
            "User-Agent": config.BILI_USER_AGENT,
            "Accept": "application/json, text/plain, */*",
            "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
            "Connection": "keep-alive",
            "Referer": "https://www.bilibili.com/",
        }
        self.client = httpx.AsyncClient(
            headers=self.headers,
            timeout=httpx.Timeout(config.BILI_HTTP_TIMEOUT, connect=config.BILI_HTTP_CONNECT_TIMEOUT),
            follow_redirects=True,
            transport=transport,
        )
        self.cookie_store = CookieStore(self.client.cookies)

    @classmethod
    async def from_credential(cls, credential: Credential, refresh: bool = False, **kwargs) -> "BiliClient":
        """
        用已保存的凭据构造客户端

        Args:
            credential: 持久化凭据，refresh=True 时可能被原地替换，调用后应重新保存
            refresh: 是否立即检查并刷新 Cookie

        每次调用都会新建 CookieRefresher，其锁只对这一个客户端生效。
        同一份凭据可能被并发刷新时，调用方应共享同一个 CookieRefresher，
        而不是对同一凭据多次使用 refresh=True。
        """
        from .refresher import CookieRefresher

        client = cls(**kwargs)
        try:
            await client.cookie_store.load(credential.cookies)
            if refresh:
                await CookieRefresher(client).refresh_if_needed(credential)
        except BaseException:
            await client.close()
            raise
        return client

    # -----------------这是一条通用请求部分的分割线----------------- #
    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warn("BiliClient", f"请求超时: {method} {url}")
            raise NetworkError(f"timeout: {e}") from e
        except httpx.HTTPError as e:
            logger.warn("BiliClient", f"请求失败: {method} {url}: {e}")
            raise NetworkError(str(e)) from e

        if response.status_code != 200:
            logger.warn("BiliClient", f"请求失败: {method} {url}: HTTP {response.status_code}")
            raise NetworkError(f"HTTP {response.status_code}")
        return response

    async def fetch(self, method: str, url: str, model: Type[T], *,
                    params: Optional[Mapping[str, Any]] = None,
                    data: Optional[Mapping[str, Any]] = None,
                    require_data: bool = True,
                    accept_codes: Iterable[int] = ()) -> BiliResponse[T]:
        """
        发送请求并按通用响应格式解析

        Args:
            model: data 字段的模型
            require_data: code 为 0 时 data 是否必须存在
            accept_codes: 额外视为成功的非 0 code（例如未登录时的导航栏接口）
        Returns:
            BiliResponse[model]
        """
        response = await self._send(method, url, params=params, data=data)

        try:
            parsed = BiliResponse[model].model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warn("BiliClient", f"解析响应失败: {url}: {e}")
            raise ParseError(str(e)) from e

        if parsed.code != 0 and parsed.code not in accept_codes:
            logger.warn("BiliClient", f"接口返回错误: {url}: code={parsed.code} message={parsed.message}")
            raise BilibiliApiError(parsed.code, parsed.message)

        if require_data and parsed.data is None:
            raise ParseError("Invalid json field, data cannot be empty")

        return parsed

    async def fetch_text(self, url: str) -> str:
        response = await self._send("GET", url)
        return response.text

    async def get_with_wbi(self, url: str, params: Mapping[str, Any], key: WbiKey, model: Type[T],
                           **kwargs) -> BiliResponse[T]:
        """发送带 WBI 签名的 GET，密钥过期时抛出 WbiKeyExpiredError"""
        signed = sign_params(key, params)
        return await self.fetch("GET", url, model, params=signed, **kwargs)

    # -----------------通用请求部分到此结束----------------- #

    async def get_nav_info(self) -> NavInfo:
        """
        获取导航栏信息
        未登录时接口返回 -101，但 data 中仍带有 wbi_img
        """
        resp = await self.fetch("GET", self.endpoints.nav, NavInfo, accept_codes=(-101,))
        return resp.data

    def dump_cookies(self) -> str:
        return self.cookie_store.dump()

    async def close(self):
        """关闭客户端"""
        await self.client.aclose()

    async def __aenter__(self) -> "BiliClient":
        return self

    async def __aexit__(self, *exc):
        await self.close()
