import asyncio
import os
from typing import Any, Mapping, Optional, Type, TypeVar

from infra.config.settings import Settings, settings as default_settings
from infra.logger import logger
from .client import BiliClient
from .errors import BiliError, RefreshConfirmError, WbiKeyExpiredError
from .models import BiliResponse, Credential, LoginState, NavInfo
from .qrcode_login import QRCodeLogin
from .refresher import CookieRefresher
from .utils.qrcode_generator import QRCodeGenerator
from .wbi import WbiKey, WbiKeyDeriver

T = TypeVar("T")


class BiliAuthService:
    """
    组合扫码登录、Cookie 刷新与 WBI 签名的会话服务

    持有一个 BiliClient（即一个 cookie jar），凭据文件路径与轮询参数来自配置。
    协议模块只抛异常，这一层负责记录日志并以 None / False 告知调用方。
    """

    def __init__(self, config: Optional[Settings] = None, client: Optional[BiliClient] = None):
        self.settings = config or default_settings
        self.client = client or BiliClient(config=self.settings)
        self.credential_file = self.settings.BILI_CREDENTIAL_FILE
        self.qr_generator = QRCodeGenerator()
        self.qr_login = QRCodeLogin(self.client)
        self.cookie_refresher = CookieRefresher(self.client)
        self.wbi_deriver = WbiKeyDeriver(self.client, key_length=self.settings.WBI_MIXIN_KEY_LENGTH)
        self._wbi_key: Optional[WbiKey] = None
        self._wbi_lock = asyncio.Lock()

    # -----------------这是一条凭据持久化部分的分割线----------------- #
    def save_credential(self, credential: Credential) -> bool:
        """
        保存凭据到文件
        """
        try:
            directory = os.path.dirname(self.credential_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = f"{self.credential_file}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(credential.to_json())
            os.replace(tmp_path, self.credential_file)
            return True
        except OSError as e:
            logger.warn("BiliAuthService", f"保存凭据失败: {e}")
            return False

    def load_credential(self) -> Optional[Credential]:
        """
        从文件加载凭据
        """
        if not os.path.exists(self.credential_file):
            return None
        try:
            with open(self.credential_file, "r", encoding="utf-8") as f:
                return Credential.from_json(f.read())
        except (OSError, BiliError) as e:
            logger.warn("BiliAuthService", f"加载凭据失败: {e}")
            return None

    # -----------------凭据持久化部分到此结束----------------- #

    # -----------------这是一条登录/鉴权部分的分割线----------------- #
    def display_qrcode(self, qr_url: str, show_terminal: bool = True, save_image: str = ""):
        """
        显示二维码
        """
        if show_terminal:
            terminal_qr = self.qr_generator.generate_terminal_qr(qr_url)
            if terminal_qr:
                logger.info("BiliAuthService", "请在B站APP中扫描以下二维码：")
                print("\n" + terminal_qr + "\n")
            else:
                logger.info("BiliAuthService", f"请访问以下链接进行登录：{qr_url}")

        if save_image:
            if self.qr_generator.save_qr_image(qr_url, save_image):
                logger.info("BiliAuthService", f"二维码图片已保存为 {save_image}")
            else:
                logger.warn("BiliAuthService", "二维码图片保存失败")

    async def wait_for_login(self, qrcode_key: str) -> Optional[Credential]:
        """
        按固定间隔轮询直到登录成功、二维码失效或超时
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.BILI_QR_LOGIN_TIMEOUT

        while True:
            try:
                result = await self.qr_login.poll(qrcode_key)
            except BiliError as e:
                logger.warn("BiliAuthService", f"轮询扫码状态失败: {e}")
                return None

            if result.state is LoginState.SUCCESS:
                return result.credential
            if result.state is LoginState.EXPIRED:
                return None

            if loop.time() + self.settings.BILI_QR_POLL_INTERVAL > deadline:
                logger.warn("BiliAuthService", "二维码登录超时")
                return None
            await asyncio.sleep(self.settings.BILI_QR_POLL_INTERVAL)

    async def login_with_qrcode(self, show_terminal_qr: bool = True, save_qr_image: str = "") \
            -> Optional[Credential]:
        """
        扫码登录流程
        """
        try:
            qr = await self.qr_login.request()
        except BiliError as e:
            logger.warn("BiliAuthService", f"生成二维码失败: {e}")
            return None

        self.display_qrcode(qr.auth_url, show_terminal_qr, save_qr_image)

        credential = await self.wait_for_login(qr.poll_key)
        if not credential:
            return None

        if self.save_credential(credential):
            logger.info("BiliAuthService", "Cookie和refresh_token保存成功！")
        else:
            logger.warn("BiliAuthService", "Cookie和refresh_token保存失败！")
        return credential

    async def get_valid_credential(self) -> Optional[Credential]:
        """
        加载凭据并在需要时刷新，刷新后立即保存
        """
        credential = self.load_credential()
        if not credential:
            return None

        try:
            await self.client.cookie_store.load(credential.cookies)
            refreshed = await self.cookie_refresher.refresh_if_needed(credential)
        except RefreshConfirmError as e:
            # 新 cookie 与新 refresh_token 已生效
            credential = Credential(cookies=e.cookies, refresh_token=e.refresh_token)
            self.save_credential(credential)
            logger.warn("BiliAuthService", "凭据已更新，但旧 refresh_token 未能确认失效")
            return credential
        except BiliError as e:
            logger.warn("BiliAuthService", f"Cookie 刷新失败: {e}")
            return None

        if refreshed and self.save_credential(credential):
            logger.info("BiliAuthService", "Cookie刷新后已保存")
        return credential

    async def ensure_valid_credential(self) -> Optional[Credential]:
        """
        确保凭据有效，如果无效则重新登录
        """
        credential = await self.get_valid_credential()
        if credential:
            return credential

        logger.info("BiliAuthService", "凭据无效，需要重新登录")
        await self.client.cookie_store.clear()
        return await self.login_with_qrcode()

    async def get_nav_info(self) -> Optional[NavInfo]:
        try:
            return await self.client.get_nav_info()
        except BiliError as e:
            logger.warn("BiliAuthService", f"获取导航栏信息失败: {e}")
            return None

    # -----------------登录/鉴权部分到此结束----------------- #

    # -----------------这是一条 WBI 签名部分的分割线----------------- #
    async def get_wbi_key(self, force: bool = False) -> WbiKey:
        """
        获取当日 WBI 密钥，过期或 force 时重新获取并替换缓存
        """
        async with self._wbi_lock:
            if force or self._wbi_key is None or self._wbi_key.is_expired():
                self._wbi_key = await self.wbi_deriver.derive()
            return self._wbi_key

    async def signed_get(self, url: str, params: Mapping[str, Any], model: Type[T], **kwargs) \
            -> BiliResponse[T]:
        """
        发送 WBI 签名请求；密钥在签名时过期则重新获取一次后重试
        """
        key = await self.get_wbi_key()
        try:
            return await self.client.get_with_wbi(url, params, key, model, **kwargs)
        except WbiKeyExpiredError:
            logger.info("BiliAuthService", "WBI 密钥已过期，重新获取后重试")
            key = await self.get_wbi_key(force=True)
            return await self.client.get_with_wbi(url, params, key, model, **kwargs)

    # -----------------WBI 签名部分到此结束----------------- #

    async def close(self):
        await self.client.close()
