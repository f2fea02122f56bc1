# B站鉴权服务：扫码登录、Cookie 刷新、WBI 签名

from .client import BiliClient
from .cookies import CookieStore
from .endpoints import BiliEndpoints
from .errors import (
    BiliError, NetworkError, ParseError, InternalError, BilibiliApiError,
    WbiKeyExpiredError, QrCodeGenerationError, RefreshConfirmError, try_parse_error_code,
)
from .models import Credential, LoginState, LoginPollResult, QRCodeData
from .qrcode_login import QRCodeLogin, render_qrcode
from .refresher import CookieRefresher, gen_correspond_path
from .service import BiliAuthService
from .wbi import WbiKey, WbiKeyDeriver, sign_params

__all__ = [
    "BiliClient", "CookieStore", "BiliEndpoints", "BiliAuthService",
    # errors
    "BiliError", "NetworkError", "ParseError", "InternalError", "BilibiliApiError",
    "WbiKeyExpiredError", "QrCodeGenerationError", "RefreshConfirmError", "try_parse_error_code",
    # models
    "Credential", "LoginState", "LoginPollResult", "QRCodeData",
    # protocol
    "QRCodeLogin", "render_qrcode", "CookieRefresher", "gen_correspond_path",
    "WbiKey", "WbiKeyDeriver", "sign_params",
]
