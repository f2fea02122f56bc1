# B站鉴权数据模型

from .common import BiliResponse, Credential
from .auth import QRCodeData, QRCodePollData, LoginState, LoginPollResult
from .auth import CookieInfoData, CookieRefreshData
from .auth import WbiImg, NavInfo

__all__ = [
    # common
    "BiliResponse", "Credential",
    # auth
    "QRCodeData", "QRCodePollData", "LoginState", "LoginPollResult",
    "CookieInfoData", "CookieRefreshData",
    # wbi
    "WbiImg", "NavInfo",
]
