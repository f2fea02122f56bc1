"""B站登录认证相关模型"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import Credential


# === 二维码登录相关模型 ===

class QRCodeData(BaseModel):
    """二维码数据，qrcode_key 是本次登录所有轮询的关联 key"""
    url: str
    qrcode_key: str

    @property
    def auth_url(self) -> str:
        return self.url

    @property
    def poll_key(self) -> str:
        return self.qrcode_key


class QRCodePollData(BaseModel):
    """二维码轮询数据，只有登录成功时 refresh_token 才非空"""
    url: str = ""
    refresh_token: str = ""
    timestamp: int = 0
    code: int
    message: str = ""


class LoginState(int, Enum):
    """扫码登录状态，取值即服务端状态码"""
    SUCCESS = 0
    EXPIRED = 86038
    WAIT_CONFIRM = 86090
    WAIT_SCAN = 86101

    @property
    def is_terminal(self) -> bool:
        return self in (LoginState.SUCCESS, LoginState.EXPIRED)


class LoginPollResult(BaseModel):
    """单次轮询结果，credential 仅在 SUCCESS 时存在"""
    state: LoginState
    credential: Optional[Credential] = None


# === Cookie 刷新相关模型 ===

class CookieInfoData(BaseModel):
    """Cookie 信息数据"""
    refresh: bool
    timestamp: int

    @property
    def refresh_required(self) -> bool:
        return self.refresh


class CookieRefreshData(BaseModel):
    """Cookie 刷新数据"""
    status: int = 0
    message: str = ""
    refresh_token: str


# === WBI 相关模型 ===

class WbiImg(BaseModel):
    img_url: str
    sub_url: str


class NavInfo(BaseModel):
    """导航栏用户信息，只保留登录状态与 WBI 需要的字段"""
    model_config = ConfigDict(populate_by_name=True)

    is_login: bool = Field(default=False, alias="isLogin")
    mid: Optional[int] = None
    uname: Optional[str] = None
    wbi_img: WbiImg
