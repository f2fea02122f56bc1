"""
B站接口地址表

启动时由配置构造一次，再显式传给 BiliClient，避免进程级全局表。
相关 API 参考
https://socialsisteryi.github.io/bilibili-API-collect/docs/login/cookie_refresh.html
"""

from pydantic import BaseModel, ConfigDict, field_validator

from infra.config.settings import Settings


class BiliEndpoints(BaseModel):
    model_config = ConfigDict(frozen=True)

    # 扫码登录
    qrcode_generate: str
    qrcode_poll: str
    # Cookie 刷新
    cookie_info: str
    correspond_template: str  # 末尾直接拼接 correspond path
    cookie_refresh: str
    confirm_refresh: str
    # 导航栏，WBI 密钥来源
    nav: str

    @field_validator("*")
    @classmethod
    def _check_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"接口地址必须是 http(s) URL: {v!r}")
        return v

    @classmethod
    def from_settings(cls, settings: Settings) -> "BiliEndpoints":
        passport = settings.BILI_PASSPORT_BASE_URL.rstrip("/")
        api = settings.BILI_API_BASE_URL.rstrip("/")
        www = settings.BILI_WWW_BASE_URL.rstrip("/")
        return cls(
            qrcode_generate=f"{passport}/x/passport-login/web/qrcode/generate",
            qrcode_poll=f"{passport}/x/passport-login/web/qrcode/poll",
            cookie_info=f"{passport}/x/passport-login/web/cookie/info",
            correspond_template=f"{www}/correspond/1/",
            cookie_refresh=f"{passport}/x/passport-login/web/cookie/refresh",
            confirm_refresh=f"{passport}/x/passport-login/web/confirm/refresh",
            nav=f"{api}/x/web-interface/nav",
        )
