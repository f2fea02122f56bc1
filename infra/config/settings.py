from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # 日志配置
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARN", "ERROR"] = "INFO"
    LOG_FILE: str = ""  # 日志文件路径，为空则不输出到文件

    # 凭据持久化文件（cookies + refresh_token）
    BILI_CREDENTIAL_FILE: str = "cache/bilibili_credential.json"

    # HTTP 传输配置，超时完全交给 httpx
    BILI_HTTP_TIMEOUT: float = 10
    BILI_HTTP_CONNECT_TIMEOUT: float = 5
    BILI_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/124.0.0.0 Safari/537.36"
    )

    # 接口域名，测试时可替换
    BILI_PASSPORT_BASE_URL: str = "https://passport.bilibili.com"
    BILI_API_BASE_URL: str = "https://api.bilibili.com"
    BILI_WWW_BASE_URL: str = "https://www.bilibili.com"

    # 扫码登录：轮询间隔与整体超时（秒），二维码本身 180 秒后失效
    BILI_QR_POLL_INTERVAL: float = 10
    BILI_QR_LOGIN_TIMEOUT: float = 180

    # WBI mixin key 长度，None 表示使用完整 64 位重排结果
    WBI_MIXIN_KEY_LENGTH: Optional[int] = Field(default=None, ge=1, le=64)


settings = Settings()
