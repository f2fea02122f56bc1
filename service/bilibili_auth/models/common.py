"""B站 API 通用模型"""

from typing import Optional, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import ParseError

T = TypeVar('T')


class BiliResponse(BaseModel, Generic[T]):
    """B站 API 通用响应"""
    code: int
    message: str = ""
    ttl: int = 1
    data: Optional[T] = None

    @property
    def is_success(self) -> bool:
        """判断请求是否成功"""
        return self.code == 0


class Credential(BaseModel):
    """
    持久化的登录凭据

    cookies 为序列化后的 cookie jar（见 CookieStore.dump），
    refresh_token 只能使用一次，刷新流程中由 CookieRefresher 原地替换。
    """
    cookies: str
    refresh_token: str

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, text: str) -> "Credential":
        try:
            return cls.model_validate_json(text)
        except ValidationError as e:
            raise ParseError(f"invalid credential: {e}") from e
