"""
会话共享的 cookie jar

读（拼接请求 cookie、导出快照）可以并发；写（载入、清空、手动设置、刷新后的持久化快照）
通过 write_lock 互斥。响应里的 Set-Cookie 由 httpx 在 send() 内部同步写入，
期间没有挂起点，不会与其他协程的写操作交错。
"""

import asyncio
import json
from http.cookiejar import Cookie
from typing import Optional

import httpx

from .errors import InternalError, ParseError

BILI_DOMAIN = "bilibili.com"
CSRF_COOKIE = "bili_jct"


def _make_cookie(name: str, value: str, domain: str, path: str = "/",
                 expires: Optional[int] = None, secure: bool = False) -> Cookie:
    return Cookie(
        version=0,
        name=name,
        value=value,
        port=None,
        port_specified=False,
        domain=domain,
        domain_specified=bool(domain),
        domain_initial_dot=domain.startswith("."),
        path=path,
        path_specified=True,
        secure=secure,
        expires=expires,
        discard=expires is None,
        comment=None,
        comment_url=None,
        rest={},
    )


class CookieStore:
    def __init__(self, cookies: httpx.Cookies):
        # 必须是 httpx.AsyncClient.cookies 本身，而不是副本
        self._cookies = cookies
        self.write_lock = asyncio.Lock()

    @property
    def jar(self):
        return self._cookies.jar

    def get(self, name: str, domain: str = BILI_DOMAIN) -> Optional[str]:
        """按名称读取 cookie，domain 本身及其子域都算匹配"""
        for cookie in self.jar:
            if cookie.name != name:
                continue
            d = cookie.domain.lstrip(".")
            if d == domain or d.endswith("." + domain):
                return cookie.value
        return None

    def csrf(self) -> str:
        """读取本地 CSRF（bili_jct），缺失说明需要重新登录"""
        value = self.get(CSRF_COOKIE)
        if not value:
            raise InternalError(f"No {CSRF_COOKIE} in original cookies, please re-login")
        return value

    def dump(self) -> str:
        """导出 jar 的 JSON 快照"""
        items = [
            {
                "name": c.name,
                "value": c.value,
                "domain": c.domain,
                "path": c.path,
                "expires": c.expires,
                "secure": c.secure,
            }
            for c in self.jar
        ]
        try:
            return json.dumps(items, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise InternalError(f"cannot serialize cookies: {e}") from e

    async def snapshot(self) -> str:
        """与其他写操作互斥地导出快照，刷新流程持久化时使用"""
        async with self.write_lock:
            return self.dump()

    async def load(self, text: str):
        """用序列化内容替换当前 jar，空串得到空 jar"""
        items = []
        if text:
            try:
                items = json.loads(text)
            except ValueError as e:
                raise ParseError(f"invalid cookie jar: {e}") from e
            if not isinstance(items, list):
                raise ParseError("invalid cookie jar: expected a list")

        parsed = []
        for item in items:
            try:
                parsed.append(_make_cookie(
                    name=item["name"],
                    value=item["value"],
                    domain=item.get("domain", ""),
                    path=item.get("path", "/"),
                    expires=item.get("expires"),
                    secure=item.get("secure", False),
                ))
            except (KeyError, TypeError, AttributeError) as e:
                raise ParseError(f"invalid cookie entry {item!r}: {e}") from e

        async with self.write_lock:
            self.jar.clear()
            for cookie in parsed:
                self.jar.set_cookie(cookie)

    async def set(self, name: str, value: str, domain: str = f".{BILI_DOMAIN}", path: str = "/"):
        async with self.write_lock:
            self.jar.set_cookie(_make_cookie(name, value, domain, path))

    async def clear(self):
        async with self.write_lock:
            self.jar.clear()
