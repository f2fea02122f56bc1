"""
WBI 签名

自 2023 年 3 月起，B站部分接口需要 WBI 签名：

1. 从导航栏接口取得 img_url 与 sub_url
2. 取两个 URL 最后一段文件名（第一个 "." 之前）作为 img_key 与 sub_key
3. 拼接 img_key + sub_key，按固定重排表打乱，得到 mixin_key
4. 查询参数加入 wts（当前时间戳）后按 key 排序
5. 排序后的参数做 URL 编码，末尾直接拼上 mixin_key 作为盐
6. 计算 MD5，小写十六进制即 w_rid，追加到原始参数之后

1-3 步由 WbiKeyDeriver.derive 完成，4-6 步由 sign_params 完成。
mixin_key 在东八区同一天内可以缓存复用，过期后只能重新获取，不会原地刷新。
"""

import hashlib
import time
from datetime import datetime, timedelta, timezone, time as dt_time
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import quote_plus, urlencode

from pydantic import BaseModel, ConfigDict

from infra.logger import logger
from .errors import InternalError, ParseError, WbiKeyExpiredError

if TYPE_CHECKING:
    from .client import BiliClient

MIXIN_KEY_ENC_TAB = (
    46, 47, 18, 2, 53, 8, 23, 32, 15, 50, 10, 31, 58, 3, 45, 35, 27, 43, 5, 49, 33, 9, 42,
    19, 29, 28, 14, 39, 12, 38, 41, 13, 37, 48, 7, 16, 24, 55, 40, 61, 26, 17, 0, 1, 60,
    51, 30, 4, 22, 25, 54, 21, 56, 59, 6, 63, 57, 62, 11, 36, 20, 34, 44, 52,
)

CHINA_TZ = timezone(timedelta(hours=8))

QueryParams = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


class WbiKey(BaseModel):
    """当日的 WBI 密钥，expire_time 为开区间上界"""
    model_config = ConfigDict(frozen=True)

    mixin_key: str
    expire_time: int

    def is_expired(self, now: Optional[int] = None) -> bool:
        now = int(time.time()) if now is None else now
        return now >= self.expire_time


def url_to_key(url: str) -> Optional[str]:
    """
    从 https://i0.hdslb.com/bfs/wbi/<key>.png 形式的 URL 中取出 <key>
    """
    name = url.rstrip().split("/")[-1]
    key = name.split(".")[0]
    return key or None


def mix_key(source: str) -> str:
    """按重排表把 source[i] 放到 table[i] 位置"""
    if len(source) != len(MIXIN_KEY_ENC_TAB):
        raise ParseError(f"Invalid wbi key length: {len(source)}")
    out = [""] * len(MIXIN_KEY_ENC_TAB)
    for ch, idx in zip(source, MIXIN_KEY_ENC_TAB):
        out[idx] = ch
    return "".join(out)


def next_day_timestamp(now: Optional[datetime] = None) -> int:
    """东八区下一个 00:00:00 的 Unix 时间戳"""
    now = now or datetime.now(timezone.utc)
    try:
        local_date = now.astimezone(CHINA_TZ).date()
        next_day = datetime.combine(local_date + timedelta(days=1), dt_time(0, 0, 0), tzinfo=CHINA_TZ)
        ts = int(next_day.timestamp())
    except (OverflowError, ValueError) as e:
        raise InternalError(f"Cannot get next day timestamp: {e}") from e
    if ts < 0:
        raise InternalError("Next day timestamp is invalid.")
    return ts


def _form_quote(value: str, safe: str = "", encoding: Optional[str] = None, errors: Optional[str] = None) -> str:
    # application/x-www-form-urlencoded: 仅字母数字与 *-._ 不编码，空格为 +
    return quote_plus(value, safe="*", encoding=encoding, errors=errors).replace("~", "%7E")


def sign_params(key: WbiKey, params: QueryParams, now: Optional[int] = None) -> dict[str, str]:
    """
    对查询参数做 WBI 签名，应在发送前一刻调用

    Args:
        key: 当日 WBI 密钥
        params: 原始查询参数，key 不能重复；调用方传入的 wts / w_rid 会被丢弃并重新生成
        now: 当前时间戳，默认取系统时间
    Returns:
        原始顺序的参数 + wts + w_rid
    """
    now = int(time.time()) if now is None else now
    if key.is_expired(now):
        raise WbiKeyExpiredError()

    pairs = list(params.items()) if isinstance(params, Mapping) else list(params)
    keys = [str(k) for k, _ in pairs]
    if len(set(keys)) != len(keys):
        raise InternalError(f"Duplicate query keys: {keys}")

    query = {str(k): str(v) for k, v in pairs if k not in ("wts", "w_rid")}
    query["wts"] = str(now)

    ordered = sorted(query.items(), key=lambda kv: kv[0])
    salted = urlencode(ordered, quote_via=_form_quote) + key.mixin_key
    query["w_rid"] = hashlib.md5(salted.encode("utf-8")).hexdigest()
    return query


class WbiKeyDeriver:
    def __init__(self, client: "BiliClient", key_length: Optional[int] = None):
        self.client = client
        # None 表示保留完整的 64 位重排结果
        self.key_length = key_length

    async def derive(self) -> WbiKey:
        """从导航栏接口获取当日 WBI 密钥，不做重试"""
        nav = await self.client.get_nav_info()

        img_key = url_to_key(nav.wbi_img.img_url)
        sub_key = url_to_key(nav.wbi_img.sub_url)
        if not img_key or not sub_key:
            raise ParseError("Invalid wbi key format.")

        mixin_key = mix_key(img_key + sub_key)
        if self.key_length:
            mixin_key = mixin_key[:self.key_length]

        key = WbiKey(mixin_key=mixin_key, expire_time=next_day_timestamp())
        logger.debug("WbiSign", f"WBI 密钥已更新，过期时间 {key.expire_time}")
        return key
