from typing import TYPE_CHECKING, List

import qrcode
from qrcode.exceptions import DataOverflowError

from infra.logger import logger
from .errors import ParseError, QrCodeGenerationError
from .models import Credential, LoginPollResult, LoginState, QRCodeData, QRCodePollData

if TYPE_CHECKING:
    from .client import BiliClient

"""
相关 API 参考
https://socialsisteryi.github.io/bilibili-API-collect/docs/login/login_action/QR.html#web%E7%AB%AF%E6%89%AB%E7%A0%81%E7%99%BB%E5%BD%95
"""

QrMatrix = List[List[bool]]


def make_qrcode(auth_url: str, border: int = 0, box_size: int = 10) -> qrcode.QRCode:
    """按内容自动选择版本，生成已完成排版的 QRCode 对象"""
    if not auth_url:
        raise QrCodeGenerationError("empty url")
    try:
        qr = qrcode.QRCode(border=border, box_size=box_size)
        qr.add_data(auth_url)
        qr.make(fit=True)
        return qr
    except (DataOverflowError, ValueError) as e:
        raise QrCodeGenerationError(str(e)) from e


def render_qrcode(auth_url: str, border: int = 0) -> QrMatrix:
    """把 URL 编码成二维码矩阵，True 为深色模块；同一输入总是得到同一矩阵"""
    return make_qrcode(auth_url, border).get_matrix()


class QRCodeLogin:
    """
    扫码登录

    request() 获取二维码，poll() 查询一次状态。轮询循环由调用方负责，
    本类不做退避，也不限制次数。
    """

    def __init__(self, client: "BiliClient"):
        self.client = client

    async def request(self) -> QRCodeData:
        """申请登录二维码"""
        resp = await self.client.fetch("GET", self.client.endpoints.qrcode_generate, QRCodeData)
        logger.debug("QRCodeLogin", f"获取二维码成功: {resp.data.qrcode_key}")
        return resp.data

    @staticmethod
    def render(auth_url: str) -> QrMatrix:
        return render_qrcode(auth_url)

    async def poll(self, qrcode_key: str) -> LoginPollResult:
        """
        轮询扫码登录状态

        0 成功，86038 二维码失效，86090 已扫码待确认，86101 未扫码；
        其余状态码视为协议错误。
        """
        resp = await self.client.fetch(
            "GET", self.client.endpoints.qrcode_poll, QRCodePollData,
            params={"qrcode_key": qrcode_key},
        )
        poll = resp.data

        try:
            state = LoginState(poll.code)
        except ValueError as e:
            logger.warn("QRCodeLogin", f"未知状态码: {poll.code}")
            raise ParseError(f"Invalid login state code found: {poll.code}") from e

        if state is LoginState.SUCCESS:
            if not poll.refresh_token:
                raise ParseError("Invalid json field, refresh_token cannot be empty")
            credential = Credential(
                cookies=self.client.dump_cookies(),
                refresh_token=poll.refresh_token,
            )
            logger.info("QRCodeLogin", "扫码登录成功")
            return LoginPollResult(state=state, credential=credential)

        if state is LoginState.EXPIRED:
            logger.warn("QRCodeLogin", "二维码已失效")
        elif state is LoginState.WAIT_CONFIRM:
            logger.info("QRCodeLogin", "二维码已扫码，等待确认...")
        else:
            logger.debug("QRCodeLogin", "等待扫码...")
        return LoginPollResult(state=state)
