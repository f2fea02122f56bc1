import io
from pathlib import Path
from typing import Optional

from infra.logger import logger
from ..errors import QrCodeGenerationError
from ..qrcode_login import make_qrcode


class QRCodeGenerator:
    """把二维码输出成终端文本或 PNG 图片"""

    def __init__(self, border: int = 2):
        self.border = border

    def generate_terminal_qr(self, url: str) -> Optional[str]:
        """
        生成终端可显示的二维码
        每个字符表示上下两个模块，反色输出以适配深色背景终端
        """
        try:
            qr = make_qrcode(url, border=self.border)
        except QrCodeGenerationError as e:
            logger.warn("QRCodeGenerator", f"生成终端二维码失败: {e}")
            return None

        out = io.StringIO()
        qr.print_ascii(out=out, invert=True)
        return out.getvalue().rstrip("\n")

    def save_qr_image(self, url: str, path: str, box_size: int = 8) -> bool:
        """保存二维码 PNG 图片"""
        try:
            qr = make_qrcode(url, border=self.border, box_size=box_size)
        except QrCodeGenerationError as e:
            logger.warn("QRCodeGenerator", f"生成二维码图片失败: {e}")
            return False

        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            qr.make_image().save(path)
        except OSError as e:
            logger.warn("QRCodeGenerator", f"保存二维码图片失败: {e}")
            return False
        return True
