"""B站鉴权相关异常"""


class BiliError(Exception):
    """本包所有异常的基类"""


class NetworkError(BiliError):
    """请求发送失败（连接、超时、TLS 等传输层问题）"""

    def __init__(self, detail: str):
        super().__init__(f"Network error, {detail}")


class ParseError(BiliError):
    """响应无法解析，或缺少必需字段"""

    def __init__(self, detail: str):
        super().__init__(f"Json parse error, {detail}")


class InternalError(BiliError):
    """加密、编码、时间计算等本地错误"""

    def __init__(self, detail: str):
        super().__init__(f"Internal error, {detail}")


class WbiKeyExpiredError(BiliError):
    """WBI 密钥已过期，调用方应重新获取密钥后重试，而不是当作致命错误"""

    def __init__(self):
        super().__init__("Wbi token expired, try re-run")


class QrCodeGenerationError(BiliError):
    """无法把 URL 编码成二维码"""

    def __init__(self, detail: str):
        super().__init__(f"QrCode generate error, {detail}")


class BilibiliApiError(BiliError):
    """服务端返回了非 0 的 code"""

    def __init__(self, code: int, message: str = ""):
        self.code = code
        self.server_message = message
        super().__init__(describe_error_code(code))


class RefreshConfirmError(BiliError):
    """
    刷新流程第 6 步（确认旧 refresh_token 失效）失败

    此时新 cookie 与新 refresh_token 已经生效，旧 refresh_token 仍可能有效。
    异常中携带新的凭据内容，调用方自行决定重试确认还是直接保存。
    """

    def __init__(self, cause: BiliError, refresh_token: str, cookies: str):
        self.cause = cause
        self.refresh_token = refresh_token
        self.cookies = cookies
        super().__init__(f"Refresh confirmation failed, old refresh_token may still be valid: {cause}")


_ERROR_CODES = {
    0: "无错误",
    -1: "应用程序不存在或已被封禁",
    -2: "Access Key 错误",
    -3: "API 校验密匙错误",
    -4: "调用方对该 Method 没有权限",
    -101: "账号未登录",
    -102: "账号被封停",
    -103: "积分不足",
    -104: "硬币不足",
    -105: "验证码错误",
    -106: "账号非正式会员或在适应期",
    -107: "应用不存在或者被封禁",
    -108: "未绑定手机",
    -110: "未绑定手机",
    -111: "csrf 校验失败",
    -112: "系统升级中",
    -113: "账号尚未实名认证",
    -114: "请先绑定手机",
    -115: "请先完成实名认证",
    -304: "木有改动",
    -307: "撞车跳转",
    -400: "请求错误",
    -401: "未认证 (或非法请求)",
    -403: "访问权限不足",
    -404: "啥都木有",
    -405: "不支持该方法",
    -409: "冲突",
    -412: "请求被拦截 (客户端 ip 被服务端风控)",
    -500: "服务器错误",
    -503: "过载保护,服务暂不可用",
    -504: "服务调用超时",
    -509: "超出限制",
    -616: "上传文件不存在",
    -617: "上传文件太大",
    -625: "登录失败次数太多",
    -626: "用户不存在",
    -628: "密码太弱",
    -629: "用户名或密码错误",
    -632: "操作对象数量限制",
    -643: "被锁定",
    -650: "用户等级太低",
    -652: "重复的用户",
    -658: "Token 过期",
    -662: "密码时间戳过期",
    -688: "地理区域限制",
    -689: "版权限制",
    -701: "扣节操失败",
    -799: "请求过于频繁，请稍后再试",
    -8888: "对不起，服务器开小差了~ (ಥ﹏ಥ)",
}

UNKNOWN_ERROR = "未知错误"


def try_parse_error_code(code: int) -> str:
    """
    把通用错误码转换成可读信息

    只收录了通用的负数错误码，其余（包括未收录的正数）一律返回"未知错误"
    """
    return _ERROR_CODES.get(code, UNKNOWN_ERROR)


def describe_error_code(code: int) -> str:
    """正数错误码不在通用表里，直接带上原始 code"""
    if code > 0:
        return f"Bilibili server returned an error, code is {code}"
    return try_parse_error_code(code)
