import pytest

from service.bilibili_auth.errors import (
    BilibiliApiError,
    InternalError,
    NetworkError,
    ParseError,
    QrCodeGenerationError,
    WbiKeyExpiredError,
    try_parse_error_code,
)


@pytest.mark.parametrize(
    "code, message",
    [
        (0, "无错误"),
        (-101, "账号未登录"),
        (-111, "csrf 校验失败"),
        (-412, "请求被拦截 (客户端 ip 被服务端风控)"),
        (-8888, "对不起，服务器开小差了~ (ಥ﹏ಥ)"),
        (-10086, "未知错误"),
        (10086, "未知错误"),
    ],
)
def test_try_parse_error_code(code, message):
    assert try_parse_error_code(code) == message


def test_api_error_renders_negative_code_from_table():
    err = BilibiliApiError(-101, "账号未登录")
    assert err.code == -101
    assert str(err) == "账号未登录"


def test_api_error_renders_positive_code_verbatim():
    assert str(BilibiliApiError(86038)) == "Bilibili server returned an error, code is 86038"


def test_error_messages():
    assert str(NetworkError("boom")) == "Network error, boom"
    assert str(ParseError("boom")) == "Json parse error, boom"
    assert str(InternalError("boom")) == "Internal error, boom"
    assert str(QrCodeGenerationError("boom")) == "QrCode generate error, boom"
    assert str(WbiKeyExpiredError()) == "Wbi token expired, try re-run"
