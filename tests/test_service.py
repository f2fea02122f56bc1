import httpx
import pytest

from conftest import cookies_of, envelope
from service.bilibili_auth.errors import WbiKeyExpiredError
from service.bilibili_auth.models import Credential
from service.bilibili_auth.service import BiliAuthService
from service.bilibili_auth.wbi import WbiKey

NAV = {
    "isLogin": True,
    "mid": 2,
    "uname": "bishi",
    "wbi_img": {
        "img_url": "https://i0.hdslb.com/bfs/wbi/7cd084941338484aae1ad9425b84077c.png",
        "sub_url": "https://i0.hdslb.com/bfs/wbi/4932caff0ff746eab6f01bf08b70ac45.png",
    },
}


@pytest.fixture
async def service(client, settings):
    return BiliAuthService(config=settings, client=client)


class TestCredentialFile:
    @pytest.mark.asyncio
    async def test_load_missing_returns_none(self, service):
        assert service.load_credential() is None

    @pytest.mark.asyncio
    async def test_save_then_load(self, service):
        credential = Credential(cookies="[]", refresh_token="tok")
        assert service.save_credential(credential) is True
        assert service.load_credential() == credential

    @pytest.mark.asyncio
    async def test_corrupt_file_returns_none(self, service, tmp_path):
        (tmp_path / "cred.json").write_text("{broken", encoding="utf-8")
        assert service.load_credential() is None


@pytest.mark.asyncio
class TestLoginFlow:
    async def test_login_with_qrcode_saves_credential(self, service, recorder):
        recorder.on("/x/passport-login/web/qrcode/generate",
                    lambda r: envelope({"url": "https://example.com/qr", "qrcode_key": "abc"}))
        codes = [86101, 86090, 0]
        recorder.on("/x/passport-login/web/qrcode/poll", lambda r: envelope(
            {"code": codes.pop(0), "refresh_token": "tok123"},
        ))

        credential = await service.login_with_qrcode(show_terminal_qr=False)

        assert credential.refresh_token == "tok123"
        assert service.load_credential() == credential

    async def test_expired_qrcode_returns_none(self, service, recorder):
        recorder.on("/x/passport-login/web/qrcode/generate",
                    lambda r: envelope({"url": "https://example.com/qr", "qrcode_key": "abc"}))
        recorder.on("/x/passport-login/web/qrcode/poll", lambda r: envelope({"code": 86038}))

        assert await service.login_with_qrcode(show_terminal_qr=False) is None
        assert service.load_credential() is None

    async def test_get_valid_credential_without_refresh(self, service, recorder):
        service.save_credential(Credential(cookies="[]", refresh_token="tok"))
        recorder.on("/x/passport-login/web/cookie/info",
                    lambda r: envelope({"refresh": False, "timestamp": 0}))

        credential = await service.get_valid_credential()

        assert credential == Credential(cookies="[]", refresh_token="tok")

    async def test_confirm_failure_saves_rotated_credential(self, service, recorder):
        await service.client.cookie_store.set("SESSDATA", "old-sess")
        await service.client.cookie_store.set("bili_jct", "old-csrf")
        service.save_credential(Credential(cookies=service.client.dump_cookies(), refresh_token="old-token"))
        await service.client.cookie_store.clear()

        recorder.on("/x/passport-login/web/cookie/info",
                    lambda r: envelope({"refresh": True, "timestamp": 1684746387123}))
        recorder.on("/correspond/1/", lambda r: httpx.Response(
            200, text='<div id="1-name">refresh-csrf-value</div>'))
        recorder.on("/x/passport-login/web/cookie/refresh", lambda r: envelope(
            {"status": 0, "message": "", "refresh_token": "new-token"},
            set_cookies=[
                "SESSDATA=new-sess; Domain=.bilibili.com; Path=/",
                "bili_jct=new-csrf; Domain=.bilibili.com; Path=/",
            ],
        ))
        recorder.on("/x/passport-login/web/confirm/refresh",
                    lambda r: envelope(code=-111, message="csrf 校验失败"))

        credential = await service.get_valid_credential()

        assert credential.refresh_token == "new-token"
        saved = service.load_credential()
        assert saved == credential
        assert cookies_of(saved.cookies) == {"SESSDATA": "new-sess", "bili_jct": "new-csrf"}

    async def test_get_valid_credential_on_api_error(self, service, recorder):
        service.save_credential(Credential(cookies="[]", refresh_token="tok"))
        recorder.on("/x/passport-login/web/cookie/info", lambda r: envelope(code=-101))

        assert await service.get_valid_credential() is None


@pytest.mark.asyncio
class TestWbiCache:
    async def test_key_is_cached(self, service, recorder):
        recorder.on("/x/web-interface/nav", lambda r: envelope(NAV))

        first = await service.get_wbi_key()
        second = await service.get_wbi_key()

        assert first is second
        assert recorder.paths.count("/x/web-interface/nav") == 1

    async def test_expired_key_is_replaced(self, service, recorder):
        recorder.on("/x/web-interface/nav", lambda r: envelope(NAV))
        service._wbi_key = WbiKey(mixin_key="x" * 64, expire_time=1)

        key = await service.get_wbi_key()

        assert not key.is_expired()
        assert recorder.paths.count("/x/web-interface/nav") == 1

    async def test_signed_get_retries_once_after_expiry(self, service, recorder, monkeypatch):
        recorder.on("/x/web-interface/nav", lambda r: envelope(NAV))
        recorder.on("/x/space/wbi/acc/info", lambda r: envelope({"mid": 2}))

        original = service.client.get_with_wbi
        calls = []

        async def flaky(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise WbiKeyExpiredError()
            return await original(*args, **kwargs)

        monkeypatch.setattr(service.client, "get_with_wbi", flaky)

        resp = await service.signed_get("https://api.bilibili.com/x/space/wbi/acc/info", {"mid": 2}, dict)

        assert resp.data == {"mid": 2}
        assert len(calls) == 2
        assert recorder.paths.count("/x/web-interface/nav") == 2

    async def test_nav_info_failure_returns_none(self, service, recorder):
        recorder.on("/x/web-interface/nav", lambda r: httpx.Response(500))
        assert await service.get_nav_info() is None
