import json

import httpx
import pytest

from conftest import cookies_of, envelope
from service.bilibili_auth.client import BiliClient
from service.bilibili_auth.errors import InternalError, NetworkError, ParseError
from service.bilibili_auth.models import Credential


@pytest.mark.parametrize(
    "credential",
    [
        Credential(cookies="", refresh_token=""),
        Credential(cookies="[]", refresh_token="abc"),
        Credential(cookies='[{"name": "SESSDATA", "value": "a%2Cb"}]', refresh_token="tok中"),
    ],
)
def test_credential_json_round_trip(credential):
    assert Credential.from_json(credential.to_json()) == credential


def test_credential_wire_format():
    text = Credential(cookies="c", refresh_token="t").to_json()
    assert json.loads(text) == {"cookies": "c", "refresh_token": "t"}


@pytest.mark.parametrize("text", ["", "{}", '{"cookies": "c"}', "not json"])
def test_invalid_credential_is_parse_error(text):
    with pytest.raises(ParseError):
        Credential.from_json(text)


@pytest.mark.asyncio
class TestCookieStore:
    async def test_dump_load_round_trip(self, client):
        store = client.cookie_store
        await store.set("SESSDATA", "sess")
        await store.set("bili_jct", "csrf")
        dumped = store.dump()

        other = BiliClient()
        try:
            await other.cookie_store.load(dumped)
            assert other.cookie_store.dump() == dumped
            assert other.cookie_store.get("SESSDATA") == "sess"
        finally:
            await other.close()

    async def test_load_empty_string_clears(self, client):
        await client.cookie_store.set("SESSDATA", "sess")
        await client.cookie_store.load("")
        assert client.cookie_store.dump() == "[]"

    @pytest.mark.parametrize("text", ["nope", "{}", '[{"value": "x"}]'])
    async def test_load_invalid(self, client, text):
        await client.cookie_store.set("SESSDATA", "sess")
        with pytest.raises(ParseError):
            await client.cookie_store.load(text)
        assert client.cookie_store.get("SESSDATA") == "sess"

    @pytest.mark.parametrize(
        "domain, found",
        [
            (".bilibili.com", True),
            ("bilibili.com", True),
            ("passport.bilibili.com", True),
            (".evilbilibili.com", False),
            ("bilibili.com.evil.net", False),
        ],
    )
    async def test_get_matches_domain_and_subdomains_only(self, client, domain, found):
        await client.cookie_store.set("bili_jct", "csrf", domain=domain)
        assert (client.cookie_store.get("bili_jct") == "csrf") is found

    async def test_missing_csrf_requires_relogin(self, client):
        with pytest.raises(InternalError):
            client.cookie_store.csrf()

    async def test_response_cookies_land_in_store(self, client, recorder):
        recorder.on("/x/web-interface/nav", lambda r: envelope(
            {"wbi_img": {"img_url": "a/b.png", "sub_url": "c/d.png"}},
            set_cookies=["buvid3=xyz; Domain=.bilibili.com; Path=/"],
        ))
        await client.get_nav_info()
        assert cookies_of(client.dump_cookies()) == {"buvid3": "xyz"}

    async def test_from_credential_loads_cookies(self, client):
        await client.cookie_store.set("SESSDATA", "sess")
        credential = Credential(cookies=client.dump_cookies(), refresh_token="tok")

        restored = await BiliClient.from_credential(credential)
        try:
            assert restored.cookie_store.get("SESSDATA") == "sess"
        finally:
            await restored.close()


@pytest.mark.asyncio
async def test_transport_failure_is_network_error(settings):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = BiliClient(config=settings, transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(NetworkError):
            await client.get_nav_info()
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_http_status_is_network_error(client, recorder):
    recorder.on("/x/web-interface/nav", lambda r: httpx.Response(502))
    with pytest.raises(NetworkError):
        await client.get_nav_info()


@pytest.mark.asyncio
async def test_malformed_json_is_parse_error(client, recorder):
    recorder.on("/x/web-interface/nav", lambda r: httpx.Response(200, text="<html>"))
    with pytest.raises(ParseError):
        await client.get_nav_info()


@pytest.mark.asyncio
async def test_missing_data_is_parse_error(client, recorder):
    recorder.on("/x/web-interface/nav", lambda r: envelope())
    with pytest.raises(ParseError):
        await client.get_nav_info()
