"""Shared fixtures: a BiliClient wired to an in-process httpx.MockTransport."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from infra.config.settings import Settings
from service.bilibili_auth.client import BiliClient


def envelope(data=None, code=0, message="0", set_cookies=()):
    body = {"code": code, "message": message, "ttl": 1}
    if data is not None:
        body["data"] = data
    headers = [("set-cookie", c) for c in set_cookies]
    return httpx.Response(200, json=body, headers=headers)


def form_of(request: httpx.Request) -> dict:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def cookies_of(serialized: str) -> dict:
    return {c["name"]: c["value"] for c in json.loads(serialized)}


class Recorder:
    """Routes requests by path and records them in order."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def on(self, path, handler):
        self.routes[path] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for prefix, handler in self.routes.items():
            if request.url.path.startswith(prefix):
                return handler(request)
        return httpx.Response(404)

    @property
    def paths(self):
        return [r.url.path for r in self.requests]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        BILI_CREDENTIAL_FILE=str(tmp_path / "cred.json"),
        BILI_QR_POLL_INTERVAL=0,
    )


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
async def client(recorder, settings):
    client = BiliClient(config=settings, transport=httpx.MockTransport(recorder))
    yield client
    await client.close()
