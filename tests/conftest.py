"""Shared test fixtures for flickrkit.

Provides sample payloads in all three response formats, an isolated
environment, and a factory for :class:`~flickrkit.api.ApiContext` objects
whose network traffic goes to an in-process :class:`httpx.MockTransport`.
These fixtures are automatically discovered by pytest and available to all
test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from flickrkit.api import ApiContext
from flickrkit.output import reset_output

API_KEY = "0123456789abcdef0123456789abcdef"
API_SECRET = "s3cr3t-value-xyz"
ENDPOINT = "https://api.flickr.test/services/rest/"


# ---------------------------------------------------------------------------
# Sample payloads
# ---------------------------------------------------------------------------

XML_OK = '<rsp stat="ok"><frob>abc</frob></rsp>'
XML_FAIL = '<rsp stat="fail"><err code="100" msg="Invalid API Key" /></rsp>'
JSON_OK = 'jsonFlickrApi({"stat": "ok", "frob": {"_content": "abc"}})'
JSON_FAIL = 'jsonFlickrApi({"stat": "fail", "code": 100, "message": "Invalid API Key"})'
PHP_OK = 'a:2:{s:4:"stat";s:2:"ok";s:4:"frob";a:1:{s:8:"_content";s:3:"abc";}}'
PHP_FAIL = 'a:3:{s:4:"stat";s:4:"fail";s:4:"code";i:100;s:7:"message";s:15:"Invalid API Key";}'

XML_CHECK_TOKEN = (
    '<rsp stat="ok"><oauth><token>72157-abc</token><perms>write</perms>'
    '<user nsid="12037949754@N01" username="bees" fullname="Cal H" /></oauth></rsp>'
)
XML_GET_TOKEN = (
    '<rsp stat="ok"><auth><token>433445-76598454353455</token><perms>write</perms>'
    '<user nsid="12037949754@N01" username="bees" fullname="Cal H" /></auth></rsp>'
)


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from real user state and the real endpoint.

    Points XDG_CACHE_HOME at tmp_path, clears the endpoint override, and
    resets the global output manager after every test.
    """
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
    monkeypatch.delenv("FLICKRKIT_ENDPOINT_URL", raising=False)
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Mock network
# ---------------------------------------------------------------------------


class RecordingHandler:
    """MockTransport handler that answers every request with the same body.

    Every request seen is appended to :attr:`requests`.
    """

    def __init__(self, body: str = XML_OK, status_code: int = 200) -> None:
        self.body = body
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text=self.body)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def handler() -> RecordingHandler:
    """A handler answering with a successful XML frob response."""
    return RecordingHandler()


@pytest.fixture
def make_context() -> Callable[..., ApiContext]:
    """Factory for contexts wired to a mock transport.

    Usage::

        api = make_context(handler, token="tok", format="json")

    Every context created is closed when the test finishes.
    """
    created: list[ApiContext] = []

    def _make(handler=None, **kwargs) -> ApiContext:
        kwargs.setdefault("endpoint_url", ENDPOINT)
        if handler is not None:
            kwargs["transport"] = httpx.MockTransport(handler)
        api = ApiContext(API_KEY, API_SECRET, **kwargs)
        created.append(api)
        return api

    yield _make
    for api in created:
        api.close()
