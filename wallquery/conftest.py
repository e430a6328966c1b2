"""
conftest.py

Test configuration for wallquery tests.

Defines pytest fixtures shared across the whole test suite. Fixtures used within only a
single module are defined directly in that module.

*** MOCKING THE NETWORK ***

No test touches the network. The HTTP transport is built over a session created with
unittest.mock.create_autospec(requests.Session), and tests configure session.request to
return real requests.Response objects whose raw stream is an in-memory buffer (see
build_response). Everything downstream of the session (streaming the body, closing the
response, status and header handling) therefore runs the same code as in production.
"""

import io
import json
import unittest.mock

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from wallquery.config import WallqueryConfig
from wallquery.context import FetchContext
from wallquery.providers.pexels import PexelsProvider
from wallquery.providers.unsplash import UnsplashProvider
from wallquery.providers.wallhaven import WallhavenProvider
from wallquery.transport import HttpTransport


WALLHAVEN_TEST_KEY = "abcdefghijklmnopqrstuvwxyz012345"


def build_response(status: int = 200, body=b"", headers=None, url: str = "") -> requests.Response:
    """
    Return a requests.Response as a session would for a streamed request. body may be bytes,
    str, or anything JSON serializable.
    """

    if isinstance(body, str):
        body = body.encode("utf-8")
    elif not isinstance(body, bytes):
        body = json.dumps(body).encode("utf-8")

    response = requests.Response()
    response.status_code = status
    response.raw = io.BytesIO(body)
    response.headers = CaseInsensitiveDict(headers or {})
    response.url = url
    return response


@pytest.fixture
def config(tmp_path) -> WallqueryConfig:
    """A configuration writing to a temporary directory."""

    return WallqueryConfig(WALLQUERY_CONFIG_DIR=tmp_path / "config")


@pytest.fixture
def wallhaven(config) -> WallhavenProvider:
    return WallhavenProvider(config, api_key=WALLHAVEN_TEST_KEY)


@pytest.fixture
def unsplash(config) -> UnsplashProvider:
    return UnsplashProvider(config, api_key="u" * 43)


@pytest.fixture
def pexels(config) -> PexelsProvider:
    return PexelsProvider(config, api_key="p" * 56)


@pytest.fixture
def session():
    """A mock requests.Session. Set session.request.return_value or side_effect per test."""

    return unittest.mock.create_autospec(requests.Session, instance=True)


@pytest.fixture
def transport(session) -> HttpTransport:
    return HttpTransport(session, timeout=5)


@pytest.fixture
def ctx() -> FetchContext:
    return FetchContext(timeout=30)
