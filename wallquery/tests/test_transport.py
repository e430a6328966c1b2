"""
Test transport and cancellation

HttpTransport is exercised over a mock requests.Session returning real requests.Response
objects (see conftest.build_response). Cancellation is tested by cancelling the FetchContext
before a request, from inside session.request, and in the middle of reading a body.

*** Fixtures ***
- session, transport, ctx (defined in conftest.py)
"""

import threading
import time
import unittest.mock

import pytest
import requests

from wallquery.conftest import build_response
from wallquery.errors import Canceled

# following entities are tested in this module:
from wallquery.context import FetchContext
from wallquery.transport import HttpResponse
from wallquery.transport import TransportError
from wallquery.transport import USER_AGENT


class CancellingRaw:
    """Raw stream that cancels ctx the first time it is read, as another thread would."""

    def __init__(self, ctx: FetchContext, chunks):
        self.ctx = ctx
        self.chunks = list(chunks)
        self.closed = False

    def read(self, size=-1, *args, **kwargs):
        self.ctx.cancel()
        return self.chunks.pop(0) if self.chunks else b""

    def close(self):
        self.closed = True


class BrokenRaw:
    def read(self, size=-1, *args, **kwargs):
        raise OSError("connection reset by peer")

    def close(self):
        pass


class StalledRaw:
    """Raw stream whose first read times out, optionally after ctx's deadline has passed."""

    def __init__(self, ctx: FetchContext = None):
        self.ctx = ctx

    def read(self, size=-1, *args, **kwargs):
        if self.ctx is not None:
            self.ctx.deadline = time.monotonic() - 1
        raise requests.exceptions.ReadTimeout("read timed out")

    def close(self):
        pass


"""
FetchContext
"""


def test_background_context():
    ctx = FetchContext.background()

    ctx.check()
    assert ctx.remaining() is None
    assert not ctx.cancelled
    assert not ctx.expired


def test_context_remaining():
    ctx = FetchContext(timeout=30)

    assert 0 < ctx.remaining() <= 30


def test_context_cancel():
    ctx = FetchContext(timeout=30)

    ctx.cancel()

    assert ctx.cancelled
    with pytest.raises(Canceled, match="cancelled"):
        ctx.check()


def test_context_deadline():
    ctx = FetchContext(timeout=0)

    assert ctx.expired
    assert ctx.remaining() == 0.0
    with pytest.raises(Canceled, match="deadline"):
        ctx.check()


def test_context_cancel_from_another_thread():
    ctx = FetchContext()

    thread = threading.Thread(target=ctx.cancel)
    thread.start()
    thread.join()

    with pytest.raises(Canceled):
        ctx.check()


def test_cancel_closes_tracked_responses():
    ctx = FetchContext()
    tracked = unittest.mock.Mock()
    finished = unittest.mock.Mock()

    with ctx.track(finished):
        pass

    with ctx.track(tracked):
        ctx.cancel()

    tracked.close.assert_called_once_with()
    finished.close.assert_not_called()


"""
HttpResponse
"""


@pytest.mark.parametrize(
    "status, ok",
    [(200, True), (204, True), (299, True), (301, False), (404, False), (500, False)],
)
def test_http_response_ok(status, ok):
    assert HttpResponse(status=status, body=b"").ok is ok


def test_http_response_text_is_truncated():
    response = HttpResponse(status=500, body=b"x" * 500 + b"\xff")

    assert response.text() == "x" * 200
    assert response.text(limit=600).endswith("�")


"""
HttpTransport
"""


def test_request_success(session, transport, ctx):
    session.request.return_value = build_response(
        200, b"hello", headers={"X-RateLimit-Remaining": "44"}, url="https://svc/final"
    )

    response = transport.get(ctx, "https://svc/api", headers={"Authorization": "token"})

    assert response == HttpResponse(
        status=200,
        body=b"hello",
        url="https://svc/final",
        headers={"X-RateLimit-Remaining": "44"},
    )

    session.request.assert_called_once()
    args, kwargs = session.request.call_args
    assert args == ("GET", "https://svc/api")
    assert kwargs["headers"] == {"User-Agent": USER_AGENT, "Authorization": "token"}
    assert kwargs["stream"] is True
    assert kwargs["timeout"] <= 5


def test_request_error_status_is_returned(session, transport, ctx):
    """Status handling belongs to the caller. The transport only fails without a response."""

    session.request.return_value = build_response(429, b"slow down", headers={"Retry-After": "30"})

    response = transport.get(ctx, "https://svc/api")

    assert response.status == 429
    assert not response.ok
    assert response.headers["Retry-After"] == "30"


def test_request_timeout_follows_deadline(session, transport):
    session.request.return_value = build_response(200, b"{}")

    transport.get(FetchContext(timeout=1), "https://svc/api")

    assert session.request.call_args.kwargs["timeout"] <= 1


def test_request_closes_response(session, transport, ctx):
    response = build_response(200, b"{}")
    session.request.return_value = response

    with unittest.mock.patch.object(response, "close") as close:
        transport.get(ctx, "https://svc/api")

    close.assert_called_once_with()


def test_request_already_cancelled(session, transport, ctx):
    ctx.cancel()

    with pytest.raises(Canceled):
        transport.get(ctx, "https://svc/api")

    session.request.assert_not_called()


def test_request_past_deadline(session, transport):
    with pytest.raises(Canceled, match="deadline"):
        transport.get(FetchContext(timeout=0), "https://svc/api")

    session.request.assert_not_called()


def test_request_timeout_is_transport_error(session, transport, ctx):
    session.request.side_effect = requests.exceptions.ReadTimeout("read timed out")

    with pytest.raises(TransportError, match="timed out"):
        transport.get(ctx, "https://svc/api")


def test_request_timeout_without_deadline(session, transport):
    session.request.side_effect = requests.exceptions.ConnectTimeout("connect timed out")

    with pytest.raises(TransportError, match="timed out"):
        transport.get(FetchContext(), "https://svc/api")


def test_request_timeout_after_cancel(session, transport, ctx):
    def cancel_and_time_out(*args, **kwargs):
        ctx.cancel()
        raise requests.exceptions.ReadTimeout("read timed out")

    session.request.side_effect = cancel_and_time_out

    with pytest.raises(Canceled, match="cancelled"):
        transport.get(ctx, "https://svc/api")


def test_request_timeout_at_deadline(session, transport, ctx):
    def expire_and_time_out(*args, **kwargs):
        ctx.deadline = time.monotonic() - 1
        raise requests.exceptions.ReadTimeout("read timed out")

    session.request.side_effect = expire_and_time_out

    with pytest.raises(Canceled, match="deadline"):
        transport.get(ctx, "https://svc/api")


def test_request_read_timeout(session, transport, ctx):
    response = build_response(200)
    response.raw = StalledRaw()
    session.request.return_value = response

    with pytest.raises(TransportError, match="timed out"):
        transport.get(ctx, "https://svc/api")


def test_request_read_timeout_at_deadline(session, transport, ctx):
    response = build_response(200)
    response.raw = StalledRaw(ctx)
    session.request.return_value = response

    with pytest.raises(Canceled, match="deadline"):
        transport.get(ctx, "https://svc/api")


def test_request_connection_error(session, transport, ctx):
    session.request.side_effect = requests.exceptions.ConnectionError("name resolution failed")

    with pytest.raises(TransportError, match="name resolution failed"):
        transport.get(ctx, "https://svc/api")


def test_request_cancelled_while_connecting(session, transport, ctx):
    def cancel_and_fail(*args, **kwargs):
        ctx.cancel()
        raise requests.exceptions.ConnectionError("connection aborted")

    session.request.side_effect = cancel_and_fail

    with pytest.raises(Canceled):
        transport.get(ctx, "https://svc/api")


def test_request_cancelled_while_reading(session, transport, ctx):
    response = build_response(200)
    response.raw = CancellingRaw(ctx, [b"first chunk", b"second chunk"])
    session.request.return_value = response

    with pytest.raises(Canceled):
        transport.get(ctx, "https://svc/api")

    assert response.raw.closed


def test_request_read_error(session, transport, ctx):
    response = build_response(200)
    response.raw = BrokenRaw()
    session.request.return_value = response

    with pytest.raises(TransportError, match="connection reset"):
        transport.get(ctx, "https://svc/api")
