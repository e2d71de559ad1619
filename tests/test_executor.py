from __future__ import annotations

import httpx
import pytest

from dynctl.core.errors import DecodeError, NetworkError
from dynctl.core.executor import RequestExecutor, request_credentials
from dynctl.core.model import Credentials, Failure, FailureReason, Success
from dynctl.transports.base import HttpResponse
from dynctl.transports.http import HTTPTransport


class FakeTransport:
    def __init__(self, reply: bytes | Exception = b"on") -> None:
        self.reply = reply
        self.calls: list[tuple[str, Credentials | None]] = []

    def get(self, url: str, *, auth=None) -> HttpResponse:
        self.calls.append((url, auth))
        if isinstance(self.reply, Exception):
            raise self.reply
        return HttpResponse(status_code=200, content=self.reply)


def test_secure_request_carries_credentials() -> None:
    transport = FakeTransport()
    executor = RequestExecutor(transport)

    executor.execute("http://h/p/status", secure=True, credentials=Credentials("admin", "secret"))

    assert transport.calls == [("http://h/p/status", Credentials("admin", "secret"))]


def test_insecure_request_never_carries_stale_credentials() -> None:
    transport = FakeTransport()
    executor = RequestExecutor(transport)

    executor.execute("http://h/p/on", secure=False, credentials=Credentials("admin", "secret"))

    assert transport.calls == [("http://h/p/on", None)]


@pytest.mark.parametrize(
    "credentials",
    [None, Credentials("admin", ""), Credentials("", "secret")],
)
def test_secure_without_usable_credentials_sends_none(credentials: Credentials | None) -> None:
    assert request_credentials(True, credentials) is None


def test_network_error_becomes_connection_failure() -> None:
    executor = RequestExecutor(FakeTransport(NetworkError("refused")))

    outcome = executor.execute("http://h/p/status")

    assert isinstance(outcome, Failure)
    assert outcome.reason is FailureReason.CONNECTION
    assert "refused" in outcome.detail


def test_success_keeps_status_and_body() -> None:
    outcome = RequestExecutor(FakeTransport(b" ON\n")).execute("http://h/p/status")
    assert outcome == Success(status_code=200, body=b" ON\n")
    assert outcome.text() == " ON\n"


def test_non_utf8_body_raises_decode_error() -> None:
    with pytest.raises(DecodeError):
        Success(status_code=200, body=b"\xff\xfe").text()


def test_http_transport_sends_basic_auth_and_returns_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(401, text="off")

    transport = HTTPTransport(client=httpx.Client(transport=httpx.MockTransport(handler)))
    response = transport.get("https://h/p/status", auth=Credentials("admin", "secret"))

    assert response == HttpResponse(status_code=401, content=b"off")
    assert seen[0].method == "GET"
    assert seen[0].headers["Authorization"] == "Basic YWRtaW46c2VjcmV0"
    transport.close()


def test_http_transport_maps_connect_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    transport = HTTPTransport(client=httpx.Client(transport=httpx.MockTransport(handler)))
    with pytest.raises(NetworkError):
        transport.get("http://h/p/status")


def test_http_transport_maps_timeouts() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    transport = HTTPTransport(client=httpx.Client(transport=httpx.MockTransport(handler)))
    with pytest.raises(NetworkError, match="timed out"):
        transport.get("http://h/p/status")


def test_http_transport_without_credentials_sends_no_authorization() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="on")

    transport = HTTPTransport(client=httpx.Client(transport=httpx.MockTransport(handler)))
    transport.get("http://h/p/status")

    assert "Authorization" not in seen[0].headers


def test_http_transport_maps_encoding_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise UnicodeError("encoding with 'idna' codec failed (UnicodeError: label empty or too long)")

    transport = HTTPTransport(client=httpx.Client(transport=httpx.MockTransport(handler)))
    with pytest.raises(NetworkError, match="idna"):
        transport.get("http://h/p/status")


@pytest.mark.parametrize("url", ["http://ex..com/p/on", f"http://{'a' * 64}.example/p/on"])
def test_unencodable_host_becomes_connection_failure(url: str) -> None:
    transport = HTTPTransport(client=httpx.Client(trust_env=False))
    try:
        outcome = RequestExecutor(transport).execute(url)
    finally:
        transport.close()

    assert isinstance(outcome, Failure)
    assert outcome.reason is FailureReason.CONNECTION
