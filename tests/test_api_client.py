"""
LanguageServerClient retry policy and error mapping (httpx.MockTransport).
"""

import asyncio
import json

import httpx
import pytest

from antigravity_usage.client.api_client import LanguageServerClient
from antigravity_usage.core.constants import CSRF_HEADER, GET_USER_STATUS_PATH
from antigravity_usage.core.errors import (
    HttpStatusError,
    InvalidResponseError,
    NetworkError,
    RequestTimeoutError,
)


class ScriptedServer:
    """Returns the scripted outcomes in order, recording each request."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, type) and issubclass(outcome, Exception):
            raise outcome("scripted failure", request=request)
        if isinstance(outcome, int):
            return httpx.Response(outcome, text="error")
        return httpx.Response(200, json=outcome)


def run_request(server, sleep, max_attempts=3, base_delay=0.15):
    client = LanguageServerClient(
        max_attempts=max_attempts,
        retry_base_delay=base_delay,
        sleep=sleep,
        transport=httpx.MockTransport(server),
    )

    async def go():
        async with client:
            return await client.request(
                42100, "tok-123", GET_USER_STATUS_PATH, {"metadata": {"ideName": "antigravity"}}
            )

    return asyncio.run(go())


def test_success_sends_token_and_body(recorded_sleep):
    server = ScriptedServer([{"userStatus": {}}])
    result = run_request(server, recorded_sleep)

    assert result == {"userStatus": {}}
    request = server.requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"https://127.0.0.1:42100{GET_USER_STATUS_PATH}"
    assert request.headers[CSRF_HEADER] == "tok-123"
    assert json.loads(request.content) == {"metadata": {"ideName": "antigravity"}}
    assert recorded_sleep.delays == []


def test_server_errors_retried_with_linear_backoff(recorded_sleep):
    server = ScriptedServer([503, 500, {"ok": True}])
    assert run_request(server, recorded_sleep) == {"ok": True}
    assert len(server.requests) == 3
    assert recorded_sleep.delays == pytest.approx([0.15, 0.30])


def test_client_errors_never_retried(recorded_sleep):
    server = ScriptedServer([401, {"ok": True}])
    with pytest.raises(HttpStatusError) as exc_info:
        run_request(server, recorded_sleep)
    assert exc_info.value.status_code == 401
    assert len(server.requests) == 1
    assert recorded_sleep.delays == []


def test_exhausted_retries_raise_last_error(recorded_sleep):
    server = ScriptedServer([502, 502, 502])
    with pytest.raises(HttpStatusError) as exc_info:
        run_request(server, recorded_sleep)
    assert exc_info.value.status_code == 502
    assert len(server.requests) == 3
    assert len(recorded_sleep.delays) == 2


def test_timeout_counts_as_retryable_attempt(recorded_sleep):
    server = ScriptedServer([httpx.ReadTimeout, httpx.ReadTimeout])
    with pytest.raises(RequestTimeoutError) as exc_info:
        run_request(server, recorded_sleep, max_attempts=2, base_delay=1.0)
    assert isinstance(exc_info.value, TimeoutError)
    assert len(server.requests) == 2
    assert recorded_sleep.delays == [1.0]


def test_network_error_then_success(recorded_sleep):
    server = ScriptedServer([httpx.ConnectError, {"ok": 1}])
    assert run_request(server, recorded_sleep) == {"ok": 1}
    assert recorded_sleep.delays == pytest.approx([0.15])


def test_network_error_exhausted(recorded_sleep):
    server = ScriptedServer([httpx.ConnectError])
    with pytest.raises(NetworkError):
        run_request(server, recorded_sleep, max_attempts=1)
    assert recorded_sleep.delays == []


def test_non_json_success_body(recorded_sleep):
    def handler(request):
        return httpx.Response(200, text="<html>not json</html>")

    with pytest.raises(InvalidResponseError):
        run_request(handler, recorded_sleep)
    assert recorded_sleep.delays == []


class RecordingAsyncClient(httpx.AsyncClient):
    """httpx.AsyncClient that remembers the keyword arguments it was built with."""

    created = []

    def __init__(self, **kwargs):
        RecordingAsyncClient.created.append(kwargs)
        super().__init__(**kwargs)


@pytest.mark.parametrize("verify_ssl", [False, True])
def test_tls_setting_reaches_http_client(monkeypatch, recorded_sleep, verify_ssl):
    RecordingAsyncClient.created = []
    monkeypatch.setattr(httpx, "AsyncClient", RecordingAsyncClient)
    server = ScriptedServer([{"userStatus": {}}])
    client = LanguageServerClient(
        verify_ssl=verify_ssl,
        timeout=4.0,
        sleep=recorded_sleep,
        transport=httpx.MockTransport(server),
    )

    async def go():
        async with client:
            return await client.request(42100, "tok-123", GET_USER_STATUS_PATH, {})

    assert asyncio.run(go()) == {"userStatus": {}}
    assert len(RecordingAsyncClient.created) == 1
    kwargs = RecordingAsyncClient.created[0]
    assert kwargs["verify"] is verify_ssl
    assert kwargs["timeout"] == 4.0


def test_certificate_verification_is_on_by_default(monkeypatch):
    RecordingAsyncClient.created = []
    monkeypatch.setattr(httpx, "AsyncClient", RecordingAsyncClient)
    client = LanguageServerClient()

    async def go():
        async with client:
            client._get_client()

    asyncio.run(go())
    assert RecordingAsyncClient.created[0]["verify"] is True
    assert RecordingAsyncClient.created[0]["timeout"] == client.timeout
