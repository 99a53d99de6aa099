"""
ConnectionCache: reuse within TTL, sequential short-circuit validation,
aggregate diagnostics.
"""

import asyncio

import pytest

from antigravity_usage.client.connection_cache import ConnectionCache
from antigravity_usage.core.errors import (
    HttpStatusError,
    NetworkError,
    NoPortsError,
    NotFoundError,
    PortValidationAggregateError,
    ScanError,
)
from antigravity_usage.core.types import ProcessHandle


class FakeLocator:
    def __init__(self, handle=None, error=None):
        self.handle = handle or ProcessHandle(pid=4242, auth_token="tok-123")
        self.error = error
        self.calls = 0

    async def locate(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.handle


class FakeScanner:
    def __init__(self, ports=None, error=None):
        self.ports = set(ports or [])
        self.error = error
        self.calls = []

    async def scan_ports(self, pid):
        self.calls.append(pid)
        if self.error:
            raise self.error
        return set(self.ports)


class FakeClient:
    """Per-port outcome: None for success, or an exception to raise."""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.probed = []

    async def request(self, port, token, path, body):
        self.probed.append(port)
        outcome = self.outcomes.get(port)
        if outcome is not None:
            raise outcome
        return {"userStatus": {}}


def make_cache(clock, ports=(42100,), outcomes=None, locator=None, scanner=None, ttl=300):
    locator = locator or FakeLocator()
    scanner = scanner or FakeScanner(ports)
    client = FakeClient(outcomes or {})
    cache = ConnectionCache(locator, scanner, client, ttl=ttl, clock=clock)
    return cache, locator, scanner, client


def test_reuse_within_ttl_does_no_io(clock):
    cache, locator, scanner, client = make_cache(clock)
    first = asyncio.run(cache.get_connection())
    clock.advance(299)
    second = asyncio.run(cache.get_connection())

    assert second is first
    assert locator.calls == 1
    assert scanner.calls == [4242]
    assert client.probed == [42100]


def test_expired_entry_is_rebuilt(clock):
    cache, locator, _, client = make_cache(clock)
    first = asyncio.run(cache.get_connection())
    clock.advance(300)
    second = asyncio.run(cache.get_connection())

    assert second is not first
    assert second.established_at == clock.now
    assert locator.calls == 2
    assert client.probed == [42100, 42100]


def test_validation_short_circuits(clock):
    cache, _, _, client = make_cache(
        clock,
        ports=[42100, 42101, 42102],
        outcomes={42100: HttpStatusError(404)},
    )
    connection = asyncio.run(cache.get_connection())

    assert connection.port == 42101
    assert connection.auth_token == "tok-123"
    assert client.probed == [42100, 42101]
    assert cache.cached is connection


def test_all_ports_unauthorized_lists_each_port(clock):
    cache, _, _, _ = make_cache(
        clock,
        ports=[42100, 42101, 42102],
        outcomes={p: HttpStatusError(401) for p in (42100, 42101, 42102)},
    )
    with pytest.raises(PortValidationAggregateError) as exc_info:
        asyncio.run(cache.get_connection())

    failures = exc_info.value.failures
    assert [f.port for f in failures] == [42100, 42101, 42102]
    assert all(f.reason == "HTTP 401" for f in failures)
    assert "Tried 3 port(s)" in str(exc_info.value)
    assert cache.cached is None


def test_mixed_failure_reasons_are_kept(clock):
    cache, _, _, _ = make_cache(
        clock,
        ports=[42100, 42101],
        outcomes={42100: NetworkError("ConnectError: refused"), 42101: HttpStatusError(403)},
    )
    with pytest.raises(PortValidationAggregateError) as exc_info:
        asyncio.run(cache.get_connection())
    reasons = {f.port: f.reason for f in exc_info.value.failures}
    assert reasons == {42100: "ConnectError: refused", 42101: "HTTP 403"}


def test_no_ports_fails_immediately(clock):
    cache, _, _, client = make_cache(clock, ports=[])
    with pytest.raises(NoPortsError) as exc_info:
        asyncio.run(cache.get_connection())
    assert isinstance(exc_info.value, ScanError)
    assert client.probed == []


def test_locator_errors_propagate(clock):
    locator = FakeLocator(error=NotFoundError())
    cache, _, scanner, _ = make_cache(clock, locator=locator)
    with pytest.raises(NotFoundError):
        asyncio.run(cache.get_connection())
    assert scanner.calls == []


def test_scan_errors_propagate(clock):
    scanner = FakeScanner(error=ScanError(4242, [("lsof", "missing"), ("netstat", "missing")]))
    cache, _, _, client = make_cache(clock, scanner=scanner)
    with pytest.raises(ScanError):
        asyncio.run(cache.get_connection())
    assert client.probed == []


def test_invalidate_forces_rediscovery(clock):
    cache, locator, _, _ = make_cache(clock)
    asyncio.run(cache.get_connection())
    cache.invalidate()
    asyncio.run(cache.get_connection())
    assert locator.calls == 2
