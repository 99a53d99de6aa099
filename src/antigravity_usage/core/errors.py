# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Error taxonomy for discovery, transport and persistence failures.

Discovery and validation errors propagate unchanged to the caller; only the
API client retries (network, timeout and 5xx failures).
"""

from typing import List, Optional, Sequence, Tuple

from .types import PortFailure


class UsageMonitorError(Exception):
    """Base class for all library errors."""


def mask_token(token: Optional[str]) -> str:
    """Mask a CSRF token for logging (first 4 and last 2 characters)."""
    if not token:
        return "<none>"
    if len(token) <= 8:
        return "****"
    return f"{token[:4]}...{token[-2:]}"


# =============================================================================
# DISCOVERY ERRORS
# =============================================================================


class DiscoveryError(UsageMonitorError):
    """Base class for process and port discovery failures."""


class CommandError(DiscoveryError):
    """A listing command could not be run or exited with a non-zero status."""

    def __init__(
        self,
        argv: Sequence[str],
        reason: str,
        returncode: Optional[int] = None,
        output: str = "",
    ):
        self.argv = list(argv)
        self.reason = reason
        self.returncode = returncode
        self.output = output
        super().__init__(f"{self.argv[0] if self.argv else '?'}: {reason}")


class NotFoundError(DiscoveryError):
    """No process matching the application identifier is running."""

    def __init__(self, message: str = "Antigravity process not found."):
        super().__init__(message)


class TokenMissingError(DiscoveryError):
    """Candidate processes were found but none carried a CSRF token."""

    def __init__(self, candidate_count: int):
        self.candidate_count = candidate_count
        super().__init__(
            f"Found {candidate_count} Antigravity process candidate(s) "
            "but none had a CSRF token in its arguments."
        )


class ScanError(DiscoveryError):
    """Every port discovery strategy failed to execute."""

    def __init__(self, pid: int, failures: List[Tuple[str, str]]):
        self.pid = pid
        self.failures = failures
        details = "; ".join(f"{name}: {reason}" for name, reason in failures)
        super().__init__(f"Failed to list ports for PID {pid}: {details}")


class NoPortsError(ScanError):
    """Port discovery succeeded but the process listens on no TCP port."""

    def __init__(self, pid: int):
        self.pid = pid
        self.failures = []
        DiscoveryError.__init__(self, f"No listening ports found for PID {pid}")


class PortValidationAggregateError(UsageMonitorError):
    """Every candidate port failed the authenticated status probe."""

    def __init__(self, failures: List[PortFailure]):
        self.failures = failures
        details = "\n".join(f"  - Port {f.port}: {f.reason}" for f in failures)
        super().__init__(
            f"Could not validate any port. Tried {len(failures)} port(s):\n{details}"
        )


# =============================================================================
# API CLIENT ERRORS
# =============================================================================


class ApiClientError(UsageMonitorError):
    """Base class for language server request failures."""


class HttpStatusError(ApiClientError):
    """Non-2xx response from the language server."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}")

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500


class NetworkError(ApiClientError):
    """Connection refused, reset, TLS failure or other transport error."""


class RequestTimeoutError(ApiClientError, TimeoutError):
    """The request did not complete within the per-request timeout."""


class InvalidResponseError(ApiClientError):
    """A 2xx response whose body is not the expected JSON document."""


# =============================================================================
# PERSISTENCE ERRORS
# =============================================================================


class PersistenceError(UsageMonitorError):
    """Reading or writing the key-value store failed."""
