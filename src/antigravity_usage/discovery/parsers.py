# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Parsers for process and socket listing output.

Every function here is pure: it takes captured command output and returns
structured values. Lines that do not parse are skipped, never fatal, since
column layout and state names vary across platforms and locales.
"""

import re
from typing import Iterable, List, Optional, Set, Tuple

from ..core.constants import (
    CSRF_TOKEN_FLAG,
    MAX_PORT,
    MAX_VALID_PID,
    MIN_PORT,
    PROCESS_IDENTIFIERS,
)

# Ordered: quoted forms must win over the bare form, otherwise
# --csrf_token="abc" would match nothing or only a fragment.
TOKEN_PATTERNS = (
    re.compile(re.escape(CSRF_TOKEN_FLAG) + r'[=\s]+"([^"]+)"', re.IGNORECASE),
    re.compile(re.escape(CSRF_TOKEN_FLAG) + r"[=\s]+'([^']+)'", re.IGNORECASE),
    re.compile(re.escape(CSRF_TOKEN_FLAG) + r"[=\s]+([\w-]+)", re.IGNORECASE),
)

_LEADING_PID = re.compile(r"^\s*(\d+)")
_LSOF_LISTEN = re.compile(r":(\d+)\s+\(LISTEN\)")
_ADDRESS_PORT = re.compile(r"^(.*):(\d+)$")


def validate_pid(pid: int) -> bool:
    return 0 < pid <= MAX_VALID_PID


def validate_port(port: int) -> bool:
    return MIN_PORT <= port <= MAX_PORT


# =============================================================================
# PROCESS LISTINGS
# =============================================================================


def extract_csrf_token(command_line: str) -> Optional[str]:
    """
    Extract the CSRF token from a process command line.

    Patterns are tried in order (double-quoted, single-quoted, bare);
    the first one that matches wins.

    Args:
        command_line: Full argument string of a process

    Returns:
        The token, or None if the flag is absent or has no value
    """
    for pattern in TOKEN_PATTERNS:
        match = pattern.search(command_line)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def parse_leading_pid(line: str) -> Optional[int]:
    """Return the integer at the start of a "<pid> <args>" line, if valid."""
    match = _LEADING_PID.match(line)
    if not match:
        return None
    pid = int(match.group(1))
    return pid if validate_pid(pid) else None


def is_candidate_line(line: str) -> bool:
    return any(identifier in line for identifier in PROCESS_IDENTIFIERS)


def filter_candidates(listing: str) -> List[str]:
    """
    Return listing lines that mention the application or the token flag,
    preserving listing order.
    """
    return [
        line.strip()
        for line in listing.splitlines()
        if line.strip() and is_candidate_line(line)
    ]


def parse_candidate(line: str) -> Tuple[Optional[int], Optional[str]]:
    """Split a candidate line into (pid, token); either may be None."""
    return parse_leading_pid(line), extract_csrf_token(line)


# =============================================================================
# PORT LISTINGS
# =============================================================================


def _port_from_address(address: str) -> Optional[int]:
    """
    Extract the port from "127.0.0.1:42100", "[::1]:42100" or "*:42100".
    """
    match = _ADDRESS_PORT.match(address.strip())
    if not match:
        return None
    port = int(match.group(2))
    return port if validate_port(port) else None


def _collect(ports: Iterable[Optional[int]]) -> Set[int]:
    return {p for p in ports if p is not None}


def parse_lsof_ports(output: str, pid: int) -> Set[int]:
    """
    Parse `lsof -a -iTCP -sTCP:LISTEN -n -P -p <pid>` output for sockets
    owned by pid.

    Example line:
        language_ 4242 me   23u  IPv4 0x1  0t0  TCP 127.0.0.1:42100 (LISTEN)

    Rows whose PID column is not pid are ignored, so output from an lsof
    that ORs its selectors never leaks other processes' listeners.
    """
    ports = []
    for line in output.splitlines():
        fields = line.split()
        if len(fields) < 2 or fields[1] != str(pid):
            continue
        match = _LSOF_LISTEN.search(line)
        if match:
            port = int(match.group(1))
            ports.append(port if validate_port(port) else None)
    return _collect(ports)


def parse_netstat_unix_ports(output: str, pid: int) -> Set[int]:
    """
    Parse Linux `netstat -tlnp` output for sockets owned by pid.

    Example line:
        tcp   0   0 127.0.0.1:42100   0.0.0.0:*   LISTEN   4242/language_serve

    Only the "<pid>/<program>" column and the first address:port column are
    used, so translated headers and state names do not matter.
    """
    owner = re.compile(rf"^{pid}/")
    ports = []
    for line in output.splitlines():
        fields = line.split()
        if not any(owner.match(f) for f in fields):
            continue
        for f in fields:
            port = _port_from_address(f)
            if port is not None:
                ports.append(port)
                break
    return _collect(ports)


def parse_netstat_darwin_ports(output: str, pid: int) -> Set[int]:
    """
    Parse macOS `netstat -anv -p tcp` output for sockets owned by pid.

    Example lines (older and newer releases):
        tcp4  0  0  127.0.0.1.42100  *.*  LISTEN  131072 131072   4242      0 ...
        tcp4  0  0  127.0.0.1.42100  *.*  LISTEN  0 0 131072 131072  language_:4242  0 ...

    macOS joins address and port with a dot. The owner shows up either as
    a bare pid column or as "<process>:<pid>" after the state column.
    """
    ports = []
    for line in output.splitlines():
        fields = line.split()
        if len(fields) < 7 or not fields[0].startswith("tcp"):
            continue
        if fields[5].upper() != "LISTEN":
            continue
        owners = fields[6:]
        if not any(f == str(pid) or f.endswith(f":{pid}") for f in owners):
            continue
        _, _, port_text = fields[3].rpartition(".")
        if port_text.isdigit():
            port = int(port_text)
            ports.append(port if validate_port(port) else None)
    return _collect(ports)


def parse_netstat_windows_ports(output: str, pid: int) -> Set[int]:
    """
    Parse Windows `netstat -ano` output for listening sockets owned by pid.

    Example line:
        TCP    127.0.0.1:42100    0.0.0.0:0    LISTENING    4242

    The state column is localized ("ABHÖREN", "ECOUTE", ...), so a row also
    counts as listening when its foreign address has port 0.
    """
    ports = []
    for line in output.splitlines():
        fields = line.split()
        if len(fields) < 4 or fields[0].upper() != "TCP":
            continue
        try:
            line_pid = int(fields[-1])
        except ValueError:
            continue
        if line_pid != pid:
            continue

        foreign = fields[2]
        state = fields[3] if len(fields) >= 5 else ""
        listening = "LISTEN" in state.upper() or foreign.endswith(":0")
        if listening:
            ports.append(_port_from_address(fields[1]))
    return _collect(ports)


def parse_port_list(output: str) -> Set[int]:
    """
    Parse one-port-per-line output (PowerShell Get-NetTCPConnection
    piped through Select-Object -ExpandProperty LocalPort).
    """
    ports = []
    for line in output.splitlines():
        line = line.strip()
        if line.isdigit():
            port = int(line)
            ports.append(port if validate_port(port) else None)
    return _collect(ports)
