# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Per-OS capability definitions for process and port discovery.

A PlatformProbe only describes *which* read-only commands to run and *how*
to parse their output. Running them and deciding on fallbacks is done by
ProcessLocator and PortScanner, so the OS branch is taken exactly once,
when the probe is selected.
"""

import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional, Set, Tuple

from ..core.constants import APP_IDENTIFIER, CSRF_TOKEN_FLAG
from .parsers import (
    parse_lsof_ports,
    parse_netstat_darwin_ports,
    parse_netstat_unix_ports,
    parse_netstat_windows_ports,
    parse_port_list,
)


@dataclass(frozen=True)
class PortStrategy:
    """
    A port listing command and the parser for its output.

    empty_exit_codes lists exit statuses that mean "ran, found nothing"
    when stdout is empty (lsof -a exits 1 if no file matches).
    """

    name: str
    argv: List[str]
    parse: Callable[[str], Set[int]]
    empty_exit_codes: Tuple[int, ...] = ()


class PlatformProbe(ABC):
    """
    Capability interface for one OS family.
    """

    name: str = "generic"

    @abstractmethod
    def process_listing_command(self) -> List[str]:
        """
        Command whose output has one "<pid> <full command line>" per line.
        """

    @abstractmethod
    def port_strategies(self, pid: int) -> List[PortStrategy]:
        """
        Ordered port listing strategies for pid, primary first.
        """


class UnixProbe(PlatformProbe):
    """
    Linux: ps for processes, lsof with a `netstat -tlnp` fallback.

    The fallback uses GNU net-tools syntax; DarwinProbe swaps in the BSD one.
    """

    name = "unix"

    def process_listing_command(self) -> List[str]:
        # -ww: never truncate the argument column
        return ["ps", "-ww", "-eo", "pid,args"]

    def _lsof_strategy(self, pid: int) -> PortStrategy:
        # -a: AND the selectors, lsof ORs them by default
        return PortStrategy(
            name="lsof",
            argv=["lsof", "-a", "-iTCP", "-sTCP:LISTEN", "-n", "-P", "-p", str(pid)],
            parse=lambda output: parse_lsof_ports(output, pid),
            empty_exit_codes=(1,),
        )

    def port_strategies(self, pid: int) -> List[PortStrategy]:
        return [
            self._lsof_strategy(pid),
            PortStrategy(
                name="netstat",
                argv=["netstat", "-tlnp"],
                parse=lambda output: parse_netstat_unix_ports(output, pid),
            ),
        ]


class DarwinProbe(UnixProbe):
    """macOS: same as UnixProbe but with BSD `netstat -anv` as fallback."""

    name = "darwin"

    def port_strategies(self, pid: int) -> List[PortStrategy]:
        return [
            self._lsof_strategy(pid),
            PortStrategy(
                name="netstat",
                argv=["netstat", "-anv", "-p", "tcp"],
                parse=lambda output: parse_netstat_darwin_ports(output, pid),
            ),
        ]


class WindowsProbe(PlatformProbe):
    """Windows: CIM process table and Get-NetTCPConnection via PowerShell."""

    name = "windows"

    def process_listing_command(self) -> List[str]:
        script = (
            "Get-CimInstance Win32_Process "
            f"| Where-Object {{ $_.CommandLine -like '*{APP_IDENTIFIER}*' "
            f"-or $_.CommandLine -like '*{CSRF_TOKEN_FLAG}*' }} "
            "| ForEach-Object { \"$($_.ProcessId) $($_.CommandLine)\" }"
        )
        return ["powershell", "-NoProfile", "-NonInteractive", "-Command", script]

    def port_strategies(self, pid: int) -> List[PortStrategy]:
        script = (
            f"Get-NetTCPConnection -OwningProcess {pid} -State Listen "
            "-ErrorAction Stop "
            "| Select-Object -ExpandProperty LocalPort "
            "| Sort-Object -Unique"
        )
        return [
            PortStrategy(
                name="Get-NetTCPConnection",
                argv=["powershell", "-NoProfile", "-NonInteractive", "-Command", script],
                parse=parse_port_list,
            ),
            PortStrategy(
                name="netstat",
                argv=["netstat", "-ano"],
                parse=lambda output: parse_netstat_windows_ports(output, pid),
            ),
        ]


def select_platform_probe(platform: Optional[str] = None) -> PlatformProbe:
    """
    Pick the probe for the running OS.

    Args:
        platform: Override for sys.platform (e.g. "win32", "linux", "darwin")
    """
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WindowsProbe()
    if platform == "darwin":
        return DarwinProbe()
    return UnixProbe()
