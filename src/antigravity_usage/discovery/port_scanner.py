# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Port Scanner

Enumerates TCP ports in LISTEN state owned by a process, trying the
platform's strategies in order.
"""

import logging
from typing import List, Optional, Set, Tuple

from ..core.errors import CommandError, ScanError
from .commands import CommandRunner, run_command
from .platforms import PlatformProbe, select_platform_probe

lib_logger = logging.getLogger("antigravity_usage")


class PortScanner:
    """
    Lists listening ports for a PID.

    A strategy is abandoned only when its command fails to execute; an empty
    but successful listing is a valid answer and stops the search. So is an
    exit status the strategy declares as "nothing matched" with no output.
    """

    def __init__(
        self,
        probe: Optional[PlatformProbe] = None,
        runner: CommandRunner = run_command,
    ):
        self._probe = probe or select_platform_probe()
        self._run = runner

    async def scan_ports(self, pid: int) -> Set[int]:
        """
        Args:
            pid: Owning process id

        Returns:
            Set of listening ports (possibly empty)

        Raises:
            ScanError: Every strategy failed to execute
        """
        failures: List[Tuple[str, str]] = []

        for strategy in self._probe.port_strategies(pid):
            try:
                output = await self._run(strategy.argv)
            except CommandError as e:
                if e.returncode in strategy.empty_exit_codes and not e.output.strip():
                    lib_logger.debug(
                        f"Port strategy '{strategy.name}' found no listeners for PID {pid}"
                    )
                    return set()
                lib_logger.debug(f"Port strategy '{strategy.name}' failed: {e.reason}")
                failures.append((strategy.name, e.reason))
                continue

            ports = strategy.parse(output)
            lib_logger.debug(
                f"Port strategy '{strategy.name}' found {sorted(ports)} for PID {pid}"
            )
            return ports

        raise ScanError(pid, failures)
