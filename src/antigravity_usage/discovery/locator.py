# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Process Locator

Finds the running Antigravity language server and extracts the CSRF token
from its command line.
"""

import logging
from typing import Optional

from ..core.errors import CommandError, NotFoundError, TokenMissingError, mask_token
from ..core.types import ProcessHandle
from .commands import CommandRunner, run_command
from .parsers import filter_candidates, parse_candidate
from .platforms import PlatformProbe, select_platform_probe

lib_logger = logging.getLogger("antigravity_usage")


class ProcessLocator:
    """
    Locates the target process through the platform's process listing.

    Candidates are lines mentioning the application identifier or the token
    flag. They are tried in listing order; the first one with both a valid
    PID and a token wins.
    """

    def __init__(
        self,
        probe: Optional[PlatformProbe] = None,
        runner: CommandRunner = run_command,
    ):
        self._probe = probe or select_platform_probe()
        self._run = runner

    async def locate(self) -> ProcessHandle:
        """
        Find the language server process.

        Returns:
            ProcessHandle with pid and CSRF token

        Raises:
            NotFoundError: No candidate process, or the listing could not run
            TokenMissingError: Candidates exist but none has a usable token
        """
        argv = self._probe.process_listing_command()
        try:
            listing = await self._run(argv)
        except CommandError as e:
            raise NotFoundError(
                f"Antigravity process not found: process listing failed ({e})"
            ) from e

        candidates = filter_candidates(listing)
        lib_logger.debug(
            f"[{self._probe.name}] {len(candidates)} candidate process line(s)"
        )
        if not candidates:
            raise NotFoundError()

        for line in candidates:
            pid, token = parse_candidate(line)
            if pid is None or token is None:
                lib_logger.debug(
                    f"Skipping candidate (pid={pid}, token={'yes' if token else 'no'})"
                )
                continue
            lib_logger.debug(f"Found process PID={pid}, token={mask_token(token)}")
            return ProcessHandle(pid=pid, auth_token=token)

        raise TokenMissingError(len(candidates))
