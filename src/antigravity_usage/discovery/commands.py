# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Read-only subprocess execution for process and socket listings.
"""

import asyncio
import locale
import logging
from typing import Awaitable, Callable, Sequence

from ..core.constants import COMMAND_TIMEOUT
from ..core.errors import CommandError

lib_logger = logging.getLogger("antigravity_usage")

# Signature of anything that can run a listing command and return its stdout.
# Tests substitute a fake that replays captured output.
CommandRunner = Callable[[Sequence[str]], Awaitable[str]]


async def run_command(argv: Sequence[str], timeout: float = COMMAND_TIMEOUT) -> str:
    """
    Run a command without a shell and return its decoded stdout.

    Args:
        argv: Program and arguments
        timeout: Seconds before the process is killed

    Returns:
        Standard output as text

    Raises:
        CommandError: Executable missing, timeout, or non-zero exit status
    """
    lib_logger.debug(f"Running command: {' '.join(argv)}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise CommandError(argv, f"failed to start: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        proc.kill()
        await proc.wait()
        raise CommandError(argv, f"timed out after {timeout:.0f}s") from e

    # Listing tools print in the user's locale encoding (cp850/cp1252 on Windows)
    encoding = locale.getpreferredencoding(False) or "utf-8"
    out_text = stdout.decode(encoding, errors="replace")

    if proc.returncode != 0:
        err_text = stderr.decode(encoding, errors="replace").strip()
        raise CommandError(
            argv,
            err_text or f"exited with {proc.returncode}",
            returncode=proc.returncode,
            output=out_text,
        )
    return out_text
