# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Command line entry point: python -m usage_monitor
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from antigravity_usage.config import UsageConfig
from antigravity_usage.core.errors import UsageMonitorError
from antigravity_usage.service import UsageService
from antigravity_usage.usage.storage import MemoryStore

from .monitor import UsageMonitor, dump_raw_status


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="usage_monitor",
        description="Monitor Antigravity model quotas from the local language server.",
    )
    parser.add_argument("--once", action="store_true", help="Refresh once and exit")
    parser.add_argument(
        "--interval", type=float, default=None, help="Refresh interval in seconds"
    )
    parser.add_argument("--env-file", type=Path, default=None, help="Load settings from a .env file")
    parser.add_argument("--state-file", type=Path, default=None, help="Usage history file")
    parser.add_argument(
        "--no-persist",
        action="store_true",
        help="Keep usage history in memory only",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip TLS verification (the language server uses a self-signed certificate)",
    )
    parser.add_argument(
        "--probe",
        type=Path,
        metavar="OUT",
        default=None,
        help="Fetch GetUserStatus once and dump the raw JSON to OUT",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def setup_logging(console: Console, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    logging.getLogger("antigravity_usage").setLevel(
        logging.DEBUG if verbose else logging.INFO
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def _run(args: argparse.Namespace, console: Console) -> int:
    config = UsageConfig.from_env(env_file=args.env_file)
    if args.insecure:
        config.verify_ssl = False
    if args.state_file is not None:
        config.state_file = args.state_file.expanduser()
    if args.interval is not None:
        config.refresh_interval = args.interval

    store = MemoryStore() if args.no_persist else None
    async with UsageService.from_config(config, store=store) as service:
        if args.probe is not None:
            path = await dump_raw_status(service, args.probe)
            console.print(f"[green]Dumped raw status to {path}[/green]")
            return 0

        monitor = UsageMonitor(service, console=console, interval=config.refresh_interval)
        return await monitor.run(once=args.once)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console(emoji_variant="text")
    setup_logging(console, args.verbose)

    try:
        return asyncio.run(_run(args, console))
    except KeyboardInterrupt:
        return 130
    except UsageMonitorError as e:
        console.print(f"[red]{e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
