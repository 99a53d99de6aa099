# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Terminal usage monitor.

Polls the local Antigravity language server through UsageService and
renders plan info, per-model quotas and the locally tracked weekly usage.
Uses rich for output; all discovery and tracking live in antigravity_usage.
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from antigravity_usage.core.errors import UsageMonitorError
from antigravity_usage.core.types import ModelQuota, UsageData
from antigravity_usage.service import UsageService

from .alerts import QuotaAlertTracker

lib_logger = logging.getLogger("antigravity_usage")

# =============================================================================
# DISPLAY CONFIGURATION
# =============================================================================

MODEL_LABEL_WIDTH = 32
QUOTA_BAR_WIDTH = 20
MAX_CONSECUTIVE_ERRORS = 5

# (minimum percent, color) checked top-down
QUOTA_COLORS = (
    (70, "green"),
    (40, "yellow"),
    (20, "dark_orange"),
    (0, "red"),
)

# =============================================================================


def quota_color(percent: int) -> str:
    for minimum, color in QUOTA_COLORS:
        if percent >= minimum:
            return color
    return "red"


def create_progress_bar(percent: Optional[int], width: int = QUOTA_BAR_WIDTH) -> str:
    """Create a text-based progress bar."""
    if percent is None:
        return "░" * width
    filled = int(max(0, min(100, percent)) / 100 * width)
    return "▓" * filled + "░" * (width - filled)


def format_countdown(reset_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Format time until reset (e.g., '2d 3h 15m'); 'Never' when unbounded."""
    if reset_at is None:
        return "Never"
    now = now or datetime.now(timezone.utc)
    seconds = int((reset_at - now).total_seconds())
    if seconds <= 0:
        return "Resetting..."
    days, rem = divmod(seconds, 86400)
    hours, rem = divmod(rem, 3600)
    mins = rem // 60
    prefix = f"{days}d " if days > 0 else ""
    return f"{prefix}{hours}h {mins}m"


def format_reset_time(reset_at: Optional[datetime]) -> str:
    """Format reset time in local time for display."""
    if reset_at is None:
        return "-"
    return reset_at.astimezone().strftime("%b %d %H:%M")


def format_skills(model: ModelQuota) -> str:
    skills = model.skills
    flags = [
        ("img", skills.image),
        ("vid", skills.video),
        ("aud", skills.audio),
        ("doc", skills.docs),
    ]
    return " ".join(name for name, enabled in flags if enabled) or "-"


class UsageMonitor:
    """Main monitor loop."""

    def __init__(
        self,
        service: UsageService,
        console: Optional[Console] = None,
        interval: float = 60.0,
    ):
        self.service = service
        self.console = console or Console(emoji_variant="text")
        self.interval = interval
        self.alerts = QuotaAlertTracker()
        self.consecutive_errors = 0
        self.last_error: Optional[str] = None

    # =========================================================================
    # RENDERING
    # =========================================================================

    def build_plan_panel(self, data: UsageData) -> Panel:
        stats = data.global_stats
        text = Text()
        text.append(f"Plan: {stats.plan_name}\n", style="bold")
        text.append(
            f"Prompt credits: {stats.prompt_credits.available}/{stats.prompt_credits.total}   "
            f"Flow credits: {stats.flow_credits.available}/{stats.flow_credits.total}\n"
        )
        features = [
            ("Fast autocomplete", stats.fast_autocomplete),
            ("Premium models", stats.premium_models),
            ("Web search", stats.web_search),
            ("Browser", stats.browser),
            ("Knowledge base", stats.knowledge_base),
            ("MCP", stats.mcp),
            ("Auto-run", stats.auto_run),
        ]
        for name, enabled in features:
            text.append(f"{name} ", style="green" if enabled else "dim")
        text.append(f"\nChat input limit: {stats.chat_input_limit}", style="dim")
        return Panel(text, title="Antigravity", border_style="cyan")

    def build_model_table(self, data: UsageData) -> Table:
        table = Table(expand=False, header_style="bold")
        table.add_column("Model", width=MODEL_LABEL_WIDTH, no_wrap=True)
        table.add_column("Quota", no_wrap=True)
        table.add_column("Left", justify="right")
        table.add_column("Resets", no_wrap=True)
        table.add_column("In", no_wrap=True)
        table.add_column("Skills", style="dim")

        for model in sorted(data.models, key=lambda m: m.label.lower()):
            percent = model.percent
            color = quota_color(percent)
            label = Text(model.label)
            if model.tag:
                label.append(f" ({model.tag})", style="bold magenta")
            if model.is_recommended:
                label.append(" *", style="cyan")
            table.add_row(
                label,
                Text(create_progress_bar(percent), style=color),
                Text(f"{percent}%", style=color),
                format_reset_time(model.reset_at),
                format_countdown(model.reset_at),
                format_skills(model),
            )
        return table

    def render(self, data: UsageData) -> None:
        self.console.print(self.build_plan_panel(data))
        self.console.print(self.build_model_table(data))
        self.console.print(
            f"[bold]Estimated usage (rolling window):[/bold] "
            f"{data.weekly_usage * 100:.1f}% of a full quota"
        )
        fetched = datetime.fromtimestamp(data.fetched_at or time.time())
        self.console.print(f"[dim]Updated {fetched.strftime('%H:%M:%S')}[/dim]")

    def render_error(self) -> None:
        self.console.print(
            Panel(
                f"Failed to fetch usage data.\n\n"
                f"[bold]Error:[/bold] {escape(self.last_error or '')}\n\n"
                f"[bold]Attempts:[/bold] {self.consecutive_errors}/{MAX_CONSECUTIVE_ERRORS}",
                title="Connection Error",
                border_style="red",
            )
        )
        if self.consecutive_errors >= MAX_CONSECUTIVE_ERRORS:
            self.console.print(
                f"[red]Failed to connect after {MAX_CONSECUTIVE_ERRORS} attempts. "
                "Please ensure Antigravity is running.[/red]"
            )

    # =========================================================================
    # REFRESH
    # =========================================================================

    async def refresh_once(self) -> Optional[UsageData]:
        """
        Run one refresh cycle and render the outcome.

        Returns:
            UsageData on success, None on a library error
        """
        try:
            data = await self.service.get_usage_data()
        except UsageMonitorError as e:
            self.consecutive_errors += 1
            self.last_error = str(e)
            lib_logger.error(
                f"Failed to refresh data "
                f"(attempt {self.consecutive_errors}/{MAX_CONSECUTIVE_ERRORS}): {e}"
            )
            self.render_error()
            return None

        self.consecutive_errors = 0
        self.last_error = None
        self.render(data)
        for alert in self.alerts.check(data.models):
            style = "yellow" if alert.level == "warning" else "green"
            self.console.print(f"[{style}]{escape(alert.message)}[/{style}]")
        return data

    async def run(self, once: bool = False) -> int:
        """
        Refresh until interrupted (or once).

        Returns:
            Process exit code
        """
        while True:
            data = await self.refresh_once()
            if once:
                return 0 if data is not None else 1
            await asyncio.sleep(self.interval)


async def dump_raw_status(service: UsageService, output: Path) -> Path:
    """
    Discover the language server, fetch GetUserStatus once and write the raw
    JSON to output.
    """
    payload = await service.fetch_raw_status()
    output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return output
