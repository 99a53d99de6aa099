# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Runtime configuration.

Values come from environment variables (optionally seeded from a .env file)
and fall back to the defaults in core.constants:

    AG_USAGE_VERIFY_SSL           Verify the language server certificate (true)
    AG_USAGE_RETRY_ATTEMPTS       Attempts per request (3)
    AG_USAGE_RETRY_DELAY          Linear backoff base in seconds (0.15)
    AG_USAGE_REQUEST_TIMEOUT      Per-request timeout in seconds (2.5)
    AG_USAGE_CACHE_TTL            Connection cache TTL in seconds (300)
    AG_USAGE_HISTORY_WINDOW_DAYS  Rolling usage window in days (7)
    AG_USAGE_MIN_THRESHOLD        Smallest drop counted as usage (0.0001)
    AG_USAGE_MAX_THRESHOLD        Drops at or above this are ignored (0.9)
    AG_USAGE_REFRESH_INTERVAL     Monitor refresh interval in seconds (60)
    AG_USAGE_STATE_FILE           Usage state file (~/.antigravity_usage/state.json)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import load_dotenv

from .core.constants import (
    DEFAULT_CACHE_TTL,
    DEFAULT_HISTORY_WINDOW,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_THRESHOLD,
    DEFAULT_MIN_THRESHOLD,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_BASE_DELAY,
)

lib_logger = logging.getLogger("antigravity_usage")

DEFAULT_STATE_FILE = Path("~/.antigravity_usage/state.json")

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    """Parse an integer from environment variable with fallback to default."""
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        lib_logger.warning(f"Invalid {name} value {raw!r}, using default {default}")
        return default


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        lib_logger.warning(f"Invalid {name} value {raw!r}, using default {default}")
        return default


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    lib_logger.warning(f"Invalid {name} value {raw!r}, using default {default}")
    return default


@dataclass
class UsageConfig:
    """
    Settings consumed by the discovery, client and tracking layers.
    """

    verify_ssl: bool = True
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY  # seconds
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT  # seconds
    cache_ttl: float = DEFAULT_CACHE_TTL  # seconds
    history_window: float = DEFAULT_HISTORY_WINDOW  # seconds
    min_threshold: float = DEFAULT_MIN_THRESHOLD
    max_threshold: float = DEFAULT_MAX_THRESHOLD
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL  # seconds
    state_file: Path = DEFAULT_STATE_FILE

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "UsageConfig":
        """
        Build a config from the environment.

        Args:
            env_file: Optional .env file loaded into os.environ first
                (existing variables win)
            environ: Mapping to read instead of os.environ; no .env file
                is loaded when given
        """
        if environ is None:
            if env_file is not None:
                load_dotenv(dotenv_path=env_file, override=False)
            environ = os.environ

        defaults = cls()
        max_attempts = _env_int(environ, "AG_USAGE_RETRY_ATTEMPTS", defaults.max_attempts)
        if max_attempts < 1:
            lib_logger.warning("AG_USAGE_RETRY_ATTEMPTS must be >= 1, using 1")
            max_attempts = 1

        window_days = _env_float(
            environ,
            "AG_USAGE_HISTORY_WINDOW_DAYS",
            defaults.history_window / 86400,
        )
        state_file = environ.get("AG_USAGE_STATE_FILE") or str(defaults.state_file)

        return cls(
            verify_ssl=_env_bool(environ, "AG_USAGE_VERIFY_SSL", defaults.verify_ssl),
            max_attempts=max_attempts,
            retry_base_delay=_env_float(
                environ, "AG_USAGE_RETRY_DELAY", defaults.retry_base_delay
            ),
            request_timeout=_env_float(
                environ, "AG_USAGE_REQUEST_TIMEOUT", defaults.request_timeout
            ),
            cache_ttl=_env_float(environ, "AG_USAGE_CACHE_TTL", defaults.cache_ttl),
            history_window=window_days * 86400,
            min_threshold=_env_float(
                environ, "AG_USAGE_MIN_THRESHOLD", defaults.min_threshold
            ),
            max_threshold=_env_float(
                environ, "AG_USAGE_MAX_THRESHOLD", defaults.max_threshold
            ),
            refresh_interval=_env_float(
                environ, "AG_USAGE_REFRESH_INTERVAL", defaults.refresh_interval
            ),
            state_file=Path(state_file).expanduser(),
        )
