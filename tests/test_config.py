"""
UsageConfig environment parsing.
"""

import os
from pathlib import Path

from antigravity_usage.config import UsageConfig


def test_defaults_without_environment():
    config = UsageConfig.from_env(environ={})
    assert config.verify_ssl is True
    assert config.max_attempts == 3
    assert config.retry_base_delay == 0.15
    assert config.request_timeout == 2.5
    assert config.cache_ttl == 300
    assert config.history_window == 7 * 86400
    assert config.min_threshold == 0.0001
    assert config.max_threshold == 0.9


def test_values_from_environment():
    config = UsageConfig.from_env(
        environ={
            "AG_USAGE_VERIFY_SSL": "false",
            "AG_USAGE_RETRY_ATTEMPTS": "5",
            "AG_USAGE_RETRY_DELAY": "0.5",
            "AG_USAGE_CACHE_TTL": "60",
            "AG_USAGE_HISTORY_WINDOW_DAYS": "1",
            "AG_USAGE_STATE_FILE": "/tmp/ag/state.json",
        }
    )
    assert config.verify_ssl is False
    assert config.max_attempts == 5
    assert config.retry_base_delay == 0.5
    assert config.cache_ttl == 60
    assert config.history_window == 86400
    assert config.state_file == Path("/tmp/ag/state.json")


def test_invalid_values_fall_back_to_defaults():
    config = UsageConfig.from_env(
        environ={
            "AG_USAGE_VERIFY_SSL": "maybe",
            "AG_USAGE_RETRY_ATTEMPTS": "three",
            "AG_USAGE_MAX_THRESHOLD": "",
        }
    )
    assert config.verify_ssl is True
    assert config.max_attempts == 3
    assert config.max_threshold == 0.9


def test_retry_attempts_floor():
    assert UsageConfig.from_env(environ={"AG_USAGE_RETRY_ATTEMPTS": "0"}).max_attempts == 1


def test_env_file_is_loaded(tmp_path, monkeypatch):
    monkeypatch.delenv("AG_USAGE_CACHE_TTL", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("AG_USAGE_CACHE_TTL=42\n", encoding="utf-8")

    try:
        config = UsageConfig.from_env(env_file=env_file)
    finally:
        os.environ.pop("AG_USAGE_CACHE_TTL", None)
    assert config.cache_ttl == 42
