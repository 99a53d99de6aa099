# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Constants shared by the discovery, client and tracking layers.
"""

# =============================================================================
# PROCESS DISCOVERY
# =============================================================================

# Substrings that mark a process listing line as a candidate
APP_IDENTIFIER = "antigravity"
CSRF_TOKEN_FLAG = "--csrf_token"
PROCESS_IDENTIFIERS = (APP_IDENTIFIER, CSRF_TOKEN_FLAG)

MAX_VALID_PID = 0x7FFFFFFF
MIN_PORT = 1
MAX_PORT = 65535

# Seconds allowed for a single listing command (ps, lsof, netstat, PowerShell)
COMMAND_TIMEOUT = 15.0

# =============================================================================
# LANGUAGE SERVER API
# =============================================================================

LOCALHOST = "127.0.0.1"
GET_USER_STATUS_PATH = "/exa.language_server_pb.LanguageServerService/GetUserStatus"
CSRF_HEADER = "X-Codeium-Csrf-Token"
IDE_NAME = "antigravity"
STATUS_REQUEST_BODY = {"metadata": {"ideName": IDE_NAME}}

# =============================================================================
# DEFAULTS (overridable through UsageConfig)
# =============================================================================

DEFAULT_REQUEST_TIMEOUT = 2.5  # seconds
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY = 0.15  # seconds, multiplied by the attempt number
DEFAULT_CACHE_TTL = 300  # 5 minutes
DEFAULT_HISTORY_WINDOW = 7 * 24 * 3600  # 7 days in seconds
DEFAULT_MIN_THRESHOLD = 0.0001
DEFAULT_MAX_THRESHOLD = 0.9
DEFAULT_REFRESH_INTERVAL = 60  # seconds

# =============================================================================
# PERSISTENCE KEYS
# =============================================================================

STORAGE_KEY_HISTORY = "usageHistory"
STORAGE_KEY_LAST_QUOTAS = "lastQuotas"
