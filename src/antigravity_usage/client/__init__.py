# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from .api_client import LanguageServerClient
from .connection_cache import ConnectionCache
from .status import parse_user_status

__all__ = ["LanguageServerClient", "ConnectionCache", "parse_user_status"]
