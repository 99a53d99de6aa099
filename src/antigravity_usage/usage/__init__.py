# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from .storage import JsonFileStore, KeyValueStore, MemoryStore
from .tracker import UsageTracker

__all__ = ["KeyValueStore", "MemoryStore", "JsonFileStore", "UsageTracker"]
