# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Key-value persistence for usage history and last-seen quotas.

The tracker only needs get(key, default) and update(key, value). Two
backings are provided: an in-memory store and a JSON file store that
rewrites the whole document atomically on every update.
"""

import asyncio
import copy
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..core.errors import PersistenceError

lib_logger = logging.getLogger("antigravity_usage")


class KeyValueStore(ABC):
    """Abstract get/update store."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return a copy of the stored value, or default when absent."""

    @abstractmethod
    async def update(self, key: str, value: Any) -> None:
        """
        Persist value under key.

        Raises:
            PersistenceError: The value could not be written; the store
                keeps its previous value for key
        """


class MemoryStore(KeyValueStore):
    """Process-local store, used for tests and --no-persist runs."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def update(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)


class JsonFileStore(KeyValueStore):
    """
    JSON document on disk, loaded once at construction. An unreadable or
    corrupt document is logged and replaced on the next successful write.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash mid-write never leaves a truncated document.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            lib_logger.debug(f"No state file at {self.path}, starting empty")
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            lib_logger.error(f"Failed to read {self.path}, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            lib_logger.error(
                f"Unexpected document type in {self.path}, starting empty: "
                f"{type(data).__name__}"
            )
            return {}
        lib_logger.debug(f"Loaded state from {self.path} ({len(data)} keys)")
        return data

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def _write(self, document: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    async def update(self, key: str, value: Any) -> None:
        document = dict(self._data)
        document[key] = copy.deepcopy(value)
        try:
            await asyncio.to_thread(self._write, document)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to write {self.path}: {e}") from e
        self._data = document
