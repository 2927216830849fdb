"""
Quotebook Backend — Preference Store
====================================

What:  Async key-value persistence for local state: the remembered session and
       the presentation preferences.
How:   `PreferenceStore` defines the contract; `InMemoryPreferenceStore` keeps
       a dict, `JsonFilePreferenceStore` mirrors the dict to one JSON file.
Who:   SessionStore and PreferencesService read and write through it.

File format:
    A single JSON object, e.g.
        {"stayLoggedIn": true, "userEmail": "ada@example.com", "appTheme": "Dark"}

Write strategy (JsonFilePreferenceStore):
    1. Load lazily on first access (missing file → empty store)
    2. Apply the mutation to a copy of the in-memory dict
    3. Write the copy to `<path>.tmp`, then os.replace() it over the real
       file, so a crash mid-write leaves the previous file intact
    4. Only after the write succeeds does the copy become the in-memory dict;
       a failed write leaves memory and disk agreeing on the old contents
    Mutations are serialized by an asyncio.Lock.
"""

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import aiofiles

from quotebook.exceptions import PreferenceStorageError

logger = logging.getLogger(__name__)


class PreferenceStore(ABC):
    """
    Abstract async key-value store.

    Contract:
        - Values are JSON-serializable (str, bool, int, float, None)
        - get() of an absent key returns the default, never raises
        - remove() of absent keys is a no-op
    """

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for `key`, or `default` when absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store `value` under `key`."""
        ...

    @abstractmethod
    async def set_many(self, values: Dict[str, Any], remove: Iterable[str] = ()) -> None:
        """Store several keys and delete the `remove` keys in one write."""
        ...

    @abstractmethod
    async def remove(self, *keys: str) -> None:
        """Delete every listed key that exists."""
        ...

    async def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        """Return the present subset of `keys` as a dict."""
        sentinel = object()
        found: Dict[str, Any] = {}
        for key in keys:
            value = await self.get(key, sentinel)
            if value is not sentinel:
                found[key] = value
        return found


class InMemoryPreferenceStore(PreferenceStore):
    """Dict-backed store. Nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    async def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def set_many(self, values: Dict[str, Any], remove: Iterable[str] = ()) -> None:
        self._data.update(values)
        for key in remove:
            self._data.pop(key, None)

    async def remove(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)

    def snapshot(self) -> Dict[str, Any]:
        """Copy of the current contents (used by tests and diagnostics)."""
        return dict(self._data)


class JsonFilePreferenceStore(PreferenceStore):
    """
    Store persisted to a single JSON file.

    A corrupt or non-object file is logged and treated as empty; the next
    successful write replaces it.
    """

    def __init__(self, path: str):
        self.path = Path(path).resolve()
        self._data: Optional[Dict[str, Any]] = None
        self._lock = asyncio.Lock()
        logger.info("JsonFilePreferenceStore using %s", self.path)

    async def _load(self) -> Dict[str, Any]:
        if self._data is not None:
            return self._data

        if not self.path.exists():
            self._data = {}
            return self._data

        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
            loaded = json.loads(raw) if raw.strip() else {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Preference file %s unreadable, starting empty: %s", self.path, e)
            loaded = {}

        if not isinstance(loaded, dict):
            logger.warning("Preference file %s is not a JSON object, starting empty", self.path)
            loaded = {}

        self._data = loaded
        return self._data

    async def _flush(self, data: Dict[str, Any]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(data, indent=2, sort_keys=True))
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error("Failed to write preference file %s: %s", self.path, e)
            raise PreferenceStorageError(
                context={"path": str(self.path), "os_error": str(e)},
            )

    async def get(self, key: str, default: Any = None) -> Any:
        data = await self._load()
        return data.get(key, default)

    async def set(self, key: str, value: Any) -> None:
        await self.set_many({key: value})

    async def set_many(self, values: Dict[str, Any], remove: Iterable[str] = ()) -> None:
        async with self._lock:
            updated = dict(await self._load())
            updated.update(values)
            for key in remove:
                updated.pop(key, None)
            await self._flush(updated)
            self._data = updated

    async def remove(self, *keys: str) -> None:
        async with self._lock:
            current = await self._load()
            if not any(key in current for key in keys):
                return
            updated = {key: value for key, value in current.items() if key not in keys}
            await self._flush(updated)
            self._data = updated
