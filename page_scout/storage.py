# File: page_scout/storage.py
"""page_scout.storage: storage tiers and the best-effort result store adapter.

Three tiers are involved:

* durable: :class:`JsonFileStore`, survives process restarts;
* ephemeral global: key ``lastResult`` of the session tier;
* ephemeral per surface: key ``lastBySurface`` of the session tier,
  a mapping ``surface id -> latest record``.

Every write goes through :class:`ResultStore`, which never lets a tier
failure reach the caller; it is logged as :class:`StorageUnavailable`.
"""
from __future__ import annotations

import asyncio
import copy
import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar, Union

from page_scout.errors import StorageUnavailable
from page_scout.logger import log_swallowed, logger
from page_scout.models import RuntimeRun, ScanRecord, SurfaceId
from page_scout.utils import (
    ARCHIVE_PREFIX,
    LAST_RUN_KEY,
    RUN_PREFIX,
    SESSION_BY_SURFACE_KEY,
    SESSION_LAST_KEY,
    key_timestamp,
)

__all__ = ["StorageTier", "MemoryStore", "JsonFileStore", "ResultStore"]

T = TypeVar("T")


class StorageTier(ABC):
    """Minimal async key-value storage primitive."""

    @abstractmethod
    async def get(self, key: str) -> Any:
        """Value stored under *key* or ``None``."""

    @abstractmethod
    async def set(self, items: Mapping[str, Any]) -> None:
        """Store every ``key: value`` pair of *items*."""

    @abstractmethod
    async def items(self) -> Dict[str, Any]:
        """Snapshot of the whole tier."""


class MemoryStore(StorageTier):
    """Process-lifetime tier. Values are deep-copied in and out like a structured clone."""

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}

    async def get(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(key))

    async def set(self, items: Mapping[str, Any]) -> None:
        self._data.update(copy.deepcopy(dict(items)))

    async def items(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)


class JsonFileStore(StorageTier):
    """Durable tier backed by one JSON object on disk.

    File I/O runs in a worker thread; writes replace the file atomically.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()
        self._lock = asyncio.Lock()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        if not isinstance(data, dict):
            raise ValueError(f"{self.path}: top level must be a JSON object")
        return data

    def _dump(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.path)

    async def get(self, key: str) -> Any:
        data = await asyncio.to_thread(self._load)
        return data.get(key)

    async def set(self, items: Mapping[str, Any]) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._load)
            data.update(items)
            await asyncio.to_thread(self._dump, data)

    async def items(self) -> Dict[str, Any]:
        return await asyncio.to_thread(self._load)


class ResultStore:
    """Adapter over the durable and session tiers.

    Either tier may be ``None`` (not present on this host); reads then
    return absence and writes are logged and skipped.
    """

    def __init__(self, durable: Optional[StorageTier], session: Optional[StorageTier]) -> None:
        self.durable = durable
        self.session = session
        self._surface_lock = asyncio.Lock()

    # ------------------------------------------------------------------ guards

    @staticmethod
    def _require(tier: Optional[StorageTier], name: str) -> StorageTier:
        if tier is None:
            raise StorageUnavailable(f"{name} tier is not available")
        return tier

    async def _guarded(self, op: str, action: Callable[[], Awaitable[T]], default: T) -> T:
        try:
            return await action()
        except Exception as exc:
            err = exc if isinstance(exc, StorageUnavailable) else StorageUnavailable(str(exc))
            log_swallowed(err, op)
            return default

    # ------------------------------------------------------------------ writes

    async def put_durable(self, key: str, record: ScanRecord) -> bool:
        async def _write() -> bool:
            await self._require(self.durable, "durable").set({key: record.to_dict()})
            return True

        return await self._guarded(f"put_durable({key})", _write, False)

    async def put_run(self, key: str, run: RuntimeRun) -> bool:
        """Stores the finalized run and moves the ``run:last`` pointer to it in one write."""

        async def _write() -> bool:
            await self._require(self.durable, "durable").set({key: run.to_dict(), LAST_RUN_KEY: key})
            return True

        return await self._guarded(f"put_run({key})", _write, False)

    async def set_session_global(self, record: ScanRecord) -> bool:
        async def _write() -> bool:
            await self._require(self.session, "session").set({SESSION_LAST_KEY: record.to_dict()})
            return True

        return await self._guarded("set_session_global", _write, False)

    async def update_session_per_surface(self, surface_id: SurfaceId, record: ScanRecord) -> bool:
        async def _write() -> bool:
            tier = self._require(self.session, "session")
            # read-modify-write; serialised so concurrent surfaces do not lose updates
            async with self._surface_lock:
                mapping = await tier.get(SESSION_BY_SURFACE_KEY) or {}
                mapping[str(surface_id)] = record.to_dict()
                await tier.set({SESSION_BY_SURFACE_KEY: mapping})
            return True

        return await self._guarded(f"update_session_per_surface({surface_id})", _write, False)

    # ------------------------------------------------------------------- reads

    async def _durable_items(self) -> Dict[str, Any]:
        return await self._guarded(
            "read durable", lambda: self._require(self.durable, "durable").items(), {}
        )

    async def list_durable(self) -> List[Tuple[str, ScanRecord]]:
        """Archived one-shot scans, most recent first."""
        found: List[Tuple[int, str, ScanRecord]] = []
        for key, value in (await self._durable_items()).items():
            ts = key_timestamp(key, ARCHIVE_PREFIX)
            if ts is None:
                continue
            try:
                found.append((ts, key, ScanRecord.from_dict(value)))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable archive entry %s: %s", key, exc)
        found.sort(key=lambda item: item[0], reverse=True)
        return [(key, record) for _, key, record in found]

    async def get_durable(self, key: str) -> Optional[ScanRecord]:
        async def _read() -> Optional[ScanRecord]:
            value = await self._require(self.durable, "durable").get(key)
            return ScanRecord.from_dict(value) if value else None

        return await self._guarded(f"get_durable({key})", _read, None)

    async def list_runs(self) -> List[Tuple[str, RuntimeRun]]:
        """Finalized runtime runs ordered by the numeric key suffix, newest first."""
        found: List[Tuple[int, str, RuntimeRun]] = []
        for key, value in (await self._durable_items()).items():
            ts = key_timestamp(key, RUN_PREFIX)
            if ts is None:
                continue
            try:
                found.append((ts, key, RuntimeRun.from_dict(value)))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable run %s: %s", key, exc)
        found.sort(key=lambda item: item[0], reverse=True)
        return [(key, run) for _, key, run in found]

    async def last_run(self) -> Tuple[Optional[str], Optional[RuntimeRun]]:
        """Run named by the ``run:last`` pointer, or the newest run if the pointer is missing."""
        items = await self._durable_items()
        key = items.get(LAST_RUN_KEY)
        if key and key in items:
            try:
                return key, RuntimeRun.from_dict(items[key])
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Last run pointer %s is unreadable: %s", key, exc)
        runs = await self.list_runs()
        return runs[0] if runs else (None, None)

    async def get_session_global(self) -> Optional[ScanRecord]:
        async def _read() -> Optional[ScanRecord]:
            value = await self._require(self.session, "session").get(SESSION_LAST_KEY)
            return ScanRecord.from_dict(value) if value else None

        return await self._guarded("get_session_global", _read, None)

    async def get_session_map(self) -> Dict[str, ScanRecord]:
        async def _read() -> Dict[str, ScanRecord]:
            mapping = await self._require(self.session, "session").get(SESSION_BY_SURFACE_KEY) or {}
            return {sid: ScanRecord.from_dict(value) for sid, value in mapping.items()}

        return await self._guarded("get_session_map", _read, {})

    async def get_session_per_surface(self, surface_id: Optional[SurfaceId]) -> Optional[ScanRecord]:
        if surface_id is None:
            return None
        return (await self.get_session_map()).get(str(surface_id))
