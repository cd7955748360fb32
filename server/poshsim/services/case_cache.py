"""File-backed cache of recently generated cases.

Serves as the fallback when the generator is unavailable or too slow. The
cache holds at most ``capacity`` entries in insertion order; older entries are
evicted first. Corrupt or missing files are treated as an empty cache and
rewritten, and malformed entries are dropped from the file. Storage faults are logged and never raised.
"""

import asyncio
import json
import logging
import os
import random
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from ..models.simulation import CACHE_CAPACITY, CacheEntry, CacheFile, CaseRecord

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _empty_cache() -> dict:
    return CacheFile(last_updated=_now_iso()).model_dump(by_alias=True)


class CaseCache:
    """Bounded JSON-file cache with a single in-process writer."""

    def __init__(
        self,
        path: str,
        capacity: int = CACHE_CAPACITY,
        rng: Optional[random.Random] = None,
    ):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.path = path
        self.capacity = capacity
        self._rng = rng or random.Random()
        self._lock = asyncio.Lock()

    # ---- file helpers (run in a worker thread) ----

    def _read_raw(self) -> Optional[dict]:
        """Return the decoded cache file, or None when missing/empty/corrupt."""
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Error reading case cache %s: %s", self.path, exc)
            return None

        if not content.strip():
            return None

        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            logger.warning("Case cache %s is not valid JSON: %s", self.path, exc)
            return None

        if not isinstance(data, dict) or not isinstance(data.get("cases"), list):
            logger.warning("Case cache %s has an unexpected shape", self.path)
            return None
        return data

    def _write_raw(self, data: dict) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def _initialize_sync(self) -> dict:
        data = self._read_raw()
        if data is not None:
            return data
        data = _empty_cache()
        try:
            self._write_raw(data)
            logger.info("Case cache created or reset at %s", self.path)
        except OSError as exc:
            logger.error("Failed to initialize case cache %s: %s", self.path, exc)
        return data

    def _write_entries(self, entries: list[CacheEntry]) -> bool:
        data = CacheFile(cases=entries, last_updated=_now_iso()).model_dump(by_alias=True)
        try:
            self._write_raw(data)
        except OSError as exc:
            logger.error("Failed to write case cache %s: %s", self.path, exc)
            return False
        return True

    def _save_sync(self, record: CaseRecord) -> None:
        entries = self._load_entries_sync()
        entries.append(CacheEntry(data=record, added_at=_now_iso()))
        entries = entries[max(0, len(entries) - self.capacity):]
        if self._write_entries(entries):
            logger.info("Case saved to cache (%d entries)", len(entries))

    def _load_entries_sync(self) -> list[CacheEntry]:
        """Valid entries in insertion order; malformed ones are dropped from the file."""
        data = self._read_raw()
        if data is None:
            self._initialize_sync()
            return []

        entries: list[CacheEntry] = []
        for raw_entry in data["cases"]:
            try:
                entries.append(CacheEntry.model_validate(raw_entry))
            except ValidationError as exc:
                logger.warning("Dropping malformed cache entry: %s", exc.errors()[:1])

        if len(entries) != len(data["cases"]) and self._write_entries(entries):
            logger.info("Case cache %s rewritten with %d valid entries", self.path, len(entries))
        return entries

    # ---- public API ----

    async def initialize(self) -> None:
        """Create an empty cache file unless a well-formed one already exists."""
        async with self._lock:
            await asyncio.to_thread(self._initialize_sync)

    async def save(self, record: CaseRecord) -> None:
        """Append a case, evicting the oldest beyond capacity."""
        async with self._lock:
            try:
                await asyncio.to_thread(self._save_sync, record)
            except Exception as exc:
                logger.error("Failed to save case to cache: %s", exc)

    async def get_random(self) -> Optional[CaseRecord]:
        """Return a uniformly random cached case, or None if there is none."""
        async with self._lock:
            try:
                entries = await asyncio.to_thread(self._load_entries_sync)
            except Exception as exc:
                logger.error("Failed to read case cache: %s", exc)
                return None

        if not entries:
            logger.info("Case cache is empty")
            return None
        return self._rng.choice(entries).data

    async def entries(self) -> list[CacheEntry]:
        async with self._lock:
            try:
                return await asyncio.to_thread(self._load_entries_sync)
            except Exception as exc:
                logger.error("Failed to read case cache: %s", exc)
                return []

    async def count(self) -> int:
        return len(await self.entries())

