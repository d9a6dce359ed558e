"""One-time migration of local-only state into the remote store.

A migration only writes when the remote store reports no existing data,
which makes it idempotent: after one successful run the remote copy
exists and every later run is a no-op. The local cache is cleared only
after the remote write is confirmed.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .aggregate import AggregateStore, clear_cached, read_cached
from .cache import LocalCache, get_json
from .exceptions import DataError, DocumentParseError, StoreError
from .models import CheckinData, Thought
from .reader import ShardedReader
from .writer import ShardedWriter

logger = logging.getLogger(__name__)

THOUGHTS_KEY = "thoughts"
"""Local cache key of the legacy thoughts array."""


def read_cached_thoughts(cache: LocalCache, key: str = THOUGHTS_KEY) -> list[Thought] | None:
    """
    Decode the cached thoughts array, upgrading legacy entries.

    Returns:
        The thoughts, or None when nothing is cached

    Raises:
        DataError: If the cached value is malformed
    """
    raw = get_json(cache, key)
    if not raw:
        return None
    if not isinstance(raw, list):
        raise DocumentParseError(f"cache:{key}", "expected an array")
    try:
        return [Thought.from_dict(item) for item in raw]
    except DataError:
        raise
    except Exception as e:
        raise DocumentParseError(f"cache:{key}", str(e)) from e


class MigrationStatus(str, Enum):
    """Outcome of a migration run."""

    MIGRATED = "migrated"
    REMOTE_EXISTS = "remote_exists"
    NOTHING_TO_MIGRATE = "nothing_to_migrate"
    REMOTE_UNAVAILABLE = "remote_unavailable"
    LOCAL_UNREADABLE = "local_unreadable"
    WRITE_FAILED = "write_failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class MigrationResult:
    """
    Result of ``migrate_if_needed()``.

    Attributes:
        status: What happened
        error: The underlying failure for the soft-failure statuses
    """

    status: MigrationStatus
    error: Exception | None = None

    @property
    def migrated(self) -> bool:
        return self.status is MigrationStatus.MIGRATED

    @property
    def should_retry(self) -> bool:
        """True when the caller should re-run the startup sequence later."""
        return self.status in (MigrationStatus.REMOTE_UNAVAILABLE, MigrationStatus.WRITE_FAILED)


class MigrationCoordinator(ABC):
    """
    Template for a gated local-to-remote transfer.

    Subclasses supply the remote existence probe, the local snapshot, the
    remote push, and the local cleanup.
    """

    name = "migration"

    def __init__(self, cache: LocalCache) -> None:
        self.cache = cache

    @abstractmethod
    async def remote_exists(self) -> bool:
        """Probe the remote store. Fetch failures must propagate."""

    @abstractmethod
    def load_local(self) -> Any | None:
        """Return the local snapshot, or None when there is nothing to move."""

    @abstractmethod
    async def push(self, snapshot: Any) -> None:
        """Write the snapshot as the initial remote state."""

    @abstractmethod
    def clear_local(self) -> None:
        """Remove the migrated local state."""

    async def migrate_if_needed(self) -> MigrationResult:
        """
        Move local state to the remote store if the remote has none.

        Never raises for store failures; they are reported through the
        result so that the caller can retry the whole startup later.
        """
        try:
            if await self.remote_exists():
                logger.debug("%s: remote data exists, skipping", self.name)
                return MigrationResult(MigrationStatus.REMOTE_EXISTS)
        except StoreError as e:
            logger.warning("%s: remote existence check failed: %s", self.name, e)
            return MigrationResult(MigrationStatus.REMOTE_UNAVAILABLE, e)

        try:
            snapshot = self.load_local()
        except DataError as e:
            logger.warning("%s: local cache unreadable, leaving it untouched: %s", self.name, e)
            return MigrationResult(MigrationStatus.LOCAL_UNREADABLE, e)
        if snapshot is None:
            return MigrationResult(MigrationStatus.NOTHING_TO_MIGRATE)

        try:
            await self.push(snapshot)
        except StoreError as e:
            logger.error("%s: remote write failed, local cache kept: %s", self.name, e)
            return MigrationResult(MigrationStatus.WRITE_FAILED, e)

        self.clear_local()
        logger.info("%s: local data migrated to remote store", self.name)
        return MigrationResult(MigrationStatus.MIGRATED)


class CheckinMigration(MigrationCoordinator):
    """Migrate the cached habit tracker aggregate."""

    name = "checkin-migration"

    def __init__(self, store: AggregateStore, cache: LocalCache) -> None:
        super().__init__(cache)
        self.store = store

    async def remote_exists(self) -> bool:
        try:
            return await self.store.load() is not None
        except DocumentParseError:
            # A corrupt remote document is still remote data; never overwrite it
            return True

    def load_local(self) -> CheckinData | None:
        data = read_cached(self.cache)
        if data is None or data.is_empty():
            return None
        return data

    async def push(self, snapshot: CheckinData) -> None:
        await self.store.save(snapshot)

    def clear_local(self) -> None:
        clear_cached(self.cache)


class NotesMigration(MigrationCoordinator):
    """Migrate cached thoughts into month shards."""

    name = "thoughts-migration"

    def __init__(
        self,
        reader: ShardedReader[Thought],
        writer: ShardedWriter[Thought],
        cache: LocalCache,
        key: str = THOUGHTS_KEY,
    ) -> None:
        super().__init__(cache)
        self.reader = reader
        self.writer = writer
        self.key = key

    async def remote_exists(self) -> bool:
        return await self.reader.exists()

    def load_local(self) -> list[Thought] | None:
        return read_cached_thoughts(self.cache, self.key)

    async def push(self, snapshot: list[Thought]) -> None:
        await self.writer.write(snapshot)

    def clear_local(self) -> None:
        self.cache.clear(self.key)
