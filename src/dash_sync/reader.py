"""Sharded collection reader.

The store exposes no directory listing, so shard existence is probed over a
bounded window of recent months. Absent, unreadable, and malformed shards
are skipped: partial results are preferred over total failure.
"""

from __future__ import annotations

import json
import logging
from datetime import date as Date
from typing import Generic

from .exceptions import DocumentParseError, StoreError
from .models import R, ShardSummary
from .sharding import DEFAULT_WINDOW_MONTHS, month_window, path_for, sort_newest_first
from .store_protocol import ObjectStoreProtocol

logger = logging.getLogger(__name__)


def decode_shard(record_type: type[R], path: str, content: bytes) -> list[R]:
    """
    Decode a shard file into records.

    Raises:
        DocumentParseError: If the content is not a JSON array of valid records
    """
    try:
        data = json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DocumentParseError(path, str(e)) from e
    if not isinstance(data, list):
        raise DocumentParseError(path, f"expected an array, got {type(data).__name__}")
    try:
        return [record_type.from_dict(item) for item in data]
    except Exception as e:
        raise DocumentParseError(path, f"invalid record: {e}") from e


class ShardedReader(Generic[R]):
    """
    Reconstruct a month-sharded collection, newest first.

    Args:
        store: Object store backend
        collection_root: Directory holding the shard files
        record_type: Record class with a ``from_dict`` constructor
        ref: Branch or commit to read (defaults to the store's branch)
        window_months: Number of months probed, ending at the current one
    """

    def __init__(
        self,
        store: ObjectStoreProtocol,
        collection_root: str,
        record_type: type[R],
        *,
        ref: str | None = None,
        window_months: int = DEFAULT_WINDOW_MONTHS,
    ) -> None:
        self.store = store
        self.collection_root = collection_root
        self.record_type = record_type
        self.ref = ref
        self.window_months = window_months

    async def read_shard(self, shard_key: str) -> list[R] | None:
        """
        Read one shard.

        Returns:
            The shard's records, or None when the shard does not exist

        Raises:
            StoreError: On fetch failure
            DocumentParseError: If the shard is malformed
        """
        path = path_for(self.collection_root, shard_key)
        content = await self.store.read_path(path, self.ref)
        if content is None:
            return None
        return decode_shard(self.record_type, path, content)

    async def _probe(self, today: Date | None, strict: bool = False) -> dict[str, list[R]]:
        shards: dict[str, list[R]] = {}
        for key in month_window(today or Date.today(), self.window_months):
            try:
                records = await self.read_shard(key)
            except StoreError as e:
                if strict:
                    raise
                logger.warning("Skipping shard %s: fetch failed: %s", key, e)
                continue
            except DocumentParseError as e:
                logger.warning("Skipping shard %s: %s", key, e.reason)
                continue
            if records is None:
                logger.debug("Shard %s absent", key)
                continue
            shards[key] = records
        return shards

    async def read(self, today: Date | None = None, *, strict: bool = False) -> list[R]:
        """
        Read every shard in the probe window.

        Args:
            today: Anchor of the window (defaults to the current date)
            strict: Propagate fetch failures instead of skipping the shard.
                Malformed shards are still skipped.

        Returns:
            All readable records sorted non-increasing by ``sort_key``

        Raises:
            StoreError: In strict mode, when any shard could not be fetched
        """
        shards = await self._probe(today, strict)
        return sort_newest_first(r for records in shards.values() for r in records)

    async def exists(self, today: Date | None = None) -> bool:
        """
        Check whether any shard in the window exists.

        Fetch failures propagate so that callers never mistake an
        unreachable store for an empty one.
        """
        for key in month_window(today or Date.today(), self.window_months):
            path = path_for(self.collection_root, key)
            if await self.store.read_path(path, self.ref) is not None:
                return True
        return False

    async def index(self, today: Date | None = None) -> list[ShardSummary]:
        """Summarize each non-empty shard in the window, newest month first."""
        shards = await self._probe(today)
        summaries = []
        for key in sorted(shards, reverse=True):
            records = shards[key]
            if not records:
                continue
            latest = sort_newest_first(records)[0]
            summaries.append(ShardSummary(shard_key=key, count=len(records), latest_date=latest.date))
        return summaries
