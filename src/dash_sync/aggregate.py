"""Single-document store for the check-in aggregate.

The habit tracker mutates its state on nearly every interaction, so saves
are coalesced with a trailing-edge debounce: only the last state of a
burst is committed.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from .cache import LocalCache, get_json, set_json
from .debounce import Debouncer
from .exceptions import DocumentParseError
from .models import CheckinData, CommitResult
from .pipeline import DEFAULT_MAX_ATTEMPTS, Notifier, WritePipeline
from .store_protocol import ObjectStoreProtocol

logger = logging.getLogger(__name__)

DOCUMENT_NAME = "data.json"
DEFAULT_DEBOUNCE_SECONDS = 1.0
COMMIT_MESSAGE = "Update checkin data"

EVENTS_KEY = "checkin-events"
RECORDS_KEY = "checkin-records"
POSITIONS_KEY = "checkin-positions"
CACHE_KEYS = (EVENTS_KEY, RECORDS_KEY, POSITIONS_KEY)
"""Local cache keys holding the three parts of the aggregate."""


def document_path(collection_root: str) -> str:
    return f"{collection_root.rstrip('/')}/{DOCUMENT_NAME}"


def encode_document(data: CheckinData) -> bytes:
    return json.dumps(data.to_dict(), indent=2, ensure_ascii=False).encode()


def decode_document(path: str, content: bytes) -> CheckinData:
    """
    Decode the aggregate document.

    Raises:
        DocumentParseError: If any part of the document is malformed
    """
    try:
        return CheckinData.from_dict(json.loads(content.decode("utf-8")))
    except Exception as e:
        raise DocumentParseError(path, str(e)) from e


def read_cached(cache: LocalCache) -> CheckinData | None:
    """
    Assemble the aggregate from the local cache.

    Returns:
        The cached state, or None when no part is cached

    Raises:
        DocumentParseError: If a cached part is malformed
    """
    parts: dict[str, Any] = {
        "events": get_json(cache, EVENTS_KEY),
        "records": get_json(cache, RECORDS_KEY),
        "positions": get_json(cache, POSITIONS_KEY),
    }
    if all(v is None for v in parts.values()):
        return None
    try:
        return CheckinData.from_dict(parts)
    except Exception as e:
        raise DocumentParseError("cache:checkin", str(e)) from e


def write_cached(cache: LocalCache, data: CheckinData) -> None:
    doc = data.to_dict()
    set_json(cache, EVENTS_KEY, doc["events"])
    set_json(cache, RECORDS_KEY, doc["records"])
    set_json(cache, POSITIONS_KEY, doc["positions"])


def clear_cached(cache: LocalCache) -> None:
    for key in CACHE_KEYS:
        cache.clear(key)


class AggregateStore:
    """
    Persist the CheckinData document as one file.

    Args:
        store: Object store backend
        branch: Branch to commit to
        collection_root: Directory holding ``data.json``
        debounce_seconds: Quiet period before a scheduled save runs
        cache: Optional local mirror written on every scheduled save
        max_attempts: Pipeline runs allowed on ref conflicts
        notify: Optional user-facing notification callback

    Example:
        async with AggregateStore(store, "main", "public/checkin") as checkins:
            data = await checkins.load() or CheckinData()
            checkins.schedule_save(toggle_checkin(data, "2024-01-15", "e1"))
    """

    def __init__(
        self,
        store: ObjectStoreProtocol,
        branch: str,
        collection_root: str,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        cache: LocalCache | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        notify: Notifier | None = None,
    ) -> None:
        self.store = store
        self.branch = branch
        self.path = document_path(collection_root)
        self.cache = cache
        self.max_attempts = max_attempts
        self.notify = notify
        self._debouncer: Debouncer[CheckinData] = Debouncer(debounce_seconds, self.save)

    @property
    def pending(self) -> bool:
        """True while a scheduled save has not been committed yet."""
        return self._debouncer.pending or self._debouncer.running

    async def load(self) -> CheckinData | None:
        """
        Fetch the remote document.

        Returns:
            The document, or None when it does not exist yet

        Raises:
            StoreError: On fetch failure
            DocumentParseError: If the document is malformed
        """
        content = await self.store.read_path(self.path, self.branch)
        if content is None:
            logger.debug("No checkin document at %s", self.path)
            return None
        return decode_document(self.path, content)

    async def save(self, data: CheckinData) -> CommitResult:
        """Commit ``data`` immediately."""
        pipeline = WritePipeline(
            self.store,
            self.branch,
            {self.path: encode_document(data)},
            COMMIT_MESSAGE,
            max_attempts=self.max_attempts,
            notify=self.notify,
        )
        return await pipeline.run()

    def schedule_save(self, data: CheckinData) -> None:
        """
        Queue ``data`` for a debounced save.

        A save already queued is replaced and its timer restarted.
        """
        if self.cache is not None:
            write_cached(self.cache, data)
        self._debouncer.schedule(data)

    async def flush(self) -> None:
        """
        Save any queued state now and wait for in-flight saves.

        Raises:
            StoreError: If a save this call waited for failed
        """
        await self._debouncer.flush()

    def discard(self) -> None:
        """Drop a queued save without committing it."""
        self._debouncer.cancel()

    async def aclose(self) -> None:
        await self.flush()

    async def __aenter__(self) -> AggregateStore:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
