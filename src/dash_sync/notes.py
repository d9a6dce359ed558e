"""Command-driven session over the thoughts collection.

Each command (``load``, ``submit``, ``delete``) produces a new immutable
NotesState. Writes go to the remote store when credentials are available;
otherwise, or when the remote write fails, the collection is mirrored to
the local cache so nothing typed is lost.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import tzinfo
from enum import Enum

from .auth import TokenProvider
from .cache import LocalCache, set_json
from .exceptions import DataError, StoreError
from .migration import THOUGHTS_KEY, read_cached_thoughts
from .models import Thought
from .reader import ShardedReader
from .sharding import shard_key_of, sort_newest_first
from .writer import ShardedWriter

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    IDLE = "idle"
    LOADED = "loaded"
    SAVED = "saved"
    SAVED_LOCALLY = "saved_locally"
    FAILED = "failed"


@dataclass(frozen=True)
class NotesState:
    """
    Snapshot of the session.

    Attributes:
        thoughts: Newest first
        status: Result of the last command
        remote: True when ``thoughts`` came from or was saved to the remote store
        error: Message of the last failure, if any
    """

    thoughts: tuple[Thought, ...] = ()
    status: SessionStatus = SessionStatus.IDLE
    remote: bool = False
    error: str | None = None

    @property
    def latest(self) -> Thought | None:
        return self.thoughts[0] if self.thoughts else None


class NotesSession:
    """
    Load, add, and remove thoughts.

    Args:
        reader: Reader over the thoughts collection
        writer: Writer over the same collection
        tokens: Decides whether the remote store is used
        cache: Local mirror used offline and after failed writes
        tz: Timezone for new thoughts' date/time (local time by default)
    """

    def __init__(
        self,
        reader: ShardedReader[Thought],
        writer: ShardedWriter[Thought],
        tokens: TokenProvider,
        cache: LocalCache | None = None,
        *,
        tz: tzinfo | None = None,
        cache_key: str = THOUGHTS_KEY,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.tokens = tokens
        self.cache = cache
        self.tz = tz
        self.cache_key = cache_key
        self._state = NotesState()
        self._remote_unread = False

    @property
    def state(self) -> NotesState:
        return self._state

    def _load_local(self) -> tuple[Thought, ...]:
        if self.cache is None:
            return ()
        try:
            thoughts = read_cached_thoughts(self.cache, self.cache_key) or []
        except DataError as e:
            logger.warning("Ignoring unreadable thoughts cache: %s", e)
            return ()
        return tuple(sort_newest_first(thoughts))

    def _mirror(self, thoughts: tuple[Thought, ...]) -> None:
        if self.cache is not None:
            set_json(self.cache, self.cache_key, [t.to_dict() for t in thoughts])

    async def load(self) -> NotesState:
        """
        Read the collection from the remote store, or the local cache offline.

        When the remote read fails the cached thoughts are returned with
        status FAILED, and later saves go to the local cache only until a
        ``load()`` succeeds.
        """
        if not self.tokens.has_credentials():
            self._state = NotesState(thoughts=self._load_local(), status=SessionStatus.LOADED)
            return self._state

        try:
            thoughts = tuple(await self.reader.read(strict=True))
        except StoreError as e:
            logger.warning("Loading thoughts failed, using the local copy: %s", e)
            self._remote_unread = True
            self._state = NotesState(
                thoughts=self._load_local(), status=SessionStatus.FAILED, error=str(e)
            )
            return self._state

        self._remote_unread = False
        self._state = NotesState(thoughts=thoughts, status=SessionStatus.LOADED, remote=True)
        return self._state

    async def submit(self, text: str, now_ms: int | None = None) -> NotesState:
        """Add a thought. Blank text is ignored."""
        text = text.strip()
        if not text:
            return self._state
        thought = Thought.create(text, now_ms=now_ms, tz=self.tz)
        return await self._save((thought, *self._state.thoughts), shard_key_of(thought.date))

    async def delete(self, thought_id: str) -> NotesState:
        """Remove a thought. Unknown ids leave the state unchanged."""
        target = next((t for t in self._state.thoughts if t.id == thought_id), None)
        if target is None:
            return self._state
        remaining = tuple(t for t in self._state.thoughts if t.id != thought_id)
        return await self._save(remaining, shard_key_of(target.date))

    async def _save(self, thoughts: tuple[Thought, ...], shard_key: str) -> NotesState:
        if not self.tokens.has_credentials():
            self._mirror(thoughts)
            self._state = NotesState(thoughts=thoughts, status=SessionStatus.SAVED_LOCALLY)
            return self._state
        if self._remote_unread:
            logger.warning("Remote thoughts were not loaded, keeping a local copy")
            self._mirror(thoughts)
            self._state = NotesState(
                thoughts=thoughts,
                status=SessionStatus.FAILED,
                error="remote thoughts could not be loaded; saved locally",
            )
            return self._state

        try:
            await self.writer.write(thoughts, changed=[shard_key])
        except StoreError as e:
            logger.warning("Saving thoughts failed, keeping a local copy: %s", e)
            self._mirror(thoughts)
            self._state = replace(
                self._state, thoughts=thoughts, status=SessionStatus.FAILED, error=str(e)
            )
            return self._state

        self._state = NotesState(thoughts=thoughts, status=SessionStatus.SAVED, remote=True)
        return self._state
