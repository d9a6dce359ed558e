"""Wiring of stores, collections, and migrations from a SyncConfig."""

from __future__ import annotations

import logging
from datetime import tzinfo

from .aggregate import AggregateStore
from .auth import EnvTokenProvider, TokenProvider
from .cache import FileCache, LocalCache, MemoryCache
from .config import Backend, SyncConfig
from .exceptions import ValidationError
from .migration import CheckinMigration, MigrationResult, MigrationStatus, NotesMigration
from .models import Note, Thought
from .notes import NotesSession
from .pipeline import Notifier
from .reader import ShardedReader
from .store_protocol import ObjectStoreProtocol
from .writer import ShardedWriter

logger = logging.getLogger(__name__)


def open_store(config: SyncConfig, tokens: TokenProvider | None = None) -> ObjectStoreProtocol:
    """Instantiate the object store selected by ``config.backend``."""
    if config.backend is Backend.GITHUB:
        from .stores.github import DEFAULT_API_URL, GitHubObjectStore

        if not (config.owner and config.repo):
            raise ValidationError(
                "repo", f"{config.owner}/{config.repo}", "owner and repo are required for github"
            )
        return GitHubObjectStore(
            config.owner,
            config.repo,
            tokens or EnvTokenProvider(),
            config.branch,
            api_url=config.endpoint_url or DEFAULT_API_URL,
        )
    if config.backend is Backend.DYNAMODB:
        from .stores.dynamodb import DynamoDBObjectStore

        return DynamoDBObjectStore(
            config.table_name,
            config.branch,
            region=config.region,
            endpoint_url=config.endpoint_url,
        )
    from .stores.memory import MemoryObjectStore

    return MemoryObjectStore(config.branch)


class Dashboard:
    """
    All synchronized collections of one dashboard.

    Args:
        config: Store target and layout
        store: Object store (default: built from ``config``)
        tokens: Credential provider (default: ``$DASH_SYNC_TOKEN``)
        cache: Local cache (default: file cache under ``config.cache_dir``,
            or in-memory)
        notify: User-facing notification callback
        tz: Timezone for new thoughts

    Example:
        async with Dashboard(SyncConfig.from_env()) as dash:
            await dash.startup()
            state = await dash.thoughts.submit("hello")
    """

    def __init__(
        self,
        config: SyncConfig,
        store: ObjectStoreProtocol | None = None,
        *,
        tokens: TokenProvider | None = None,
        cache: LocalCache | None = None,
        notify: Notifier | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self.config = config
        self.tokens = tokens or EnvTokenProvider()
        self.store = store or open_store(config, self.tokens)
        if cache is None:
            cache = FileCache(config.cache_dir) if config.cache_dir else MemoryCache()
        self.cache = cache

        self.thoughts_reader: ShardedReader[Thought] = ShardedReader(
            self.store,
            config.thoughts_root,
            Thought,
            ref=config.branch,
            window_months=config.window_months,
        )
        self.thoughts_writer: ShardedWriter[Thought] = ShardedWriter(
            self.store,
            config.branch,
            config.thoughts_root,
            label="thoughts",
            max_attempts=config.max_attempts,
            notify=notify,
        )
        self.thoughts = NotesSession(
            self.thoughts_reader, self.thoughts_writer, self.tokens, self.cache, tz=tz
        )
        self.notes_reader: ShardedReader[Note] = ShardedReader(
            self.store,
            config.notes_root,
            Note,
            ref=config.branch,
            window_months=config.window_months,
        )
        self.notes_writer: ShardedWriter[Note] = ShardedWriter(
            self.store,
            config.branch,
            config.notes_root,
            label="notes",
            max_attempts=config.max_attempts,
            notify=notify,
        )
        self.checkins = AggregateStore(
            self.store,
            config.branch,
            config.checkin_root,
            debounce_seconds=config.debounce_seconds,
            cache=self.cache,
            max_attempts=config.max_attempts,
            notify=notify,
        )

    async def startup(self) -> dict[str, MigrationResult]:
        """
        Run the one-time migrations ahead of normal reads.

        Results with ``should_retry`` mean the remote store could not be
        confirmed; call ``startup()`` again later. Without credentials nothing
        is migrated and every result is SKIPPED, leaving the local cache as
        the only copy.
        """
        if not self.tokens.has_credentials():
            logger.info("Startup migrations skipped: no credentials")
            return {
                name: MigrationResult(MigrationStatus.SKIPPED) for name in ("checkin", "thoughts")
            }
        results = {
            "checkin": await CheckinMigration(self.checkins, self.cache).migrate_if_needed(),
            "thoughts": await NotesMigration(
                self.thoughts_reader, self.thoughts_writer, self.cache
            ).migrate_if_needed(),
        }
        for name, result in results.items():
            logger.info("Startup migration %s: %s", name, result.status.value)
        return results

    async def close(self) -> None:
        try:
            await self.checkins.aclose()
        finally:
            await self.store.close()

    async def __aenter__(self) -> Dashboard:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
