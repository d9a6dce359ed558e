"""
dash-sync: durable JSON collections on a git-like remote object store.

This library keeps a personal dashboard's small, frequently mutated data
in a version-controlled, content-addressable store:
- Month-sharded collections (thoughts, shared notes)
- A single-document habit tracker aggregate with debounced saves
- A transactional write pipeline with compare-and-swap branch updates
- One-time migration of local-only caches into the remote store
- Pluggable backends via ObjectStoreProtocol (GitHub, DynamoDB, in-memory)

Example:
    from dash_sync import Dashboard, SyncConfig

    config = SyncConfig(owner="me", repo="site", branch="main")
    async with Dashboard(config) as dash:
        await dash.startup()
        state = await dash.thoughts.submit("shipped the sync layer")
        print(state.latest)
"""

# ---------------------------------------------------------------------------
# Lazy imports for optional client libraries
# ---------------------------------------------------------------------------
# The GitHub and DynamoDB stores depend on httpx and aioboto3. They are
# imported lazily via __getattr__ below so that the core (models, sharding,
# pipeline, in-memory store) imports without them.
# ---------------------------------------------------------------------------
from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING

from .aggregate import AggregateStore
from .auth import EnvTokenProvider, StaticTokenProvider, TokenProvider
from .cache import FileCache, LocalCache, MemoryCache
from .config import Backend, SyncConfig
from .dashboard import Dashboard, open_store
from .debounce import Debouncer
from .exceptions import (
    AuthError,
    BranchNotFoundError,
    DashSyncError,
    DataError,
    DocumentParseError,
    InvalidDateError,
    NetworkError,
    RefConflictError,
    StoreError,
    ValidationError,
)
from .migration import (
    CheckinMigration,
    MigrationCoordinator,
    MigrationResult,
    MigrationStatus,
    NotesMigration,
)
from .models import (
    CheckinData,
    CheckinEvent,
    CheckinPosition,
    CheckinRecord,
    CommitResult,
    Note,
    ShardedRecord,
    ShardSummary,
    Thought,
    TreeEntry,
)
from .notes import NotesSession, NotesState, SessionStatus
from .pipeline import PipelineState, WritePipeline
from .reader import ShardedReader
from .sharding import month_window, path_for, shard_key_of
from .store_protocol import ObjectStoreProtocol
from .stores.memory import MemoryObjectStore
from .writer import ShardedWriter

if TYPE_CHECKING:
    from .stores.dynamodb import DynamoDBObjectStore as DynamoDBObjectStore
    from .stores.github import GitHubObjectStore as GitHubObjectStore

try:
    __version__ = version("dash-sync")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

__all__ = [
    # Version
    "__version__",
    # Main classes
    "Dashboard",
    "open_store",
    "SyncConfig",
    "Backend",
    "ShardedWriter",
    "ShardedReader",
    "AggregateStore",
    "WritePipeline",
    "PipelineState",
    "Debouncer",
    "NotesSession",
    "NotesState",
    "SessionStatus",
    # Migration
    "MigrationCoordinator",
    "CheckinMigration",
    "NotesMigration",
    "MigrationResult",
    "MigrationStatus",
    # Stores
    "ObjectStoreProtocol",
    "MemoryObjectStore",
    "GitHubObjectStore",
    "DynamoDBObjectStore",
    # Capabilities
    "TokenProvider",
    "StaticTokenProvider",
    "EnvTokenProvider",
    "LocalCache",
    "MemoryCache",
    "FileCache",
    # Models
    "Thought",
    "Note",
    "ShardedRecord",
    "ShardSummary",
    "CheckinData",
    "CheckinEvent",
    "CheckinRecord",
    "CheckinPosition",
    "TreeEntry",
    "CommitResult",
    # Sharding
    "shard_key_of",
    "path_for",
    "month_window",
    # Exceptions - Base
    "DashSyncError",
    # Exceptions - Categories
    "StoreError",
    "DataError",
    # Exceptions - Store
    "AuthError",
    "NetworkError",
    "RefConflictError",
    "BranchNotFoundError",
    # Exceptions - Data
    "InvalidDateError",
    "DocumentParseError",
    # Exceptions - Validation
    "ValidationError",
]


def __getattr__(name: str) -> type:
    """Lazy import for stores that require httpx or aioboto3."""
    if name == "DynamoDBObjectStore":
        from .stores.dynamodb import DynamoDBObjectStore

        return DynamoDBObjectStore
    if name == "GitHubObjectStore":
        from .stores.github import GitHubObjectStore

        return GitHubObjectStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
