"""Object store backends.

Backends with heavy client dependencies (aioboto3, httpx) are imported
lazily so that the in-memory store can be used without them.
"""

from typing import TYPE_CHECKING

from .memory import MemoryObjectStore

if TYPE_CHECKING:
    from .dynamodb import DynamoDBObjectStore as DynamoDBObjectStore
    from .github import GitHubObjectStore as GitHubObjectStore

__all__ = ["DynamoDBObjectStore", "GitHubObjectStore", "MemoryObjectStore"]


def __getattr__(name: str) -> type:
    """Lazy import for backends that require optional client libraries."""
    if name == "DynamoDBObjectStore":
        from .dynamodb import DynamoDBObjectStore

        return DynamoDBObjectStore
    if name == "GitHubObjectStore":
        from .github import GitHubObjectStore

        return GitHubObjectStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
