"""Object-store protocol for remote backends.

This module defines the ObjectStoreProtocol that every backend must
implement. The protocol uses Python's typing.Protocol with the
@runtime_checkable decorator, enabling duck typing and isinstance() checks
at runtime.

The contract mirrors the primitives of a git-like remote: read a branch
head, create immutable blobs, trees and commits, advance the branch, and
read a file by path. There is no multi-object transaction and no directory
listing.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import TreeEntry


@runtime_checkable
class ObjectStoreProtocol(Protocol):
    """
    Protocol for content-addressable object stores.

    Example:
        class MyStore:
            async def get_branch_head(self, branch: str) -> str:
                ...

        store = MyStore()
        assert isinstance(store, ObjectStoreProtocol)  # True at runtime
    """

    async def get_branch_head(self, branch: str) -> str:
        """
        Read the commit id the branch currently points to.

        Raises:
            AuthError: If credentials are missing or rejected
            BranchNotFoundError: If the branch does not exist
            NetworkError: On transport failure
        """
        ...

    async def create_blob(self, content: bytes) -> str:
        """
        Store an immutable blob.

        Content-addressed and idempotent: the same content yields the same id.
        """
        ...

    async def create_tree(self, entries: Sequence[TreeEntry], base: str | None = None) -> str:
        """
        Create a tree snapshot.

        Args:
            entries: Paths to add or replace
            base: Tree id, or commit id whose tree is used, to start from.
                Paths not listed in ``entries`` are carried over from it.

        Returns:
            The new tree id
        """
        ...

    async def create_commit(self, message: str, tree: str, parents: Sequence[str]) -> str:
        """Create a commit referencing ``tree`` with the given parents."""
        ...

    async def update_ref(self, branch: str, commit: str) -> None:
        """
        Advance the branch pointer to ``commit``.

        Raises:
            RefConflictError: If the backend enforces fast-forward updates
                and the branch no longer points to the commit's parent
        """
        ...

    async def read_path(self, path: str, ref: str | None = None) -> bytes | None:
        """
        Read a file at ``ref`` (branch or commit; defaults to the store branch).

        Returns:
            The file content, or None when the path does not exist
        """
        ...

    async def close(self) -> None:
        """Release any client resources. Safe to call multiple times."""
        ...
