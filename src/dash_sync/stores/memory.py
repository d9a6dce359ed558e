"""In-memory object store.

Implements ObjectStoreProtocol over plain dicts with git-compatible ids and
fast-forward enforcement on ref updates. Intended for tests, demos, and
offline use; nothing survives the process.
"""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from .. import objects
from ..exceptions import BranchNotFoundError, RefConflictError
from ..models import TreeEntry


@dataclass(frozen=True)
class _Commit:
    tree: str
    parents: tuple[str, ...]
    message: str


class MemoryObjectStore:
    """
    Dict-backed object store.

    Args:
        branch: Default branch used by ``read_path`` when no ref is given
        initialize: Create ``branch`` with an empty root commit

    Failures can be injected per primitive with ``fail_next()``; every
    primitive call is counted in ``calls``.
    """

    def __init__(self, branch: str = "main", initialize: bool = True) -> None:
        self.branch = branch
        self.blobs: dict[str, bytes] = {}
        self.trees: dict[str, dict[str, tuple[str, str]]] = {}
        self.commits: dict[str, _Commit] = {}
        self.refs: dict[str, str] = {}
        self.calls: Counter[str] = Counter()
        self._failures: dict[str, list[Exception]] = {}
        if initialize:
            self.create_branch_sync(branch)

    def create_branch_sync(self, branch: str) -> str:
        """Point ``branch`` at a fresh empty root commit."""
        empty_tree = objects.tree_id({})
        self.trees[empty_tree] = {}
        commit = objects.commit_id("Initial commit", empty_tree, [], 0)
        self.commits[commit] = _Commit(tree=empty_tree, parents=(), message="Initial commit")
        self.refs[branch] = commit
        return commit

    def fail_next(self, operation: str, error: Exception, times: int = 1) -> None:
        """Make the next ``times`` calls to ``operation`` raise ``error``."""
        self._failures.setdefault(operation, []).extend([error] * times)

    def _enter(self, operation: str) -> None:
        self.calls[operation] += 1
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _resolve_tree(self, tree_or_commit: str) -> dict[str, tuple[str, str]]:
        if tree_or_commit in self.commits:
            return self.trees[self.commits[tree_or_commit].tree]
        if tree_or_commit in self.trees:
            return self.trees[tree_or_commit]
        raise KeyError(f"Unknown tree-ish: {tree_or_commit}")

    # -------------------------------------------------------------------------
    # ObjectStoreProtocol
    # -------------------------------------------------------------------------

    async def get_branch_head(self, branch: str) -> str:
        self._enter("get_branch_head")
        try:
            return self.refs[branch]
        except KeyError:
            raise BranchNotFoundError(branch) from None

    async def create_blob(self, content: bytes) -> str:
        self._enter("create_blob")
        oid = objects.blob_id(content)
        self.blobs[oid] = content
        return oid

    async def create_tree(self, entries: Sequence[TreeEntry], base: str | None = None) -> str:
        self._enter("create_tree")
        merged = dict(self._resolve_tree(base)) if base else {}
        for entry in entries:
            if entry.blob_id not in self.blobs:
                raise KeyError(f"Unknown blob: {entry.blob_id}")
            merged[entry.path] = (entry.mode.value, entry.blob_id)
        oid = objects.tree_id(merged)
        self.trees[oid] = merged
        return oid

    async def create_commit(self, message: str, tree: str, parents: Sequence[str]) -> str:
        self._enter("create_commit")
        if tree not in self.trees:
            raise KeyError(f"Unknown tree: {tree}")
        oid = objects.commit_id(message, tree, parents, int(time.time() * 1000))
        self.commits[oid] = _Commit(tree=tree, parents=tuple(parents), message=message)
        return oid

    async def update_ref(self, branch: str, commit: str) -> None:
        self._enter("update_ref")
        if branch not in self.refs:
            raise BranchNotFoundError(branch)
        current = self.refs[branch]
        if current not in self.commits[commit].parents:
            raise RefConflictError(branch, expected=current, actual=commit)
        self.refs[branch] = commit

    async def read_path(self, path: str, ref: str | None = None) -> bytes | None:
        self._enter("read_path")
        target = ref or self.branch
        commit = self.refs.get(target, target)
        if commit not in self.commits:
            raise BranchNotFoundError(target)
        entry = self._resolve_tree(commit).get(path)
        if entry is None:
            return None
        return self.blobs[entry[1]]

    async def close(self) -> None:
        pass

    async def __aenter__(self) -> MemoryObjectStore:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Inspection helpers
    # -------------------------------------------------------------------------

    def history(self, branch: str | None = None) -> list[str]:
        """Commit messages from the branch head back to the root."""
        messages = []
        commit: str | None = self.refs[branch or self.branch]
        while commit:
            node = self.commits[commit]
            messages.append(node.message)
            commit = node.parents[0] if node.parents else None
        return messages

    def files(self, branch: str | None = None) -> dict[str, bytes]:
        """Snapshot of every file at the branch head."""
        tree = self._resolve_tree(self.refs[branch or self.branch])
        return {path: self.blobs[oid] for path, (_, oid) in tree.items()}
