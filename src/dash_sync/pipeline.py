"""Write pipeline for the remote object store.

The backing store has no multi-object transaction. A write is made to
behave transactionally by creating immutable objects first (blobs, tree,
commit) and publishing them with a single branch pointer update at the
end. Until that update succeeds the remote content is unchanged from a
reader's perspective.

The pointer update is a compare-and-swap: the head is re-read right before
publishing and the whole pipeline restarts if it moved. Orphaned objects
from an abandoned attempt are inert content-addressed garbage.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from enum import Enum

from .exceptions import RefConflictError
from .models import CommitResult, TreeEntry
from .store_protocol import ObjectStoreProtocol

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3

Notifier = Callable[[str, str], None]
"""User-facing notification callback: ``notify(level, message)``."""


class PipelineState(str, Enum):
    """States of a single write pipeline run."""

    PENDING = "pending"
    FETCHING_REF = "fetching_ref"
    BUILDING_BLOBS = "building_blobs"
    BUILDING_TREE = "building_tree"
    COMMITTING = "committing"
    UPDATING_REF = "updating_ref"
    DONE = "done"
    FAILED = "failed"


class WritePipeline:
    """
    Commit a set of files to a branch and advance its pointer.

    Args:
        store: Object store backend
        branch: Branch to advance
        files: Mapping of path to full file content
        message: Commit message
        max_attempts: Pipeline runs allowed before a moving branch is
            reported as RefConflictError
        notify: Optional callback receiving one notification per run

    Example:
        pipeline = WritePipeline(store, "main", {"a/b.json": b"[]"}, "Update b")
        result = await pipeline.run()
    """

    def __init__(
        self,
        store: ObjectStoreProtocol,
        branch: str,
        files: Mapping[str, bytes],
        message: str,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        notify: Notifier | None = None,
    ) -> None:
        if not files:
            raise ValueError("WritePipeline requires at least one file")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.store = store
        self.branch = branch
        self.files = dict(files)
        self.message = message
        self.max_attempts = max_attempts
        self.notify = notify
        self.state = PipelineState.PENDING
        self.history: list[PipelineState] = [self.state]
        self.failure: BaseException | None = None

    def _enter(self, state: PipelineState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("Pipeline %s on %s: %s", self.message, self.branch, state.value)

    def _notify(self, level: str, message: str) -> None:
        if self.notify is not None:
            self.notify(level, message)

    async def run(self) -> CommitResult:
        """
        Execute the pipeline, retrying on ref conflicts.

        Returns:
            CommitResult for the published commit

        Raises:
            AuthError: Credentials missing or rejected
            NetworkError: Transport failure
            BranchNotFoundError: Target branch missing
            RefConflictError: Branch kept moving for ``max_attempts`` runs
        """
        last_conflict: RefConflictError | None = None
        try:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    result = await self._attempt(attempt)
                except RefConflictError as e:
                    last_conflict = e
                    logger.warning(
                        "Branch %s moved during write (attempt %d/%d)",
                        self.branch,
                        attempt,
                        self.max_attempts,
                    )
                    continue
                self._enter(PipelineState.DONE)
                self._notify("success", f"Saved: {self.message}")
                return result
            raise RefConflictError(
                self.branch,
                expected=last_conflict.expected if last_conflict else None,
                actual=last_conflict.actual if last_conflict else None,
                attempts=self.max_attempts,
            )
        except Exception as e:
            self.failure = e
            self._enter(PipelineState.FAILED)
            logger.error("Write to %s failed: %s", self.branch, e)
            self._notify("error", f"Save failed: {e}")
            raise

    async def _attempt(self, attempt: int) -> CommitResult:
        self._enter(PipelineState.FETCHING_REF)
        head = await self.store.get_branch_head(self.branch)

        self._enter(PipelineState.BUILDING_BLOBS)
        paths = list(self.files)
        blob_ids = await asyncio.gather(
            *(self.store.create_blob(self.files[path]) for path in paths)
        )

        self._enter(PipelineState.BUILDING_TREE)
        entries = [TreeEntry(path=p, blob_id=b) for p, b in zip(paths, blob_ids, strict=True)]
        tree = await self.store.create_tree(entries, base=head)

        self._enter(PipelineState.COMMITTING)
        commit = await self.store.create_commit(self.message, tree, [head])

        self._enter(PipelineState.UPDATING_REF)
        current = await self.store.get_branch_head(self.branch)
        if current != head:
            raise RefConflictError(self.branch, expected=head, actual=current)
        await self.store.update_ref(self.branch, commit)

        logger.info(
            "Committed %s to %s (%d file(s), attempt %d)", commit, self.branch, len(paths), attempt
        )
        return CommitResult(commit_id=commit, tree_id=tree, paths=tuple(paths), attempts=attempt)
