"""Sharded collection writer."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from typing import Generic

from .exceptions import ValidationError
from .models import CommitResult, R
from .pipeline import DEFAULT_MAX_ATTEMPTS, Notifier, WritePipeline
from .sharding import group_by_shard, path_for, placeholder_path, shard_key_of
from .store_protocol import ObjectStoreProtocol

logger = logging.getLogger(__name__)


def encode_shard(records: Sequence[R]) -> bytes:
    """Serialize a shard as a tab-indented JSON array."""
    return json.dumps([r.to_dict() for r in records], indent="\t", ensure_ascii=False).encode()


class ShardedWriter(Generic[R]):
    """
    Persist a month-sharded collection.

    Each write ships the full post-mutation content of every shard it
    touches; shards are never patched.

    Args:
        store: Object store backend
        branch: Branch to commit to
        collection_root: Directory holding the shard files
        label: Collection name used in commit messages
        max_attempts: Pipeline runs allowed on ref conflicts
        notify: Optional user-facing notification callback
    """

    def __init__(
        self,
        store: ObjectStoreProtocol,
        branch: str,
        collection_root: str,
        *,
        label: str = "records",
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        notify: Notifier | None = None,
    ) -> None:
        self.store = store
        self.branch = branch
        self.collection_root = collection_root
        self.label = label
        self.max_attempts = max_attempts
        self.notify = notify

    def build_files(
        self, records: Iterable[R], changed: Iterable[str] | None = None
    ) -> dict[str, bytes]:
        """
        Build the file set for a write.

        Args:
            records: The full in-memory collection
            changed: Shard keys modified since the last write, or None for
                every shard present in the collection

        Returns:
            Mapping of path to file content

        Raises:
            InvalidDateError: If a record or shard key has an invalid date
        """
        grouped = group_by_shard(records)
        if changed is None:
            keys = sorted(grouped)
        else:
            keys = sorted({shard_key_of(f"{k}-01") for k in changed})

        files = {path_for(self.collection_root, k): encode_shard(grouped.get(k, [])) for k in keys}
        if not grouped:
            files[placeholder_path(self.collection_root)] = b""
        return files

    def commit_message(self, keys: Sequence[str]) -> str:
        if not keys:
            return f"Update {self.label} (0 months)"
        noun = "month" if len(keys) == 1 else "months"
        return f"Update {self.label} ({len(keys)} {noun}: {', '.join(keys)})"

    async def write(self, records: Iterable[R], changed: Iterable[str] | None = None) -> CommitResult:
        """
        Commit the changed shards and advance the branch.

        Raises:
            InvalidDateError: Before any network call, on a bad date
            ValidationError: If ``changed`` selects no shard
            StoreError: Any failure of the pipeline; the branch is untouched
        """
        records = list(records)
        files = self.build_files(records, changed)
        if not files:
            raise ValidationError("changed", "", "no shards to write")
        keys = [
            p.rsplit("/", 1)[1].removesuffix(".json") for p in files if p.endswith(".json")
        ]
        pipeline = WritePipeline(
            self.store,
            self.branch,
            files,
            self.commit_message(keys),
            max_attempts=self.max_attempts,
            notify=self.notify,
        )
        logger.debug("Writing %d %s across %d shard(s)", len(records), self.label, len(keys))
        return await pipeline.run()
