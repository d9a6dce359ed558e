"""Git-compatible object identifiers.

Stores that compute their own ids (in-memory, DynamoDB) hash objects the
way git does, so the same content always yields the same id and ids are
interchangeable with those returned by a real git backend.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping, Sequence


def hash_object(kind: str, payload: bytes) -> str:
    """Hash ``payload`` as a git object of type ``kind``."""
    header = f"{kind} {len(payload)}\0".encode()
    return hashlib.sha1(header + payload, usedforsecurity=False).hexdigest()


def blob_id(content: bytes) -> str:
    return hash_object("blob", content)


def encode_tree(entries: Mapping[str, tuple[str, str]]) -> bytes:
    """
    Serialize a flat ``{path: (mode, blob_id)}`` mapping.

    Paths are stored flattened rather than as nested subtrees, so the ids
    are stable but not byte-compatible with git's own tree objects.
    """
    lines = [f"{mode} {path}\0{oid}" for path, (mode, oid) in sorted(entries.items())]
    return "\n".join(lines).encode()


def tree_id(entries: Mapping[str, tuple[str, str]]) -> str:
    return hash_object("tree", encode_tree(entries))


def encode_commit(message: str, tree: str, parents: Sequence[str], timestamp_ms: int) -> bytes:
    lines = [f"tree {tree}"]
    lines.extend(f"parent {p}" for p in parents)
    lines.append(f"committer dash-sync {timestamp_ms // 1000} +0000")
    lines.append("")
    lines.append(message)
    return "\n".join(lines).encode()


def commit_id(message: str, tree: str, parents: Sequence[str], timestamp_ms: int) -> str:
    return hash_object("commit", encode_commit(message, tree, parents, timestamp_ms))
