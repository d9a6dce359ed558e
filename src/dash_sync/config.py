"""Configuration for dash-sync.

Store target selection (backend, owner/repo/branch or table) and the
collection layout are plain configuration, read from keyword arguments or
``DASH_SYNC_*`` environment variables.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

from .aggregate import DEFAULT_DEBOUNCE_SECONDS
from .exceptions import ValidationError
from .naming import DEFAULT_BRANCH, normalize_collection_root, validate_branch, validate_slug
from .pipeline import DEFAULT_MAX_ATTEMPTS
from .schema import DEFAULT_TABLE_NAME
from .sharding import DEFAULT_WINDOW_MONTHS

ENV_PREFIX = "DASH_SYNC_"

DEFAULT_THOUGHTS_ROOT = "src/data/thoughts"
DEFAULT_NOTES_ROOT = "src/app/share/notes"
DEFAULT_CHECKIN_ROOT = "public/checkin"


class Backend(str, Enum):
    """Object store backends."""

    MEMORY = "memory"
    GITHUB = "github"
    DYNAMODB = "dynamodb"


@dataclass(frozen=True)
class SyncConfig:
    """
    Store target and collection layout.

    Attributes:
        backend: Which object store to use
        owner: Repository owner (github backend)
        repo: Repository name (github backend)
        table_name: DynamoDB table (dynamodb backend)
        region: AWS region (dynamodb backend)
        endpoint_url: Custom endpoint (GitHub Enterprise API root or
            LocalStack URL)
        branch: Branch every write advances
        thoughts_root: Directory of the thoughts month shards
        notes_root: Directory of the shared notes month shards
        checkin_root: Directory of the check-in ``data.json``
        window_months: Months probed when reading shards
        debounce_seconds: Quiet period before a check-in save runs
        max_attempts: Pipeline runs allowed on ref conflicts
        cache_dir: Directory of the local file cache (None = in-memory)
    """

    backend: Backend = Backend.GITHUB
    owner: str | None = None
    repo: str | None = None
    table_name: str = DEFAULT_TABLE_NAME
    region: str | None = None
    endpoint_url: str | None = None
    branch: str = DEFAULT_BRANCH
    thoughts_root: str = DEFAULT_THOUGHTS_ROOT
    notes_root: str = DEFAULT_NOTES_ROOT
    checkin_root: str = DEFAULT_CHECKIN_ROOT
    window_months: int = DEFAULT_WINDOW_MONTHS
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    cache_dir: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "backend", Backend(self.backend))
        validate_branch(self.branch)
        for name in ("thoughts_root", "notes_root", "checkin_root"):
            object.__setattr__(self, name, normalize_collection_root(getattr(self, name)))
        if self.backend is Backend.GITHUB:
            if not self.owner or not self.repo:
                raise ValidationError(
                    "repo", f"{self.owner}/{self.repo}", "owner and repo are required for github"
                )
            validate_slug("owner", self.owner)
            validate_slug("repo", self.repo)
        if self.window_months < 1:
            raise ValidationError("window_months", str(self.window_months), "Must be >= 1")
        if self.debounce_seconds < 0:
            raise ValidationError("debounce_seconds", str(self.debounce_seconds), "Must be >= 0")
        if self.max_attempts < 1:
            raise ValidationError("max_attempts", str(self.max_attempts), "Must be >= 1")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> SyncConfig:
        """
        Build a config from ``DASH_SYNC_<FIELD>`` environment variables.

        Explicit ``overrides`` that are not None take precedence.

        Example:
            DASH_SYNC_OWNER=me DASH_SYNC_REPO=site DASH_SYNC_BRANCH=main
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = env.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None or raw == "":
                continue
            if f.name in ("window_months", "max_attempts"):
                values[f.name] = _parse(f.name, raw, int)
            elif f.name == "debounce_seconds":
                values[f.name] = _parse(f.name, raw, float)
            else:
                values[f.name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls(**values)
        except ValueError as e:
            # Unknown backend name
            raise ValidationError("backend", str(values.get("backend")), str(e)) from e


def _parse(name: str, raw: str, kind: type) -> Any:
    try:
        return kind(raw)
    except ValueError as e:
        raise ValidationError(name, raw, f"Expected {kind.__name__}") from e
