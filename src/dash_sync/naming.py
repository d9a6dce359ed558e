"""Store target naming utilities.

This module provides centralized validation for the identifiers that
select a storage target: repository owner/name, branch name, and the
collection roots under which documents are written.
"""

from __future__ import annotations

import os
import re

from .exceptions import ValidationError

DEFAULT_BRANCH = "main"
"""Branch used when none is configured."""

BRANCH_ENV_VAR = "DASH_SYNC_BRANCH"
"""Environment variable for overriding the default branch."""

# GitHub owner/repository names: alphanumerics, hyphens, underscores, periods
SLUG_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

# Conservative subset of git's ref name rules
BRANCH_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._/-]*$")

SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_.()\[\]-][A-Za-z0-9_.()\[\] -]*$")


def validate_slug(field: str, value: str) -> None:
    """
    Validate a repository owner or name.

    Raises:
        ValidationError: If the value is empty or contains invalid characters
    """
    if not value:
        raise ValidationError(field, value, "Cannot be empty")
    if not SLUG_PATTERN.match(value):
        raise ValidationError(
            field,
            value,
            "Must start with an alphanumeric character and contain only "
            "alphanumerics, hyphens, underscores, and periods.",
        )
    if len(value) > 100:
        raise ValidationError(field, value, "Too long. Exceeds 100 characters.")


def validate_branch(branch: str) -> None:
    """
    Validate a branch name.

    Raises:
        ValidationError: If the branch name is invalid
    """
    if not branch:
        raise ValidationError("branch", branch, "Branch cannot be empty")
    if branch.startswith("refs/") or branch.startswith("heads/"):
        raise ValidationError(
            "branch", branch, "Use the short branch name (e.g., 'main' not 'refs/heads/main')"
        )
    if ".." in branch or "//" in branch or branch.endswith(("/", ".", ".lock")):
        raise ValidationError("branch", branch, "Not a valid git branch name.")
    if not BRANCH_PATTERN.match(branch):
        raise ValidationError(
            "branch",
            branch,
            "Must start with an alphanumeric character and contain only "
            "alphanumerics, periods, hyphens, underscores, and slashes.",
        )


def normalize_collection_root(root: str) -> str:
    """
    Validate a repository-relative directory and strip surrounding slashes.

    Raises:
        ValidationError: If the path is empty, escapes the repository, or
            contains invalid segments
    """
    normalized = root.strip().strip("/")
    if not normalized:
        raise ValidationError("collection_root", root, "Path cannot be empty")
    for segment in normalized.split("/"):
        if segment in ("", ".", ".."):
            raise ValidationError(
                "collection_root", root, "Path segments cannot be empty, '.' or '..'"
            )
        if not SEGMENT_PATTERN.match(segment):
            raise ValidationError(
                "collection_root", root, f"Invalid characters in segment {segment!r}"
            )
    return normalized


def resolve_branch(branch: str | None) -> str:
    """Resolve branch from explicit arg, env var, or default.

    Resolution order: ``branch`` arg → ``DASH_SYNC_BRANCH`` env var → ``"main"``.
    """
    name = branch or os.environ.get(BRANCH_ENV_VAR) or DEFAULT_BRANCH
    validate_branch(name)
    return name
