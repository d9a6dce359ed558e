"""Tests for store target naming."""

import pytest

from dash_sync.exceptions import ValidationError
from dash_sync.naming import (
    normalize_collection_root,
    resolve_branch,
    validate_branch,
    validate_slug,
)


class TestValidateSlug:
    """Tests for validate_slug."""

    @pytest.mark.parametrize("value", ["me", "my-site", "site.github.io", "a_b", "X1"])
    def test_valid(self, value: str) -> None:
        validate_slug("repo", value)

    @pytest.mark.parametrize("value", ["", "-lead", "has space", "a/b", "x" * 101])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_slug("repo", value)
        assert exc_info.value.field == "repo"


class TestValidateBranch:
    """Tests for validate_branch."""

    @pytest.mark.parametrize("branch", ["main", "feature/data", "v1.2", "data-sync"])
    def test_valid(self, branch: str) -> None:
        validate_branch(branch)

    @pytest.mark.parametrize(
        "branch",
        ["", "refs/heads/main", "heads/main", "a..b", "a//b", "trailing/", "x.lock", "-x", "sp ace"],
    )
    def test_invalid(self, branch: str) -> None:
        with pytest.raises(ValidationError):
            validate_branch(branch)


class TestCollectionRoot:
    """Tests for normalize_collection_root."""

    def test_strips_slashes(self) -> None:
        assert normalize_collection_root("/public/checkin/") == "public/checkin"

    @pytest.mark.parametrize("root", ["", "/", "a/../b", "./a", "a//b", "a/<b>"])
    def test_invalid(self, root: str) -> None:
        with pytest.raises(ValidationError):
            normalize_collection_root(root)


class TestResolveBranch:
    """Tests for resolve_branch."""

    def test_explicit(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DASH_SYNC_BRANCH", "env")
        assert resolve_branch("explicit") == "explicit"

    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DASH_SYNC_BRANCH", "env")
        assert resolve_branch(None) == "env"

    def test_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("DASH_SYNC_BRANCH", raising=False)
        assert resolve_branch(None) == "main"
