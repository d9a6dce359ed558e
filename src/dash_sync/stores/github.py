"""GitHub object store over the Git Data REST API.

Maps the store primitives onto ``git/refs``, ``git/blobs``, ``git/trees``
and ``git/commits``; file reads go through the ``contents`` endpoint
pinned to a ref.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx

from ..auth import TokenProvider
from ..exceptions import AuthError, BranchNotFoundError, NetworkError, RefConflictError
from ..models import TreeEntry

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
DEFAULT_TIMEOUT = 10.0


class GitHubObjectStore:
    """
    Object store backed by a GitHub repository.

    Args:
        owner: Repository owner
        repo: Repository name
        tokens: Provider of the bearer token
        branch: Default branch for ``read_path``
        api_url: API root (GitHub Enterprise or a test server)
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        tokens: TokenProvider,
        branch: str = "main",
        *,
        api_url: str = DEFAULT_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.tokens = tokens
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self._transport = transport
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def repo_url(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                transport=self._transport,
                timeout=self._timeout,
                headers={
                    "Accept": "application/vnd.github+json",
                    "X-GitHub-Api-Version": API_VERSION,
                },
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> GitHubObjectStore:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None, **params: Any
    ) -> httpx.Response:
        """
        Send an authenticated request.

        Raises:
            AuthError: No token, or the token was rejected (401/403)
            NetworkError: Transport failure or 5xx response
        """
        token = await self.tokens.get_token()
        try:
            response = await self._get_client().request(
                method,
                f"{self.repo_url}{path}",
                json=json,
                params=params or None,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"{method} {path} failed: {e}", e) from e

        if response.status_code in (401, 403):
            raise AuthError(f"{method} {path} rejected", status=response.status_code)
        if response.status_code >= 500:
            raise NetworkError(f"{method} {path} failed", status=response.status_code)
        return response

    @staticmethod
    def _check(response: httpx.Response, operation: str) -> dict[str, Any]:
        if response.is_error:
            raise NetworkError(f"{operation} failed", status=response.status_code)
        data: dict[str, Any] = response.json()
        return data

    async def _base_tree(self, tree_or_commit: str) -> str:
        """Resolve a commit id to its tree id; tree ids pass through."""
        response = await self._request("GET", f"/git/commits/{tree_or_commit}")
        if response.status_code in (404, 422):
            return tree_or_commit
        sha: str = self._check(response, "create_tree")["tree"]["sha"]
        return sha

    # -------------------------------------------------------------------------
    # ObjectStoreProtocol
    # -------------------------------------------------------------------------

    async def get_branch_head(self, branch: str) -> str:
        response = await self._request("GET", f"/git/ref/heads/{quote(branch)}")
        if response.status_code == 404:
            raise BranchNotFoundError(branch)
        sha: str = self._check(response, "get_branch_head")["object"]["sha"]
        return sha

    async def create_blob(self, content: bytes) -> str:
        response = await self._request(
            "POST",
            "/git/blobs",
            json={"content": base64.b64encode(content).decode("ascii"), "encoding": "base64"},
        )
        sha: str = self._check(response, "create_blob")["sha"]
        return sha

    async def create_tree(self, entries: Sequence[TreeEntry], base: str | None = None) -> str:
        body: dict[str, Any] = {
            "tree": [
                {"path": e.path, "mode": e.mode.value, "type": "blob", "sha": e.blob_id}
                for e in entries
            ]
        }
        if base:
            body["base_tree"] = await self._base_tree(base)
        response = await self._request("POST", "/git/trees", json=body)
        sha: str = self._check(response, "create_tree")["sha"]
        return sha

    async def create_commit(self, message: str, tree: str, parents: Sequence[str]) -> str:
        response = await self._request(
            "POST",
            "/git/commits",
            json={"message": message, "tree": tree, "parents": list(parents)},
        )
        sha: str = self._check(response, "create_commit")["sha"]
        return sha

    async def update_ref(self, branch: str, commit: str) -> None:
        response = await self._request(
            "PATCH",
            f"/git/refs/heads/{quote(branch)}",
            json={"sha": commit, "force": False},
        )
        if response.status_code == 422:
            # GitHub rejects non-fast-forward updates with 422
            raise RefConflictError(branch, actual=commit)
        if response.status_code == 404:
            raise BranchNotFoundError(branch)
        self._check(response, "update_ref")

    async def read_path(self, path: str, ref: str | None = None) -> bytes | None:
        response = await self._request(
            "GET", f"/contents/{quote(path)}", ref=ref or self.branch
        )
        if response.status_code == 404:
            return None
        data = self._check(response, "read_path")
        if isinstance(data, list) or "content" not in data:
            # A directory listing, or a file too large for inline content
            logger.debug("No inline content at %s", path)
            return None
        return base64.b64decode(data["content"])
