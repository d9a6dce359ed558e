"""DynamoDB-backed content-addressed object store.

Blobs, trees, and commits are immutable items keyed by their git-style
object id; branch heads are mutable items advanced with a conditional
update, which gives the backend real fast-forward enforcement.

Trees are stored flattened (``{path: {mode, blob}}``) in a single item, so
the total size of a tree's path listing is bounded by the DynamoDB item
size limit.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import aioboto3  # type: ignore[import-untyped]
from botocore.exceptions import BotoCoreError, ClientError

from .. import objects, schema
from ..exceptions import (
    AuthError,
    BranchNotFoundError,
    NetworkError,
    RefConflictError,
    StoreError,
)
from ..models import TreeEntry

logger = logging.getLogger(__name__)

AUTH_ERROR_CODES = frozenset(
    {
        "AccessDeniedException",
        "ExpiredTokenException",
        "InvalidSignatureException",
        "UnrecognizedClientException",
        "MissingAuthenticationTokenException",
    }
)


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    """Map botocore failures onto the store exception taxonomy."""
    try:
        yield
    except ClientError as e:
        code = e.response["Error"]["Code"]
        if code in AUTH_ERROR_CODES:
            raise AuthError(f"{operation}: {code}") from e
        status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        raise NetworkError(f"{operation} failed: {code}", e, status=status) from e
    except BotoCoreError as e:
        raise NetworkError(f"{operation} failed: {e}", e) from e


class DynamoDBObjectStore:
    """
    Async DynamoDB object store.

    Args:
        table_name: DynamoDB table holding all objects and refs
        branch: Default branch for ``read_path``
        region: AWS region (default: boto3 resolution)
        endpoint_url: Custom endpoint (e.g., LocalStack)
    """

    def __init__(
        self,
        table_name: str = schema.DEFAULT_TABLE_NAME,
        branch: str = "main",
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        self.table_name = table_name
        self.branch = branch
        self.region = region
        self.endpoint_url = endpoint_url
        self._session: aioboto3.Session | None = None
        self._client: Any = None

    async def _get_client(self) -> Any:
        """Get or create the DynamoDB client."""
        if self._client is None:
            self._session = aioboto3.Session()
            self._client = await self._session.client(
                "dynamodb",
                region_name=self.region,
                endpoint_url=self.endpoint_url,
            ).__aenter__()
        return self._client

    async def close(self) -> None:
        """Close the DynamoDB client."""
        if self._client is not None:
            await self._client.__aexit__(None, None, None)
            self._client = None
            self._session = None

    async def __aenter__(self) -> DynamoDBObjectStore:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Table operations
    # -------------------------------------------------------------------------

    async def create_table(self) -> None:
        """Create the DynamoDB table if it doesn't exist."""
        client = await self._get_client()
        definition = schema.get_table_definition(self.table_name)

        try:
            await client.create_table(**definition)
            waiter = client.get_waiter("table_exists")
            await waiter.wait(TableName=self.table_name)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceInUseException":
                raise

    async def delete_table(self) -> None:
        """Delete the DynamoDB table."""
        client = await self._get_client()
        try:
            await client.delete_table(TableName=self.table_name)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceNotFoundException":
                raise

    async def create_branch(self, branch: str | None = None) -> str:
        """
        Create ``branch`` pointing at an empty root commit.

        Idempotent: an existing branch is left alone and its head returned.
        """
        branch = branch or self.branch
        tree = await self.create_tree([])
        commit = await self.create_commit("Initial commit", tree, [])
        client = await self._get_client()
        with _translate_errors("create_branch"):
            try:
                await client.put_item(
                    TableName=self.table_name,
                    Item={**schema.ref_key(branch), "commit": {"S": commit}},
                    ConditionExpression="attribute_not_exists(PK)",
                )
            except ClientError as e:
                if e.response["Error"]["Code"] != "ConditionalCheckFailedException":
                    raise
                return await self.get_branch_head(branch)
        logger.info("Created branch %s at %s", branch, commit)
        return commit

    # -------------------------------------------------------------------------
    # Item helpers
    # -------------------------------------------------------------------------

    async def _get_item(self, key: dict[str, Any], operation: str) -> dict[str, Any] | None:
        client = await self._get_client()
        with _translate_errors(operation):
            response = await client.get_item(
                TableName=self.table_name, Key=key, ConsistentRead=True
            )
        item: dict[str, Any] | None = response.get("Item")
        return item

    async def _put_object(self, item: dict[str, Any], operation: str) -> None:
        client = await self._get_client()
        with _translate_errors(operation):
            try:
                await client.put_item(
                    TableName=self.table_name,
                    Item=item,
                    ConditionExpression="attribute_not_exists(PK)",
                )
            except ClientError as e:
                # Content-addressed: an existing item already holds this content
                if e.response["Error"]["Code"] != "ConditionalCheckFailedException":
                    raise

    async def _commit_item(self, commit: str, operation: str) -> dict[str, Any] | None:
        return await self._get_item(schema.object_key(schema.pk_commit(commit)), operation)

    async def _tree_entries(self, tree_or_commit: str, operation: str) -> dict[str, tuple[str, str]]:
        commit_item = await self._commit_item(tree_or_commit, operation)
        tree = commit_item["tree"]["S"] if commit_item else tree_or_commit
        tree_item = await self._get_item(schema.object_key(schema.pk_tree(tree)), operation)
        if tree_item is None:
            raise StoreError(f"{operation}: unknown tree-ish {tree_or_commit}")
        return {
            path: (value["M"]["mode"]["S"], value["M"]["blob"]["S"])
            for path, value in tree_item["entries"]["M"].items()
        }

    async def _resolve_commit(self, ref: str, operation: str) -> str:
        ref_item = await self._get_item(schema.ref_key(ref), operation)
        if ref_item is not None:
            commit: str = ref_item["commit"]["S"]
            return commit
        if await self._commit_item(ref, operation) is not None:
            return ref
        raise BranchNotFoundError(ref)

    # -------------------------------------------------------------------------
    # ObjectStoreProtocol
    # -------------------------------------------------------------------------

    async def get_branch_head(self, branch: str) -> str:
        item = await self._get_item(schema.ref_key(branch), "get_branch_head")
        if item is None:
            raise BranchNotFoundError(branch)
        commit: str = item["commit"]["S"]
        return commit

    async def create_blob(self, content: bytes) -> str:
        oid = objects.blob_id(content)
        await self._put_object(
            {**schema.object_key(schema.pk_blob(oid)), "content": {"B": content}},
            "create_blob",
        )
        return oid

    async def create_tree(self, entries: Sequence[TreeEntry], base: str | None = None) -> str:
        merged = await self._tree_entries(base, "create_tree") if base else {}
        for entry in entries:
            merged[entry.path] = (entry.mode.value, entry.blob_id)
        oid = objects.tree_id(merged)
        await self._put_object(
            {
                **schema.object_key(schema.pk_tree(oid)),
                "entries": {
                    "M": {
                        path: {"M": {"mode": {"S": mode}, "blob": {"S": blob}}}
                        for path, (mode, blob) in merged.items()
                    }
                },
            },
            "create_tree",
        )
        return oid

    async def create_commit(self, message: str, tree: str, parents: Sequence[str]) -> str:
        now_ms = int(time.time() * 1000)
        oid = objects.commit_id(message, tree, parents, now_ms)
        await self._put_object(
            {
                **schema.object_key(schema.pk_commit(oid)),
                "tree": {"S": tree},
                "parents": {"L": [{"S": p} for p in parents]},
                "message": {"S": message},
                "created_at": {"N": str(now_ms)},
            },
            "create_commit",
        )
        return oid

    async def update_ref(self, branch: str, commit: str) -> None:
        """
        Advance ``branch`` to ``commit`` if it still points at the commit's parent.

        Raises:
            RefConflictError: If the branch moved since the parent was read
            BranchNotFoundError: If the branch does not exist
        """
        commit_item = await self._commit_item(commit, "update_ref")
        if commit_item is None:
            raise StoreError(f"update_ref: unknown commit {commit}")
        parents = [p["S"] for p in commit_item["parents"]["L"]]
        if not parents:
            raise RefConflictError(branch, expected=None, actual=commit)

        client = await self._get_client()
        with _translate_errors("update_ref"):
            try:
                await client.update_item(
                    TableName=self.table_name,
                    Key=schema.ref_key(branch),
                    UpdateExpression="SET #commit = :new",
                    ConditionExpression="#commit = :parent",
                    ExpressionAttributeNames={"#commit": "commit"},
                    ExpressionAttributeValues={
                        ":new": {"S": commit},
                        ":parent": {"S": parents[0]},
                    },
                )
            except ClientError as e:
                if e.response["Error"]["Code"] != "ConditionalCheckFailedException":
                    raise
                current = await self.get_branch_head(branch)
                raise RefConflictError(branch, expected=parents[0], actual=current) from e

    async def read_path(self, path: str, ref: str | None = None) -> bytes | None:
        commit = await self._resolve_commit(ref or self.branch, "read_path")
        entry = (await self._tree_entries(commit, "read_path")).get(path)
        if entry is None:
            return None
        item = await self._get_item(schema.object_key(schema.pk_blob(entry[1])), "read_path")
        if item is None:
            raise StoreError(f"read_path: missing blob {entry[1]} for {path}")
        content: bytes = item["content"]["B"]
        return content
