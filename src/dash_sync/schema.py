"""DynamoDB schema definitions and key builders."""

from __future__ import annotations

from typing import Any

DEFAULT_TABLE_NAME = "dash-sync"

# Partition key prefixes
BLOB_PREFIX = "BLOB#"
TREE_PREFIX = "TREE#"
COMMIT_PREFIX = "COMMIT#"
REF_PREFIX = "REF#"

# Sort keys
SK_OBJECT = "#OBJECT"
SK_HEAD = "#HEAD"


def pk_blob(blob_id: str) -> str:
    """Build partition key for a blob."""
    return f"{BLOB_PREFIX}{blob_id}"


def pk_tree(tree_id: str) -> str:
    """Build partition key for a tree."""
    return f"{TREE_PREFIX}{tree_id}"


def pk_commit(commit_id: str) -> str:
    """Build partition key for a commit."""
    return f"{COMMIT_PREFIX}{commit_id}"


def pk_ref(branch: str) -> str:
    """Build partition key for a branch pointer."""
    return f"{REF_PREFIX}{branch}"


def sk_object() -> str:
    """Build sort key for immutable objects."""
    return SK_OBJECT


def sk_head() -> str:
    """Build sort key for a branch head."""
    return SK_HEAD


def object_key(pk: str) -> dict[str, Any]:
    return {"PK": {"S": pk}, "SK": {"S": SK_OBJECT}}


def ref_key(branch: str) -> dict[str, Any]:
    return {"PK": {"S": pk_ref(branch)}, "SK": {"S": SK_HEAD}}


def get_table_definition(table_name: str) -> dict[str, Any]:
    """
    Get the DynamoDB table definition for CreateTable.

    Returns a dictionary suitable for boto3 create_table().
    """
    return {
        "TableName": table_name,
        "BillingMode": "PAY_PER_REQUEST",
        "AttributeDefinitions": [
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
        "KeySchema": [
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
    }
