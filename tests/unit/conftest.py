"""Unit test fixtures using in-memory stores and moto."""

import asyncio
from collections.abc import Awaitable
from unittest.mock import patch

import pytest
from moto import mock_aws

from dash_sync import MemoryCache, MemoryObjectStore


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    # Unset AWS_ENDPOINT_URL to ensure moto intercepts requests
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)


@pytest.fixture
def mock_dynamodb(aws_credentials):
    """Mock DynamoDB for tests."""
    with mock_aws():
        yield


def _patch_aiobotocore_response():
    """
    Patch aiobotocore to work with moto's sync responses.

    Moto returns botocore.awsrequest.AWSResponse which has sync content,
    but aiobotocore expects async content. This patch wraps the response
    handling to convert sync content to async.

    See: https://github.com/aio-libs/aiobotocore/discussions/1300
    """
    from aiobotocore import endpoint

    original_convert = endpoint.convert_to_response_dict

    async def patched_convert(http_response, operation_model):
        # If content is not awaitable (moto's sync response), wrap it
        if hasattr(http_response, "_content") and not isinstance(http_response._content, Awaitable):
            fut: asyncio.Future[bytes] = asyncio.Future()
            fut.set_result(http_response.content)
            http_response._content = fut
        return await original_convert(http_response, operation_model)

    return patch.object(endpoint, "convert_to_response_dict", patched_convert)


@pytest.fixture
async def dynamodb_store(mock_dynamodb):
    """Create a DynamoDBObjectStore with a mocked table and an initial branch."""
    from dash_sync.stores.dynamodb import DynamoDBObjectStore

    with _patch_aiobotocore_response():
        store = DynamoDBObjectStore(table_name="test_dash_sync", region="us-east-1")
        await store.create_table()
        await store.create_branch()
        async with store:
            yield store


@pytest.fixture
def store() -> MemoryObjectStore:
    """In-memory object store with an initialized ``main`` branch."""
    return MemoryObjectStore()


@pytest.fixture
def cache() -> MemoryCache:
    return MemoryCache()


class Notifications(list):
    """Collects ``notify(level, message)`` calls."""

    def __call__(self, level: str, message: str) -> None:
        self.append((level, message))

    @property
    def levels(self) -> list[str]:
        return [level for level, _ in self]


@pytest.fixture
def notifications() -> Notifications:
    return Notifications()
