"""
Shared fixtures for the storage tests.

S3 is never contacted: the boto3 client is wrapped in botocore's Stubber,
which checks the exact parameters of every call and returns canned
responses in order.
"""

import boto3
import pytest
from botocore.stub import Stubber

from media_store.config.settings import Settings
from media_store.infrastructure.storage.client import S3Storage, StorageConfig


@pytest.fixture
def storage_config() -> StorageConfig:
    return StorageConfig(
        access_key_id="testing",
        secret_access_key="testing",
        bucket="test-bucket",
        region="us-east-1",
    )


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(s3_client):
    with Stubber(s3_client) as stubber:
        yield stubber
        stubber.assert_no_pending_responses()


@pytest.fixture
def storage(storage_config, s3_client) -> S3Storage:
    return S3Storage(storage_config, client=s3_client)


@pytest.fixture
def image_file(tmp_path):
    """A readable local file standing in for the host's temp upload."""
    path = tmp_path / "upload.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\nfake image data")
    return path


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        access_key_id="testing",
        secret_access_key="testing",
        bucket="test-bucket",
        region="us-east-1",
    )
