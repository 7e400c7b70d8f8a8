"""
Pytest configuration and shared fixtures for testing.
"""

from datetime import datetime, timedelta, timezone

import boto3
import pytest
from moto import mock_aws

from cloud_sweeper.core.aws_client import AWSClient
from cloud_sweeper.core.models import (
    ClassifiedResource,
    Disposition,
    ResourceKind,
    ResourceRecord,
    Verdict,
)

AS_OF = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    import os

    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def mock_aws_environment(aws_credentials):
    """Create a mocked AWS environment."""
    with mock_aws():
        yield


@pytest.fixture
def aws_client(mock_aws_environment):
    """Create an AWSClient instance for testing."""
    return AWSClient(region="us-east-1")


@pytest.fixture
def ec2_client(mock_aws_environment):
    """Create a boto3 EC2 client for setting up test resources."""
    return boto3.client("ec2", region_name="us-east-1")


@pytest.fixture
def s3_client(mock_aws_environment):
    """Create a boto3 S3 client for setting up test resources."""
    return boto3.client("s3", region_name="us-east-1")


def days_ago(days: int) -> datetime:
    """A creation time ``days`` whole days before ``AS_OF``."""
    return AS_OF - timedelta(days=days, hours=1)


def make_record(kind=ResourceKind.VOLUME, **overrides) -> ResourceRecord:
    """Build a record with sensible defaults for the kind."""
    defaults = {
        "kind": kind,
        "region": "us-east-1",
        "id": f"{kind.value.lower()}-0001",
        "state": "available",
    }
    defaults.update(overrides)
    return ResourceRecord(**defaults)


def make_delete(record: ResourceRecord, cost: float = 10.0) -> ClassifiedResource:
    """Pair a record with a DELETE verdict."""
    return ClassifiedResource(
        record, Verdict(Disposition.DELETE, "test verdict", cost)
    )

