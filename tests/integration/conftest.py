"""Integration test fixtures against LocalStack: DynamoDB, Redis, S3."""

from __future__ import annotations

import os
import sys

import boto3
import pytest
from botocore.exceptions import BotoCoreError, ClientError

# Default LocalStack endpoint
LOCALSTACK_URL = os.environ.get("LOCALSTACK_URL", "http://localhost:4566")
TABLE_SUFFIX = "-inttest"
BUCKET = "taskreport-files-inttest"


def _localstack_available() -> bool:
    """Check if LocalStack is reachable."""
    try:
        client = boto3.client("dynamodb", region_name="us-east-1", endpoint_url=LOCALSTACK_URL)
        client.list_tables()
        return True
    except (BotoCoreError, ClientError):
        return False


skip_no_localstack = pytest.mark.skipif(
    not _localstack_available(),
    reason="LocalStack not available",
)


@pytest.fixture(scope="session")
def localstack_ddb():
    """DynamoDB resource pointing at LocalStack."""
    return boto3.resource("dynamodb", region_name="us-east-1", endpoint_url=LOCALSTACK_URL)


@pytest.fixture(scope="session")
def localstack_bucket():
    """S3 bucket on LocalStack for uploaded files."""
    client = boto3.client("s3", region_name="us-east-1", endpoint_url=LOCALSTACK_URL)
    existing = [b["Name"] for b in client.list_buckets().get("Buckets", [])]
    if BUCKET not in existing:
        client.create_bucket(Bucket=BUCKET)
    return BUCKET


@pytest.fixture(scope="session")
def seeded_tables(localstack_ddb):
    """Create tables and seed the default task schema via the seed script."""
    sys.path.insert(0, str(os.path.join(os.path.dirname(__file__), "..", "..", "scripts")))
    from seed_dynamodb import create_tables, seed_schema

    create_tables(localstack_ddb, suffix=TABLE_SUFFIX)
    seed_schema(localstack_ddb, suffix=TABLE_SUFFIX)
    return TABLE_SUFFIX
