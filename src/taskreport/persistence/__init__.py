"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from taskreport.core.config import AppSettings
from taskreport.persistence.dynamodb_backend import DynamoDBRecordStore, DynamoDBSchemaProvider
from taskreport.persistence.redis_backend import RedisCacheBackend
from taskreport.persistence.s3_backend import S3FileStore
from taskreport.persistence.stats_signal import StatsInvalidator


def create_persistence(settings: AppSettings | None = None):
    """Create wired-up persistence backends from application settings.

    Returns:
        Tuple of (schema_provider, record_store, cache, invalidator).
    """
    if settings is None:
        settings = AppSettings()

    cache = RedisCacheBackend(
        host=settings.redis.host,
        port=settings.redis.port,
        db=settings.redis.db,
        key_prefix=settings.redis.key_prefix,
    )

    schema_provider = DynamoDBSchemaProvider(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
        cache=cache,
        cache_ttl=settings.redis.schema_ttl,
    )

    file_store = S3FileStore(
        bucket=settings.s3.bucket,
        region=settings.s3.region,
        endpoint_url=settings.s3.endpoint_url,
    )

    record_store = DynamoDBRecordStore(
        files=file_store,
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
    )

    return schema_provider, record_store, cache, StatsInvalidator(cache)
