"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class UploadConfig(BaseSettings):
    """Spreadsheet upload policy and parsing configuration."""

    model_config = {"env_prefix": "TASKREPORT_UPLOAD_"}

    daily_quota: int = 2  # files per user per calendar day, non-elevated users
    default_sheet_name: str = "Лист1"
    timezone: str = "UTC"
    max_file_bytes: int = 5 * 1024 * 1024
    allowed_extensions: list[str] = [".xlsx", ".xlsm", ".csv"]


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "TASKREPORT_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis cache configuration."""

    model_config = {"env_prefix": "TASKREPORT_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    key_prefix: str = ""  # e.g. "taskreport:" when sharing a Redis database
    schema_ttl: int = 300


class S3Config(BaseSettings):
    """S3 file storage configuration."""

    model_config = {"env_prefix": "TASKREPORT_S3_"}

    bucket: str = "taskreport-files"
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "TASKREPORT_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"

    upload: UploadConfig = UploadConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    s3: S3Config = S3Config()
