"""DynamoDB backends: cached schema provider and report record store."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import PurePath
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError
from pydantic import ValidationError

from taskreport.core.exceptions import RecordNotFoundError, SchemaError, StoreError
from taskreport.core.protocols import ICacheBackend, IFileStore
from taskreport.models.schema import FieldDefinition, StatusDefinition
from taskreport.models.upload import (
    DeletionLogEntry,
    ExistingFile,
    StoredReport,
    UploadBatch,
    UploadLogEntry,
)
from taskreport.persistence.s3_backend import XLSX_CONTENT_TYPE

logger = logging.getLogger(__name__)

SETTINGS_TABLE = "taskreport-settings"
REPORTS_TABLE = "taskreport-reports"
AUDIT_TABLE = "taskreport-audit-log"
USER_DAY_INDEX = "UserDayIndex"

_CONTENT_TYPES = {".csv": "text/csv", ".xlsx": XLSX_CONTENT_TYPE, ".xlsm": XLSX_CONTENT_TYPE}


def _decode_decimals(item: dict[str, Any]) -> dict[str, Any]:
    """Convert Decimal values in a DynamoDB item to int/float."""
    out: dict[str, Any] = {}
    for k, v in item.items():
        if isinstance(v, Decimal):
            out[k] = int(v) if v == int(v) else float(v)
        elif isinstance(v, dict):
            out[k] = _decode_decimals(v)
        else:
            out[k] = v
    return out


def user_day_key(user_id: str, day: date) -> str:
    return f"{user_id}#{day.isoformat()}"


def _content_type(file_name: str) -> str:
    return _CONTENT_TYPES.get(PurePath(file_name).suffix.lower(), "application/octet-stream")


def _resource(region: str, endpoint_url: str | None):
    kwargs: dict = {"region_name": region}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return boto3.resource("dynamodb", **kwargs)


def _query_all(table, **kwargs: Any) -> list[dict[str, Any]]:
    """Run a query and follow LastEvaluatedKey until exhausted."""
    items: list[dict[str, Any]] = []
    while True:
        resp = table.query(**kwargs)
        items.extend(_decode_decimals(i) for i in resp.get("Items", []))
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


class DynamoDBSchemaProvider:
    """Production ISchemaProvider backed by DynamoDB + optional Redis cache.

    Admin edits to fields or statuses are picked up once the cached snapshot
    expires (``cache_ttl`` seconds).
    """

    FIELDS_CACHE_KEY = "schema:fields"
    STATUSES_CACHE_KEY = "schema:statuses"

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None, cache: ICacheBackend | None = None,
                 cache_ttl: int = 300) -> None:
        self._table_suffix = table_suffix
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._ddb = _resource(region, endpoint_url)

    def _table(self):
        return self._ddb.Table(f"{SETTINGS_TABLE}{self._table_suffix}")

    def _load(self, pk: str, cache_key: str) -> list[dict[str, Any]]:
        if self._cache is not None:
            cached = self._cache.get_json(cache_key)
            if cached is not None:
                return cached

        try:
            items = _query_all(
                self._table(),
                KeyConditionExpression=Key("PK").eq(pk),
            )
        except ClientError as exc:
            raise StoreError(f"Loading {pk} settings failed: {exc}") from exc
        items = [{k: v for k, v in i.items() if k not in ("PK", "SK")} for i in items]

        if self._cache is not None:
            self._cache.set_json(cache_key, self._cache_ttl, items)
        return items

    def get_fields(self) -> list[FieldDefinition]:
        items = self._load("FIELD", self.FIELDS_CACHE_KEY)
        try:
            fields = [FieldDefinition.model_validate(i) for i in items]
        except ValidationError as exc:
            raise SchemaError(f"Invalid task field definition: {exc}") from exc
        return sorted(fields, key=lambda f: f.order)

    def get_statuses(self) -> list[StatusDefinition]:
        items = self._load("STATUS", self.STATUSES_CACHE_KEY)
        try:
            return [StatusDefinition.model_validate(i) for i in items]
        except ValidationError as exc:
            raise SchemaError(f"Invalid status definition: {exc}") from exc


class DynamoDBRecordStore:
    """Production IRecordStore: report metadata in DynamoDB, files in the file store.

    The report item is written last, so a batch is visible only once its
    blob and parsed records are in place.
    """

    def __init__(self, files: IFileStore, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._files = files
        self._table_suffix = table_suffix
        self._ddb = _resource(region, endpoint_url)

    def _table(self, base: str):
        return self._ddb.Table(f"{base}{self._table_suffix}")

    @staticmethod
    def _to_report(item: dict[str, Any]) -> StoredReport:
        return StoredReport(
            id=item["id"],
            user=item["user"],
            file_name=item["file_name"],
            file_date=datetime.fromisoformat(item["file_date"]),
            blob_key=item.get("blob_key", ""),
            record_count=item.get("record_count", 0),
            uploaded_by=item.get("uploaded_by"),
        )

    # ---- IRecordStore methods ----

    def list_files_for_day(self, user_id: str, day: date) -> list[ExistingFile]:
        try:
            items = _query_all(
                self._table(REPORTS_TABLE),
                IndexName=USER_DAY_INDEX,
                KeyConditionExpression=Key("user_day").eq(user_day_key(user_id, day)),
            )
        except ClientError as exc:
            raise StoreError(f"Listing files for user={user_id!r} day={day} failed: {exc}") from exc
        return [ExistingFile(id=i["id"], file_name=i["file_name"]) for i in items]

    def create_batch(self, batch: UploadBatch) -> str:
        record_id = uuid.uuid4().hex
        prefix = f"reports/{record_id}/"
        blob_key = f"{prefix}{batch.file_name}"
        data_key = f"{prefix}data.json"

        item: dict[str, Any] = {
            "PK": f"REPORT#{record_id}",
            "SK": "META",
            "id": record_id,
            "user": batch.target_user,
            "user_day": user_day_key(batch.target_user, batch.file_date.date()),
            "file_name": batch.file_name,
            "file_date": batch.file_date.isoformat(),
            "blob_key": blob_key,
            "data_key": data_key,
            "record_count": len(batch.records),
            "created": datetime.now(timezone.utc).isoformat(),
        }
        if batch.uploaded_by:
            item["uploaded_by"] = batch.uploaded_by

        written: list[str] = []
        try:
            written.append(self._files.write(blob_key, batch.raw_blob, _content_type(batch.file_name)))
            written.append(self._files.write(
                data_key, json.dumps(batch.records, ensure_ascii=False).encode("utf-8"),
                "application/json",
            ))
            self._table(REPORTS_TABLE).put_item(
                Item=item, ConditionExpression="attribute_not_exists(PK)",
            )
        except (ClientError, StoreError) as exc:
            for key in written:
                try:
                    self._files.delete(key)
                except StoreError:
                    logger.warning("Could not remove orphaned upload object %s", key)
            raise StoreError(f"Saving {batch.file_name!r} failed: {exc}") from exc

        logger.info("Stored report %s (%d records) for user %s",
                    record_id, len(batch.records), batch.target_user)
        return record_id

    def get_record(self, record_id: str) -> StoredReport:
        try:
            resp = self._table(REPORTS_TABLE).get_item(Key={"PK": f"REPORT#{record_id}", "SK": "META"})
        except ClientError as exc:
            raise StoreError(f"Fetching report {record_id!r} failed: {exc}") from exc
        item = resp.get("Item")
        if item is None:
            raise RecordNotFoundError(f"Report {record_id!r} not found")
        return self._to_report(_decode_decimals(item))

    def read_blob(self, record: StoredReport) -> bytes:
        return self._files.read(record.blob_key)

    def delete_record(self, record_id: str) -> None:
        try:
            self._table(REPORTS_TABLE).delete_item(Key={"PK": f"REPORT#{record_id}", "SK": "META"})
        except ClientError as exc:
            raise StoreError(f"Deleting report {record_id!r} failed: {exc}") from exc
        for key in self._files.list_files(f"reports/{record_id}/"):
            self._files.delete(key)

    def create_deletion_log(self, entry: DeletionLogEntry) -> str:
        log_id = uuid.uuid4().hex
        blob_key = f"deleted/{log_id}/{entry.file_name}"
        self._files.write(blob_key, entry.file, _content_type(entry.file_name))
        try:
            self._table(AUDIT_TABLE).put_item(Item={
                "PK": f"DELETION#{log_id}",
                "SK": "LOG",
                "file_name": entry.file_name,
                "reason": entry.reason,
                "deleted_by": entry.deleted_by,
                "blob_key": blob_key,
                "created": datetime.now(timezone.utc).isoformat(),
            })
        except ClientError as exc:
            raise StoreError(f"Writing deletion log for {entry.file_name!r} failed: {exc}") from exc
        return log_id

    def create_upload_log(self, entry: UploadLogEntry) -> str:
        log_id = uuid.uuid4().hex
        try:
            self._table(AUDIT_TABLE).put_item(Item={
                "PK": f"UPLOAD#{log_id}",
                "SK": "LOG",
                "file_name": entry.file_name,
                "uploaded_by": entry.uploaded_by,
                "target_user": entry.target_user,
                "created": datetime.now(timezone.utc).isoformat(),
            })
        except ClientError as exc:
            raise StoreError(f"Writing upload log for {entry.file_name!r} failed: {exc}") from exc
        return log_id
