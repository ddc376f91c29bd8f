"""In-memory backends for unit tests: dict-backed fakes."""

from __future__ import annotations

import json
import uuid
from datetime import date
from typing import Any

from taskreport.core.exceptions import RecordNotFoundError, StoreError
from taskreport.ingestion.dates import noon_anchor
from taskreport.models.schema import FieldDefinition, StatusDefinition
from taskreport.models.upload import (
    DeletionLogEntry,
    ExistingFile,
    StoredReport,
    UploadBatch,
    UploadLogEntry,
)


class MemorySchemaProvider:
    """List-backed ISchemaProvider for unit tests."""

    def __init__(
        self,
        fields: list[FieldDefinition] | None = None,
        statuses: list[StatusDefinition] | None = None,
    ) -> None:
        self.fields = list(fields or [])
        self.statuses = list(statuses or [])

    def get_fields(self) -> list[FieldDefinition]:
        return list(self.fields)

    def get_statuses(self) -> list[StatusDefinition]:
        return list(self.statuses)


class MemoryRecordStore:
    """Dict-backed IRecordStore for unit tests.

    Set ``fail_with`` to make ``create_batch`` raise ``StoreError``.
    """

    def __init__(self) -> None:
        self.reports: dict[str, StoredReport] = {}
        self.records: dict[str, list[dict]] = {}
        self.blobs: dict[str, bytes] = {}
        self.deletion_logs: list[DeletionLogEntry] = []
        self.upload_logs: list[UploadLogEntry] = []
        self.calls: list[str] = []
        self.fail_with: str | None = None

    def add_existing(self, user_id: str, day: date, file_name: str) -> str:
        """Seed a prior upload without going through ``create_batch``."""
        record_id = uuid.uuid4().hex
        self.reports[record_id] = StoredReport(
            id=record_id, user=user_id, file_name=file_name,
            file_date=noon_anchor(day), blob_key=f"{record_id}/{file_name}",
        )
        self.blobs[f"{record_id}/{file_name}"] = b""
        return record_id

    def list_files_for_day(self, user_id: str, day: date) -> list[ExistingFile]:
        self.calls.append("list_files_for_day")
        return [
            ExistingFile(id=r.id, file_name=r.file_name)
            for r in self.reports.values()
            if r.user == user_id and r.file_date.date() == day
        ]

    def create_batch(self, batch: UploadBatch) -> str:
        self.calls.append("create_batch")
        if self.fail_with is not None:
            raise StoreError(self.fail_with)
        record_id = uuid.uuid4().hex
        blob_key = f"{record_id}/{batch.file_name}"
        self.reports[record_id] = StoredReport(
            id=record_id, user=batch.target_user, file_name=batch.file_name,
            file_date=batch.file_date, blob_key=blob_key,
            record_count=len(batch.records), uploaded_by=batch.uploaded_by,
        )
        self.records[record_id] = list(batch.records)
        self.blobs[blob_key] = batch.raw_blob
        return record_id

    def get_record(self, record_id: str) -> StoredReport:
        self.calls.append("get_record")
        try:
            return self.reports[record_id]
        except KeyError:
            raise RecordNotFoundError(f"Report {record_id!r} not found") from None

    def read_blob(self, record: StoredReport) -> bytes:
        self.calls.append("read_blob")
        return self.blobs[record.blob_key]

    def delete_record(self, record_id: str) -> None:
        self.calls.append("delete_record")
        report = self.reports.pop(record_id, None)
        self.records.pop(record_id, None)
        if report is not None:
            self.blobs.pop(report.blob_key, None)

    def create_deletion_log(self, entry: DeletionLogEntry) -> str:
        self.calls.append("create_deletion_log")
        self.deletion_logs.append(entry)
        return uuid.uuid4().hex

    def create_upload_log(self, entry: UploadLogEntry) -> str:
        self.calls.append("create_upload_log")
        self.upload_logs.append(entry)
        return uuid.uuid4().hex


class MemoryCacheBackend:
    """Dict-backed ICacheBackend for unit tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value

    def delete(self, *keys: str) -> None:
        for key in keys:
            self._store.pop(key, None)

    def get_json(self, key: str) -> Any | None:
        raw = self._store.get(key)
        return None if raw is None else json.loads(raw)

    def set_json(self, key: str, ttl: int, value: Any) -> None:
        self._store[key] = json.dumps(value, ensure_ascii=False)


class MemoryFileStore:
    """Dict-backed IFileStore for unit tests."""

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}

    def read(self, path: str) -> bytes:
        return self._files[path]

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        self._files[path] = data
        return path

    def delete(self, path: str) -> None:
        self._files.pop(path, None)

    def list_files(self, prefix: str) -> list[str]:
        return [k for k in self._files if k.startswith(prefix)]
