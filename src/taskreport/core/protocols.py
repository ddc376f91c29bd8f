"""Protocol interfaces for all TaskReport abstractions.

All inter-layer communication uses these Protocols — structural typing,
no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol, runtime_checkable

from taskreport.models.schema import FieldDefinition, StatusDefinition
from taskreport.models.upload import (
    DeletionLogEntry,
    ExistingFile,
    StoredReport,
    UploadBatch,
    UploadLogEntry,
)


# ---------------------------------------------------------------------------
# Settings: field schema and status vocabulary
# ---------------------------------------------------------------------------

@runtime_checkable
class ISchemaProvider(Protocol):
    """Admin-configured task fields and statuses."""

    def get_fields(self) -> list[FieldDefinition]: ...

    def get_statuses(self) -> list[StatusDefinition]: ...


# ---------------------------------------------------------------------------
# Persistence: Record Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IRecordStore(Protocol):
    """Stores uploaded reports and their audit trail."""

    def list_files_for_day(self, user_id: str, day: date) -> list[ExistingFile]: ...

    def create_batch(self, batch: UploadBatch) -> str: ...

    def get_record(self, record_id: str) -> StoredReport: ...

    def read_blob(self, record: StoredReport) -> bytes: ...

    def delete_record(self, record_id: str) -> None: ...

    def create_deletion_log(self, entry: DeletionLogEntry) -> str: ...

    def create_upload_log(self, entry: UploadLogEntry) -> str: ...


# ---------------------------------------------------------------------------
# Persistence: Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, *keys: str) -> None: ...

    def get_json(self, key: str) -> Any | None: ...

    def set_json(self, key: str, ttl: int, value: Any) -> None: ...


# ---------------------------------------------------------------------------
# Persistence: File Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IFileStore(Protocol):
    """S3-compatible file storage interface."""

    def read(self, path: str) -> bytes: ...

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str: ...

    def delete(self, path: str) -> None: ...

    def list_files(self, prefix: str) -> list[str]: ...


# ---------------------------------------------------------------------------
# Downstream statistics
# ---------------------------------------------------------------------------

@runtime_checkable
class IStatsInvalidator(Protocol):
    """Tells aggregate-statistics consumers to recompute."""

    def signal(self) -> None: ...

