"""Upload, validation result, and audit models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field


class UploadStage(StrEnum):
    IDLE = "IDLE"
    POLICY_CHECKING = "POLICY_CHECKING"
    READING = "READING"
    VALIDATING = "VALIDATING"
    SUBMITTING = "SUBMITTING"
    DONE = "DONE"
    FAILED = "FAILED"


class Actor(BaseModel):
    """The user performing an upload or deletion."""

    id: str
    is_elevated: bool = False  # super-admin


class RowValidationError(BaseModel):
    """A single cell-level problem found while validating a data row."""

    row_index: int  # 1-based, header is row 1
    field_title: str
    message: str

    def __str__(self) -> str:
        return f"Row {self.row_index}: {self.message}"


class ValidationResult(BaseModel):
    """Outcome of validating every data row of a sheet."""

    records: list[dict[str, Any]] = Field(default_factory=list)
    errors: list[RowValidationError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class ExistingFile(BaseModel):
    """A prior upload for a user and day (quota and duplicate checks)."""

    id: str
    file_name: str


class UploadBatch(BaseModel):
    """Fully validated upload, submitted to the record store as one create."""

    file_name: str
    file_date: datetime  # noon-anchored report date
    target_user: str
    uploaded_by: Optional[str] = None
    records: list[dict[str, Any]] = Field(default_factory=list)
    raw_blob: bytes = b""


class StoredReport(BaseModel):
    """Metadata of a stored upload."""

    id: str
    user: str
    file_name: str
    file_date: datetime
    blob_key: str = ""
    record_count: int = 0
    uploaded_by: Optional[str] = None


class DeletionLogEntry(BaseModel):
    """Audit entry written before a report is deleted."""

    file_name: str
    reason: str
    deleted_by: str
    file: bytes = b""


class UploadLogEntry(BaseModel):
    """Audit entry for uploads made on behalf of another user."""

    file_name: str
    uploaded_by: str
    target_user: str


class UploadResult(BaseModel):
    """Returned to the caller after a successful upload."""

    record_id: str
    file_name: str
    record_count: int
    target_user: str
