"""TaskReport exception hierarchy."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from taskreport.models.upload import RowValidationError


class TaskReportError(Exception):
    """Base exception for all TaskReport errors."""


# ---------------------------------------------------------------------------
# Upload policy (checked before the file is read)
# ---------------------------------------------------------------------------

class PolicyError(TaskReportError):
    """An upload was rejected by the ingestion policy."""


class FileNamingError(PolicyError):
    """File name does not start with the selected report date."""

    def __init__(self, file_name: str, required_prefix: str) -> None:
        self.file_name = file_name
        self.required_prefix = required_prefix
        super().__init__(f"File name must start with {required_prefix!r}: {file_name!r}")


class DuplicateFileError(PolicyError):
    """A file with the same name was already uploaded for this user and day."""

    def __init__(self, file_name: str) -> None:
        self.file_name = file_name
        super().__init__(f"File {file_name!r} has already been uploaded for this day")


class QuotaExceededError(PolicyError):
    """Daily upload limit reached."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Daily upload limit of {limit} files reached")


# ---------------------------------------------------------------------------
# Ingestion (reading and validating the sheet)
# ---------------------------------------------------------------------------

class IngestionError(TaskReportError):
    """Error while reading or validating an uploaded sheet."""


class SheetReadError(IngestionError):
    """The uploaded file could not be read as a spreadsheet."""


class EmptySheetError(IngestionError):
    """The sheet has no header row or no data rows."""


class MissingColumnsError(IngestionError):
    """Required fields have no matching column in the header row."""

    def __init__(self, titles: list[str]) -> None:
        self.titles = titles
        super().__init__(f"Missing columns: {', '.join(titles)}")


class ValidationFailedError(IngestionError):
    """One or more data rows failed validation; the batch is rejected."""

    def __init__(self, errors: list[RowValidationError]) -> None:
        self.errors = errors
        super().__init__(f"Validation failed with {len(errors)} error(s)")


# ---------------------------------------------------------------------------
# Everything else
# ---------------------------------------------------------------------------

class SchemaError(TaskReportError):
    """Field schema or status vocabulary is inconsistent."""


class AuthorizationError(TaskReportError):
    """Actor is not allowed to perform the operation."""


class DeletionReasonError(TaskReportError):
    """A deletion was requested without a reason."""


class RecordNotFoundError(TaskReportError):
    """Report record not found in the store."""


class StoreError(TaskReportError):
    """Record store or file store operation failed."""


class CacheError(TaskReportError):
    """Redis cache operation failed."""
