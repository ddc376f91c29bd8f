"""UploadOrchestrator: runs one upload (or deletion) end to end.

Stages run strictly in order::

    IDLE -> POLICY_CHECKING -> READING -> VALIDATING -> SUBMITTING -> DONE

Any error moves the orchestrator to FAILED and is re-raised unchanged;
``failed_stage`` records where it happened. One orchestrator tracks one
upload at a time, so callers create one per request.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from pathlib import PurePath
from typing import Any, Callable, Protocol, TypeVar
from zoneinfo import ZoneInfo

from taskreport.core.config import UploadConfig
from taskreport.core.exceptions import (
    AuthorizationError,
    DeletionReasonError,
    SheetReadError,
    StoreError,
    TaskReportError,
    ValidationFailedError,
)
from taskreport.core.protocols import IRecordStore, ISchemaProvider, IStatsInvalidator
from taskreport.ingestion.columns import resolve_columns
from taskreport.ingestion.dates import noon_anchor
from taskreport.ingestion.policy import IngestionPolicy
from taskreport.ingestion.rows import validate_rows
from taskreport.ingestion.sheet_reader import read_sheet
from taskreport.models.schema import TaskSchema
from taskreport.models.upload import (
    Actor,
    DeletionLogEntry,
    UploadBatch,
    UploadLogEntry,
    UploadResult,
    UploadStage,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SupportsAsyncRead(Protocol):
    async def read(self) -> bytes: ...


class UploadOrchestrator:
    """Sequences policy checks, reading, validation and the atomic submit."""

    def __init__(
        self,
        *,
        schema_provider: ISchemaProvider,
        record_store: IRecordStore,
        invalidator: IStatsInvalidator,
        config: UploadConfig | None = None,
        policy: IngestionPolicy | None = None,
    ) -> None:
        self._schema = schema_provider
        self._store = record_store
        self._invalidator = invalidator
        self._config = config or UploadConfig()
        self._policy = policy or IngestionPolicy(self._config.daily_quota)
        self._tz = ZoneInfo(self._config.timezone)
        self.stage = UploadStage.IDLE
        self.failed_stage: UploadStage | None = None

    def _enter(self, stage: UploadStage) -> None:
        logger.debug("Upload stage %s -> %s", self.stage, stage)
        self.stage = stage

    async def _store_call(self, fn: Callable[..., T], *args: Any) -> T:
        """Run a blocking store call off the event loop; wrap unknown failures."""
        try:
            return await asyncio.to_thread(fn, *args)
        except TaskReportError:
            raise
        except Exception as exc:
            raise StoreError(str(exc)) from exc

    def _load_schema(self) -> TaskSchema:
        return TaskSchema.load(self._schema.get_fields(), self._schema.get_statuses())

    def _check_file_type(self, file_name: str, size: int) -> None:
        suffix = PurePath(file_name).suffix.lower()
        if suffix not in self._config.allowed_extensions:
            raise SheetReadError(f"Unsupported file type: {suffix or file_name!r}")
        if size > self._config.max_file_bytes:
            raise SheetReadError(
                f"File is too large: {size} bytes (limit {self._config.max_file_bytes})"
            )

    @staticmethod
    async def _read_content(content: bytes | SupportsAsyncRead) -> bytes:
        if isinstance(content, (bytes, bytearray)):
            return bytes(content)
        return await content.read()

    async def upload(
        self,
        content: bytes | SupportsAsyncRead,
        file_name: str,
        report_date: date,
        actor: Actor,
        target_user_id: str | None = None,
    ) -> UploadResult:
        """Validate a spreadsheet and store it as one batch.

        Raises:
            AuthorizationError: a regular user uploads for someone else.
            PolicyError: naming, duplicate or quota rule violated.
            IngestionError: unreadable file, missing columns, or row errors
                (``ValidationFailedError`` carries the full list).
            StoreError: the record store failed; nothing is retried.
        """
        target = target_user_id or actor.id
        if target != actor.id and not actor.is_elevated:
            raise AuthorizationError("Only administrators can upload reports for other users")

        self.failed_stage = None
        try:
            self._enter(UploadStage.POLICY_CHECKING)
            existing = await self._store_call(self._store.list_files_for_day, target, report_date)
            self._policy.enforce(file_name, report_date, target, existing, actor.is_elevated)

            self._enter(UploadStage.READING)
            data = await self._read_content(content)
            self._check_file_type(file_name, len(data))
            sheet = await asyncio.to_thread(
                read_sheet, data, file_name, self._config.default_sheet_name,
            )

            self._enter(UploadStage.VALIDATING)
            schema = await self._store_call(self._load_schema)
            fields = schema.ingestible_fields
            mapping = resolve_columns(sheet[0], fields)
            result = validate_rows(sheet[1:], mapping, fields, schema.statuses, report_date, self._tz)
            if not result.ok:
                logger.info("Upload %r rejected: %d row error(s)", file_name, len(result.errors))
                raise ValidationFailedError(result.errors)

            self._enter(UploadStage.SUBMITTING)
            batch = UploadBatch(
                file_name=file_name,
                file_date=noon_anchor(report_date, self._tz),
                target_user=target,
                uploaded_by=actor.id if actor.is_elevated else None,
                records=result.records,
                raw_blob=data,
            )
            record_id = await self._store_call(self._store.create_batch, batch)
        except TaskReportError as exc:
            self.failed_stage = self.stage
            self._enter(UploadStage.FAILED)
            if isinstance(exc, StoreError):
                logger.error("Storing %r failed: %s", file_name, exc)
            raise

        if actor.is_elevated:
            # The batch is committed at this point; a missing audit row must not undo it.
            try:
                await self._store_call(self._store.create_upload_log, UploadLogEntry(
                    file_name=file_name, uploaded_by=actor.id, target_user=target,
                ))
            except StoreError as exc:
                logger.warning("Upload log for %r not written: %s", file_name, exc)

        self._enter(UploadStage.DONE)
        logger.info("Uploaded %r: %d tasks for user %s", file_name, len(result.records), target)
        await asyncio.to_thread(self._invalidator.signal)
        return UploadResult(
            record_id=record_id,
            file_name=file_name,
            record_count=len(result.records),
            target_user=target,
        )

    async def delete(self, record_id: str, reason: str, actor: Actor) -> None:
        """Archive a report's file with the reason, then delete the report.

        The deletion log is written before the delete, so the audit trail
        exists even if the delete has to be retried.
        """
        if not reason or not reason.strip():
            raise DeletionReasonError("A reason is required to delete a report")

        record = await self._store_call(self._store.get_record, record_id)
        if record.user != actor.id and not actor.is_elevated:
            raise AuthorizationError("Only administrators can delete other users' reports")

        blob = await self._store_call(self._store.read_blob, record)
        await self._store_call(self._store.create_deletion_log, DeletionLogEntry(
            file_name=record.file_name,
            reason=reason.strip(),
            deleted_by=actor.id,
            file=blob,
        ))
        await self._store_call(self._store.delete_record, record.id)

        logger.info("Deleted report %s (%r) by %s", record.id, record.file_name, actor.id)
        await asyncio.to_thread(self._invalidator.signal)
