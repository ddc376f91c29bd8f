"""Tests for the end-to-end upload and deletion flows."""

from __future__ import annotations

import asyncio
import threading
from datetime import date

import pytest

from taskreport.core.config import UploadConfig
from taskreport.core.exceptions import (
    AuthorizationError,
    DeletionReasonError,
    DuplicateFileError,
    EmptySheetError,
    FileNamingError,
    MissingColumnsError,
    QuotaExceededError,
    RecordNotFoundError,
    SchemaError,
    SheetReadError,
    StoreError,
    ValidationFailedError,
)
from taskreport.ingestion.orchestrator import UploadOrchestrator
from taskreport.models.schema import FieldDefinition
from taskreport.models.upload import Actor, UploadStage
from tests.fakes import (
    FIELDS,
    HEADER,
    STATUSES,
    MemoryRecordStore,
    MemorySchemaProvider,
    RecordingInvalidator,
    make_workbook,
)

REPORT_DATE = date(2025, 12, 25)
FILE_NAME = "25.12.2025_report.xlsx"
USER = Actor(id="u1")
ADMIN = Actor(id="admin", is_elevated=True)

VALID_ROWS = [
    HEADER,
    ["T-1", "1,5", "В работе", "24.12.2025", "first"],
    [None, None, None, None, None],
    ["T-2", 3, "Завершена", None, None],
]


class UnreachableSchemaProvider:
    def get_fields(self):
        raise ConnectionError("dynamodb unreachable")

    def get_statuses(self):
        return []


class ThreadRecordingInvalidator:
    def __init__(self) -> None:
        self.threads: list[int] = []

    def signal(self) -> None:
        self.threads.append(threading.get_ident())


class FakeUpload:
    """Mimics an async file object such as FastAPI's UploadFile."""

    def __init__(self, data: bytes) -> None:
        self._data = data

    async def read(self) -> bytes:
        return self._data


@pytest.fixture
def store():
    return MemoryRecordStore()


@pytest.fixture
def invalidator():
    return RecordingInvalidator()


@pytest.fixture
def orchestrator(store, invalidator):
    return UploadOrchestrator(
        schema_provider=MemorySchemaProvider(FIELDS, STATUSES),
        record_store=store,
        invalidator=invalidator,
    )


def _upload(orchestrator, rows=VALID_ROWS, file_name=FILE_NAME, actor=USER, **kwargs):
    content = make_workbook(rows) if isinstance(rows, list) else rows
    return asyncio.run(orchestrator.upload(content, file_name, REPORT_DATE, actor, **kwargs))


class TestSuccessfulUpload:
    def test_stores_one_batch(self, orchestrator, store, invalidator):
        result = _upload(orchestrator)

        assert result.record_count == 2
        assert result.target_user == "u1"
        assert orchestrator.stage == UploadStage.DONE
        assert store.calls.count("create_batch") == 1

        report = store.reports[result.record_id]
        assert report.file_name == FILE_NAME
        assert report.file_date.isoformat() == "2025-12-25T12:00:00+00:00"
        assert report.uploaded_by is None
        assert [r["task_number"] for r in store.records[result.record_id]] == ["T-1", "T-2"]
        assert store.records[result.record_id][0]["time_spent"] == 1.5
        assert store.blobs[report.blob_key].startswith(b"PK")
        assert invalidator.signals == 1

    def test_accepts_async_file_objects(self, orchestrator, store):
        content = FakeUpload(make_workbook(VALID_ROWS))
        result = asyncio.run(orchestrator.upload(content, FILE_NAME, REPORT_DATE, USER))
        assert result.record_count == 2

    def test_admin_uploads_for_another_user(self, orchestrator, store):
        result = _upload(orchestrator, actor=ADMIN, target_user_id="u2")
        report = store.reports[result.record_id]
        assert report.user == "u2"
        assert report.uploaded_by == "admin"
        assert store.upload_logs[0].target_user == "u2"

    def test_csv_upload(self, orchestrator):
        text = "№ Задачи;Затрачено;Статус\nT-1;2,5;В работе\n"
        result = _upload(orchestrator, rows=text.encode("utf-8"), file_name="25.12.2025.csv")
        assert result.record_count == 1


class TestPolicyFailures:
    def test_naming_rejected_before_reading(self, orchestrator, store):
        with pytest.raises(FileNamingError):
            _upload(orchestrator, rows=b"never read", file_name="24.12.2025.xlsx")
        assert orchestrator.failed_stage == UploadStage.POLICY_CHECKING
        assert orchestrator.stage == UploadStage.FAILED
        assert "create_batch" not in store.calls

    def test_duplicate_rejected(self, orchestrator, store):
        store.add_existing("u1", REPORT_DATE, FILE_NAME)
        with pytest.raises(DuplicateFileError):
            _upload(orchestrator)

    def test_third_file_rejected_for_regular_user(self, orchestrator, store):
        store.add_existing("u1", REPORT_DATE, "25.12.2025_a.xlsx")
        store.add_existing("u1", REPORT_DATE, "25.12.2025_b.xlsx")
        with pytest.raises(QuotaExceededError):
            _upload(orchestrator)

    def test_quota_counts_only_target_user_and_day(self, orchestrator, store):
        store.add_existing("u1", date(2025, 12, 24), "24.12.2025_a.xlsx")
        store.add_existing("u1", date(2025, 12, 24), "24.12.2025_b.xlsx")
        store.add_existing("u2", REPORT_DATE, "25.12.2025_a.xlsx")
        store.add_existing("u2", REPORT_DATE, "25.12.2025_b.xlsx")
        assert _upload(orchestrator).record_count == 2

    def test_admin_exempt_from_quota(self, orchestrator, store):
        store.add_existing("u1", REPORT_DATE, "25.12.2025_a.xlsx")
        store.add_existing("u1", REPORT_DATE, "25.12.2025_b.xlsx")
        result = _upload(orchestrator, actor=ADMIN, target_user_id="u1")
        assert result.record_count == 2

    def test_regular_user_cannot_target_others(self, orchestrator, store):
        with pytest.raises(AuthorizationError):
            _upload(orchestrator, target_user_id="u2")
        assert store.calls == []


class TestReadingFailures:
    def test_unsupported_extension(self, orchestrator):
        with pytest.raises(SheetReadError):
            _upload(orchestrator, rows=b"%PDF", file_name="25.12.2025.pdf")
        assert orchestrator.failed_stage == UploadStage.READING

    def test_file_too_large(self, store, invalidator):
        orchestrator = UploadOrchestrator(
            schema_provider=MemorySchemaProvider(FIELDS, STATUSES),
            record_store=store,
            invalidator=invalidator,
            config=UploadConfig(max_file_bytes=10),
        )
        with pytest.raises(SheetReadError, match="too large"):
            _upload(orchestrator)

    def test_empty_sheet(self, orchestrator):
        with pytest.raises(EmptySheetError):
            _upload(orchestrator, rows=[HEADER])


class TestValidationFailures:
    def test_missing_required_columns(self, orchestrator, store):
        with pytest.raises(MissingColumnsError) as exc_info:
            _upload(orchestrator, rows=[["Комментарий"], ["x"]])
        assert exc_info.value.titles == ["№ Задачи", "Затрачено", "Статус"]
        assert orchestrator.failed_stage == UploadStage.VALIDATING
        assert "create_batch" not in store.calls

    def test_one_bad_row_rejects_whole_batch(self, orchestrator, store, invalidator):
        rows = VALID_ROWS + [["T-3", "abc", "Unknown", None, None]]
        with pytest.raises(ValidationFailedError) as exc_info:
            _upload(orchestrator, rows=rows)
        assert [str(e) for e in exc_info.value.errors] == [
            "Row 5: Затрачено must be a number",
            "Row 5: Статус invalid value",
        ]
        assert store.reports == {}
        assert invalidator.signals == 0

    def test_invalid_schema_snapshot(self, store, invalidator):
        provider = MemorySchemaProvider(
            [FieldDefinition(key="a", title="Same"), FieldDefinition(key="b", title="same")], STATUSES,
        )
        orchestrator = UploadOrchestrator(
            schema_provider=provider, record_store=store, invalidator=invalidator,
        )
        with pytest.raises(SchemaError):
            _upload(orchestrator)


class TestStoreFailures:
    def test_store_error_surfaces_verbatim(self, orchestrator, store, invalidator):
        store.fail_with = "backend unavailable"
        with pytest.raises(StoreError, match="backend unavailable"):
            _upload(orchestrator)
        assert orchestrator.failed_stage == UploadStage.SUBMITTING
        assert store.calls.count("create_batch") == 1
        assert invalidator.signals == 0

    def test_unexpected_store_exception_is_wrapped(self, orchestrator, store):
        def boom(user_id, day):
            raise ConnectionError("connection reset")

        store.list_files_for_day = boom
        with pytest.raises(StoreError, match="connection reset"):
            _upload(orchestrator)

    def test_unreachable_schema_provider_fails_validating_stage(self, store, invalidator):
        orchestrator = UploadOrchestrator(
            schema_provider=UnreachableSchemaProvider(),
            record_store=store,
            invalidator=invalidator,
        )
        with pytest.raises(StoreError, match="dynamodb unreachable"):
            _upload(orchestrator)
        assert orchestrator.stage == UploadStage.FAILED
        assert orchestrator.failed_stage == UploadStage.VALIDATING
        assert "create_batch" not in store.calls


class TestStatsSignal:
    def test_signal_runs_off_the_event_loop_thread(self, store):
        invalidator = ThreadRecordingInvalidator()
        orchestrator = UploadOrchestrator(
            schema_provider=MemorySchemaProvider(FIELDS, STATUSES),
            record_store=store,
            invalidator=invalidator,
        )
        result = _upload(orchestrator)
        asyncio.run(orchestrator.delete(result.record_id, "cleanup", USER))

        assert len(invalidator.threads) == 2
        assert threading.get_ident() not in invalidator.threads


class TestDelete:
    def test_logs_then_deletes(self, orchestrator, store, invalidator):
        result = _upload(orchestrator)
        blob = store.blobs[store.reports[result.record_id].blob_key]
        store.calls.clear()

        asyncio.run(orchestrator.delete(result.record_id, " wrong day ", USER))

        assert store.calls == ["get_record", "read_blob", "create_deletion_log", "delete_record"]
        entry = store.deletion_logs[0]
        assert entry.reason == "wrong day"
        assert entry.deleted_by == "u1"
        assert entry.file == blob
        assert entry.file_name == FILE_NAME
        assert result.record_id not in store.reports
        assert invalidator.signals == 2

    def test_reason_required(self, orchestrator, store):
        with pytest.raises(DeletionReasonError):
            asyncio.run(orchestrator.delete("any", "  ", USER))
        assert store.calls == []

    def test_missing_record(self, orchestrator):
        with pytest.raises(RecordNotFoundError):
            asyncio.run(orchestrator.delete("missing", "reason", USER))

    def test_regular_user_cannot_delete_others(self, orchestrator, store):
        record_id = store.add_existing("u2", REPORT_DATE, "25.12.2025.xlsx")
        with pytest.raises(AuthorizationError):
            asyncio.run(orchestrator.delete(record_id, "reason", USER))
        assert store.deletion_logs == []

    def test_admin_deletes_any_report(self, orchestrator, store):
        record_id = store.add_existing("u2", REPORT_DATE, "25.12.2025.xlsx")
        asyncio.run(orchestrator.delete(record_id, "duplicate", ADMIN))
        assert store.deletion_logs[0].deleted_by == "admin"
        assert record_id not in store.reports
