"""Shared test doubles: memory backends plus a sample task schema."""

from __future__ import annotations

import io

from openpyxl import Workbook

from taskreport.models.schema import FieldDefinition, FieldType, StatusDefinition
from taskreport.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryFileStore,
    MemoryRecordStore,
    MemorySchemaProvider,
)

FIELDS = [
    FieldDefinition(key="task_number", title="№ Задачи", type=FieldType.TEXT, required=True, order=0),
    FieldDefinition(key="time_spent", title="Затрачено", type=FieldType.NUMBER, required=True, order=1),
    FieldDefinition(key="status", title="Статус", type=FieldType.SELECT, required=True, order=2),
    FieldDefinition(key="deadline", title="Срок", type=FieldType.DATE, order=3),
    FieldDefinition(key="comment", title="Комментарий", type=FieldType.TEXT, order=4),
]

STATUSES = [
    StatusDefinition(title="В работе", slug="in_progress", color="blue"),
    StatusDefinition(title="Завершена", slug="completed", color="green"),
]

HEADER = ["№ Задачи", "Затрачено", "Статус", "Срок", "Комментарий"]


def make_workbook(rows: list[list], sheet_name: str = "Лист1") -> bytes:
    """Build an .xlsx file in memory with a single sheet."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


class RecordingInvalidator:
    """IStatsInvalidator that counts signals."""

    def __init__(self) -> None:
        self.signals = 0

    def signal(self) -> None:
        self.signals += 1


__all__ = [
    "FIELDS",
    "HEADER",
    "STATUSES",
    "MemoryCacheBackend",
    "MemoryFileStore",
    "MemoryRecordStore",
    "MemorySchemaProvider",
    "RecordingInvalidator",
    "make_workbook",
]
