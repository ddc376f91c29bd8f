"""Type aliases used across the TaskReport platform."""

from __future__ import annotations

from typing import Any

FieldKey = str
ColumnIndex = int
Cell = Any
RawSheet = list[list[Cell]]
ColumnMapping = dict[FieldKey, ColumnIndex]
ParsedTaskRecord = dict[FieldKey, Any]
