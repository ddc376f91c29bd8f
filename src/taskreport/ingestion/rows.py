"""Row-level validation and coercion against the task field schema."""

from __future__ import annotations

import logging
import math
import numbers
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Iterable, Sequence

from taskreport.core.types import ColumnMapping, ParsedTaskRecord
from taskreport.ingestion.dates import noon_anchor, parse_date_strict, to_iso
from taskreport.models.schema import FieldDefinition, FieldType, StatusDefinition
from taskreport.models.upload import RowValidationError, ValidationResult

logger = logging.getLogger(__name__)

HEADER_ROW_OFFSET = 2  # data row 0 is sheet row 2

TRUE_WORDS = frozenset({"true", "yes", "1", "да"})
FALSE_WORDS = frozenset({"false", "no", "0", "нет"})

_INVALID = object()


def is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def cell_text(value: Any) -> str:
    """Render a cell as trimmed text; integral floats lose their ``.0``."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


def coerce_number(value: Any) -> Any:
    """Return a number, or ``_INVALID``. Accepts ``,`` as decimal separator."""
    if isinstance(value, bool):
        return _INVALID
    if isinstance(value, numbers.Real):
        return value if math.isfinite(value) else _INVALID

    text = str(value).strip().replace(",", ".", 1)
    if "_" in text:
        return _INVALID
    try:
        number = float(text)
    except ValueError:
        return _INVALID
    return number if math.isfinite(number) else _INVALID


def coerce_boolean(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, numbers.Real) and value in (0, 1):
        return bool(value)
    word = cell_text(value).lower()
    if word in TRUE_WORDS:
        return True
    if word in FALSE_WORDS:
        return False
    return _INVALID


def _cell(row: Sequence[Any], index: int | None) -> Any:
    if index is None or index >= len(row):
        return None
    return row[index]


class RowValidator:
    """Validates data rows for one ingestion session.

    Holds the schema snapshot, status vocabulary and fallback report date so
    each row can be checked without re-deriving them.
    """

    def __init__(
        self,
        fields: Sequence[FieldDefinition],
        statuses: Iterable[StatusDefinition],
        fallback_date: date,
        tz: tzinfo = timezone.utc,
    ) -> None:
        self._fields = tuple(fields)
        self._status_titles = frozenset(s.title for s in statuses)
        self._fallback_iso = to_iso(noon_anchor(fallback_date, tz))
        self._tz = tz

    def validate_row(
        self, row: Sequence[Any], row_index: int, mapping: ColumnMapping
    ) -> tuple[ParsedTaskRecord | None, list[RowValidationError]]:
        """Validate one row. Returns ``(None, [])`` for a fully empty row."""
        if all(is_empty(_cell(row, idx)) for idx in mapping.values()):
            return None, []

        record: ParsedTaskRecord = {}
        errors: list[RowValidationError] = []

        def fail(field: FieldDefinition, message: str) -> None:
            errors.append(RowValidationError(
                row_index=row_index, field_title=field.title, message=message,
            ))

        for field in self._fields:
            value = _cell(row, mapping.get(field.key))
            empty = is_empty(value)

            if field.required and empty:
                fail(field, f"{field.title} field is empty")
                continue

            if field.type == FieldType.NUMBER:
                number = 0 if empty else coerce_number(value)
                if number is _INVALID:
                    fail(field, f"{field.title} must be a number")
                    continue
                record[field.key] = number

            elif field.type == FieldType.DATE:
                parsed = None if empty else parse_date_strict(value, self._tz)
                if parsed is None and field.required:
                    fail(field, f"{field.title} invalid value")
                    continue
                record[field.key] = parsed or self._fallback_iso

            elif field.is_status:
                text = cell_text(value)
                if text and text not in self._status_titles:
                    fail(field, f"{field.title} invalid value")
                    continue
                record[field.key] = text

            elif field.type == FieldType.BOOLEAN:
                flag = False if empty else coerce_boolean(value)
                if flag is _INVALID:
                    fail(field, f"{field.title} invalid value")
                    continue
                record[field.key] = flag

            else:
                record[field.key] = cell_text(value)

        if errors:
            return None, errors
        return record, []

    def validate_rows(self, data_rows: Sequence[Sequence[Any]], mapping: ColumnMapping) -> ValidationResult:
        result = ValidationResult()
        skipped = 0
        for position, row in enumerate(data_rows):
            record, errors = self.validate_row(row or (), position + HEADER_ROW_OFFSET, mapping)
            if errors:
                result.errors.extend(errors)
            elif record is None:
                skipped += 1
            else:
                result.records.append(record)

        logger.debug(
            "Validated %d rows: %d records, %d errors, %d empty rows skipped",
            len(data_rows), len(result.records), len(result.errors), skipped,
        )
        return result


def validate_rows(
    data_rows: Sequence[Sequence[Any]],
    mapping: ColumnMapping,
    fields: Sequence[FieldDefinition],
    statuses: Iterable[StatusDefinition],
    fallback_date: date,
    tz: tzinfo = timezone.utc,
) -> ValidationResult:
    """Validate every data row, collecting all errors in a single pass.

    A row yields a record only when it has no errors; fully empty rows are
    skipped without an error.
    """
    return RowValidator(fields, statuses, fallback_date, tz).validate_rows(data_rows, mapping)
