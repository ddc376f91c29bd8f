"""Resolve configured field titles to physical column indices."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from taskreport.core.exceptions import MissingColumnsError
from taskreport.core.types import ColumnMapping
from taskreport.models.schema import FieldDefinition

logger = logging.getLogger(__name__)


def normalize_header(cell: Any) -> str:
    if cell is None:
        return ""
    return str(cell).strip().lower()


def resolve_columns(header_row: Sequence[Any], fields: Sequence[FieldDefinition]) -> ColumnMapping:
    """Map field keys to header columns, matching titles case-insensitively.

    The first header cell whose normalized text equals the normalized field
    title wins. Fields without a column are left out of the mapping.

    Raises:
        MissingColumnsError: if any required field has no column; lists
            every missing title.
    """
    headers = [normalize_header(cell) for cell in header_row]
    mapping: ColumnMapping = {}

    for field in fields:
        target = field.normalized_title
        for index, header in enumerate(headers):
            if header and header == target:
                mapping[field.key] = index
                break

    missing = [f.title for f in fields if f.required and f.key not in mapping]
    if missing:
        raise MissingColumnsError(missing)

    logger.debug("Resolved %d of %d fields to columns", len(mapping), len(fields))
    return mapping
