"""Task field schema and status vocabulary models.

Both are admin-configured and loaded from the settings store. A
``TaskSchema`` is the immutable snapshot used for one ingestion session.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Iterable

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from taskreport.core.exceptions import SchemaError

# Fields maintained by the server after upload; never read from a sheet.
SYSTEM_FIELD_KEYS = frozenset({"original_time_spent", "is_edited"})

STATUS_FIELD_KEY = "status"


class FieldType(StrEnum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    SELECT = "select"


class FieldDefinition(BaseModel):
    """One configurable task attribute and the spreadsheet column it comes from."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    key: str = Field(min_length=1)
    title: str = Field(min_length=1)
    type: FieldType = FieldType.TEXT
    required: bool = False
    filterable: bool = False
    order: int = 0
    width: str = ""

    @property
    def normalized_title(self) -> str:
        return self.title.strip().lower()

    @property
    def is_status(self) -> bool:
        return self.type == FieldType.SELECT or self.key == STATUS_FIELD_KEY


class StatusDefinition(BaseModel):
    """A value of the closed status vocabulary."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    title: str = Field(min_length=1)
    slug: str = ""
    color: str = "gray"


class TaskSchema(BaseModel):
    """Immutable snapshot of fields and statuses for one ingestion."""

    model_config = {"frozen": True}

    fields: tuple[FieldDefinition, ...] = ()
    statuses: tuple[StatusDefinition, ...] = ()

    @field_validator("fields")
    @classmethod
    def _sort_by_order(cls, fields: tuple[FieldDefinition, ...]) -> tuple[FieldDefinition, ...]:
        return tuple(sorted(fields, key=lambda f: f.order))

    @model_validator(mode="after")
    def _check_unique(self) -> TaskSchema:
        keys = [f.key for f in self.fields]
        dup_keys = sorted({k for k in keys if keys.count(k) > 1})
        if dup_keys:
            raise ValueError(f"duplicate field keys: {', '.join(dup_keys)}")

        titles = [f.normalized_title for f in self.fields]
        dup_titles = sorted({t for t in titles if titles.count(t) > 1})
        if dup_titles:
            raise ValueError(f"duplicate field titles: {', '.join(dup_titles)}")
        return self

    @classmethod
    def load(
        cls,
        fields: Iterable[FieldDefinition | dict[str, Any]],
        statuses: Iterable[StatusDefinition | dict[str, Any]],
    ) -> TaskSchema:
        """Build a validated snapshot from typed models or raw store records."""
        try:
            return cls(fields=tuple(fields), statuses=tuple(statuses))
        except ValidationError as exc:
            raise SchemaError(f"Invalid task schema: {exc}") from exc

    @property
    def ingestible_fields(self) -> tuple[FieldDefinition, ...]:
        return tuple(f for f in self.fields if f.key not in SYSTEM_FIELD_KEYS)

    @property
    def status_titles(self) -> frozenset[str]:
        return frozenset(s.title for s in self.statuses)
