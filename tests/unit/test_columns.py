"""Tests for header-to-field column resolution."""

from __future__ import annotations

import pytest

from taskreport.core.exceptions import MissingColumnsError
from taskreport.ingestion.columns import resolve_columns
from taskreport.models.schema import FieldDefinition, FieldType
from tests.fakes import FIELDS, HEADER


def test_maps_every_header():
    mapping = resolve_columns(HEADER, FIELDS)
    assert mapping == {"task_number": 0, "time_spent": 1, "status": 2, "deadline": 3, "comment": 4}


def test_matching_ignores_case_and_whitespace():
    header = ["  № ЗАДАЧИ ", "затрачено", "СТАТУС"]
    mapping = resolve_columns(header, FIELDS)
    assert mapping == {"task_number": 0, "time_spent": 1, "status": 2}


def test_columns_may_be_reordered_and_padded():
    header = [None, "Комментарий", "Статус", "Extra", "Затрачено", "№ Задачи"]
    mapping = resolve_columns(header, FIELDS)
    assert mapping["task_number"] == 5
    assert mapping["comment"] == 1
    assert "deadline" not in mapping


def test_first_matching_header_wins():
    header = ["№ Задачи", "Затрачено", "Статус", "Затрачено"]
    assert resolve_columns(header, FIELDS)["time_spent"] == 1


def test_missing_optional_columns_are_not_errors():
    mapping = resolve_columns(["№ Задачи", "Затрачено", "Статус"], FIELDS)
    assert set(mapping) == {"task_number", "time_spent", "status"}


def test_missing_required_columns_lists_all_titles():
    with pytest.raises(MissingColumnsError) as exc_info:
        resolve_columns(["Комментарий", "Статус"], FIELDS)
    assert exc_info.value.titles == ["№ Задачи", "Затрачено"]
    assert "№ Задачи, Затрачено" in str(exc_info.value)


def test_numeric_header_cells_are_compared_as_text():
    fields = [FieldDefinition(key="year", title="2025", type=FieldType.NUMBER, required=True)]
    assert resolve_columns([2025], fields) == {"year": 0}
