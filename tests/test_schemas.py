"""
Tests for schemas.py - Pydantic data models.
"""
import pytest
from pydantic import ValidationError

from schemas import (
    CacheEntry,
    ChecklistItem,
    FilterSpec,
    ImportResult,
    TaskRecord,
    TaskStatus,
    split_tags
)


def test_task_record_from_row():
    """Test building a record from a query row."""
    row = {
        "uuid": "abc",
        "title": None,
        "notes": None,
        "status": 3,
        "tags": "work, urgent",
        "project": "Website",
        "area": None,
        "project_area": "Marketing",
        "creationDate": 1700000000.0,
        "startDate": 132784256,
        "stopDate": None,
        "deadline": None,
    }
    record = TaskRecord.from_row(row)

    assert record.title == ""
    assert record.notes == ""
    assert record.tags == ["work", "urgent"]
    assert record.area is None
    assert record.project_area == "Marketing"
    assert record.creation_date == 1700000000.0
    assert record.status_label == "completed"


def test_task_record_requires_uuid():
    """Test an empty identifier is rejected."""
    with pytest.raises(ValidationError):
        TaskRecord(uuid="")


def test_task_record_is_frozen():
    """Test records can't be changed after they are read."""
    record = TaskRecord(uuid="abc", title="x")
    with pytest.raises(ValidationError):
        record.title = "y"


def test_status_label_unknown():
    """Test unknown status codes are shown as numbers."""
    assert TaskRecord(uuid="abc", status=7).status_label == "7"
    assert TaskRecord(uuid="abc", status=TaskStatus.CANCELED).status_label == "canceled"


def test_split_tags():
    """Test GROUP_CONCAT output is split and cleaned."""
    assert split_tags("a, b ,, c") == ["a", "b", "c"]
    assert split_tags(None) == []
    assert split_tags(5) == []


@pytest.mark.parametrize("status,checked", [(3, True), (0, False), (2, False), (99, False), (None, False)])
def test_checklist_item_checked(status, checked):
    """Test only status 3 counts as checked."""
    assert ChecklistItem.from_row({"title": "x", "status": status}).checked is checked


def test_filter_spec_empty():
    """Test FilterSpec defaults to no constraints."""
    assert FilterSpec().is_empty()
    assert not FilterSpec(areas=["Home"]).is_empty()


def test_cache_entry_aliases():
    """Test cache entries accept and emit the camelCase keys."""
    entry = CacheEntry.model_validate({"importedAt": "2024-01-01T00:00:00.000Z", "filePath": "a.md"})
    assert entry.file_path == "a.md"
    assert entry.model_dump(by_alias=True) == {
        "importedAt": "2024-01-01T00:00:00.000Z",
        "filePath": "a.md",
    }


def test_cache_entry_by_name():
    """Test entries can also be built with field names; path defaults to empty."""
    entry = CacheEntry(imported_at="2024-01-01T00:00:00.000Z")
    assert entry.file_path == ""


def test_cache_entry_requires_timestamp():
    """Test entries without a timestamp are invalid."""
    with pytest.raises(ValidationError):
        CacheEntry.model_validate({"filePath": "a.md"})


def test_import_result_defaults():
    """Test a fresh result has zero counts and its own error list."""
    a, b = ImportResult(), ImportResult()
    a.errors.append("x")
    assert b.errors == []
    assert a.written == 0
