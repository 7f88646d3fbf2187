"""
Shared pytest fixtures for Things importer tests.
"""
import sqlite3
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from config import DEFAULT_CONFIG
from dates import pack_date
from vault import normalize_path, parent_folder

# Task UUIDs used by the fixture database
LAUNCH_UUID = "A7kQ2mZpX9rT4vB1nC8dLe"
BLOG_UUID = "B3xW8nLq5sJ2hF6kP0tRua"
OFFSITE_UUID = "C9pM4vYz1gD7bN3wK5qTfe"
UNTITLED_UUID = "D2hR6tXc8mQ4jL0vB7nWsy"
TRASHED_UUID = "E5nB1kVd3pS9fG6zH2mQwa"
ALREADY_IMPORTED_UUID = "F8gT0wJs6rK2cX4yM9vNpb"
PROJECT_UUID = "P4qL7dNf2kR8wZ1xC5vBtm"


# =============================================================================
# IN-MEMORY VAULT
# =============================================================================

class MemoryVault:
    """Dict-backed vault with the same error behavior as LocalVault."""

    def __init__(self, fail_on: str = None):
        self.files: dict[str, str] = {}
        self.folders: set[str] = set()
        # Writes to any path containing this substring raise PermissionError
        self.fail_on = fail_on

    def _check(self, path: str):
        if self.fail_on and self.fail_on in path:
            raise PermissionError(f"Permission denied: {path}")

    def _add_parents(self, path: str):
        folder = parent_folder(path)
        while folder:
            self.folders.add(folder)
            folder = parent_folder(folder)

    def exists(self, path: str) -> bool:
        path = normalize_path(path)
        return path == "" or path in self.files or path in self.folders

    def read(self, path: str) -> str:
        path = normalize_path(path)
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def write(self, path: str, content: str) -> None:
        path = normalize_path(path)
        self._check(path)
        self._add_parents(path)
        self.files[path] = content

    def create(self, path: str, content: str) -> None:
        path = normalize_path(path)
        self._check(path)
        if self.exists(path):
            raise FileExistsError(path)
        if not self.exists(parent_folder(path)):
            raise FileNotFoundError(parent_folder(path))
        self.files[path] = content

    def modify(self, path: str, content: str) -> None:
        path = normalize_path(path)
        self._check(path)
        if path not in self.files:
            raise FileNotFoundError(path)
        self.files[path] = content

    def create_folder(self, path: str) -> None:
        path = normalize_path(path)
        if self.exists(path):
            raise FileExistsError(path)
        self._add_parents(path)
        self.folders.add(path)

    def list_children(self, path: str) -> list[str]:
        path = normalize_path(path)
        children = {
            p for p in list(self.files) + list(self.folders)
            if parent_folder(p) == path and p != path
        }
        return sorted(children)

    def notes(self) -> list[str]:
        return sorted(p for p in self.files if p.endswith(".md"))


# =============================================================================
# THINGS DATABASE
# =============================================================================

SCHEMA = """
CREATE TABLE TMArea (uuid TEXT PRIMARY KEY, title TEXT);
CREATE TABLE TMTag (uuid TEXT PRIMARY KEY, title TEXT);
CREATE TABLE TMTaskTag (tasks TEXT, tags TEXT);
CREATE TABLE TMTask (
    uuid TEXT PRIMARY KEY,
    title TEXT,
    notes TEXT,
    creationDate REAL,
    startDate INTEGER,
    stopDate REAL,
    status INTEGER,
    deadline INTEGER,
    area TEXT,
    project TEXT,
    trashed INTEGER,
    type INTEGER
);
CREATE TABLE TMChecklistItem (
    uuid TEXT PRIMARY KEY,
    task TEXT,
    title TEXT,
    status INTEGER,
    "index" INTEGER
);
"""


def build_things_db(path: Path) -> Path:
    """Create a small Things-shaped database at path."""
    conn = sqlite3.connect(path)
    conn.executescript(SCHEMA)

    conn.executemany("INSERT INTO TMArea VALUES (?, ?)", [
        ("area-marketing", "Marketing"),
        ("area-home", "Home"),
    ])
    conn.executemany("INSERT INTO TMTag VALUES (?, ?)", [
        ("tag-work", "work"),
        ("tag-urgent", "urgent"),
        ("tag-personal", "personal"),
        ("tag-imported", "Imported"),
    ])

    task_sql = "INSERT INTO TMTask VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
    conn.executemany(task_sql, [
        # Project (type 1) in the Marketing area
        (PROJECT_UUID, "Website", "", 1690000000.0, None, None, 0, None,
         "area-marketing", None, 0, 1),
        # Matches work / Website / Marketing (area inherited from project)
        (LAUNCH_UUID, "Launch landing page", "Ship the new hero section.",
         1700000000.0, pack_date(2023, 11, 15), 1700500000.0, 3,
         pack_date(2023, 12, 1), None, PROJECT_UUID, 0, 0),
        # Same project, wrong tag
        (BLOG_UUID, "Write blog post", "", 1700100000.0, None, 1700600000.0, 3,
         None, None, PROJECT_UUID, 0, 0),
        # Right tag and area, no project
        (OFFSITE_UUID, "Plan offsite", "Book venue", None, pack_date(2024, 1, 10),
         None, 0, None, "area-marketing", None, 0, 0),
        # No title, no tags, no project or area
        (UNTITLED_UUID, "", None, 1700200000.0, None, None, 0, None,
         None, None, 0, 0),
        # Never eligible
        (TRASHED_UUID, "Old idea", "", 1600000000.0, None, None, 0, None,
         "area-home", None, 1, 0),
        (ALREADY_IMPORTED_UUID, "Synced elsewhere", "", 1650000000.0, None, None, 3,
         None, "area-home", None, 0, 0),
    ])

    conn.executemany("INSERT INTO TMTaskTag VALUES (?, ?)", [
        (LAUNCH_UUID, "tag-work"),
        (LAUNCH_UUID, "tag-urgent"),
        (BLOG_UUID, "tag-personal"),
        (OFFSITE_UUID, "tag-work"),
        (TRASHED_UUID, "tag-work"),
        (ALREADY_IMPORTED_UUID, "tag-work"),
        (ALREADY_IMPORTED_UUID, "tag-imported"),
    ])

    # Inserted out of display order on purpose
    conn.executemany('INSERT INTO TMChecklistItem VALUES (?, ?, ?, ?, ?)', [
        ("cl-3", LAUNCH_UUID, "Deploy", 0, 3),
        ("cl-1", LAUNCH_UUID, "Draft copy", 3, 1),
        ("cl-2", LAUNCH_UUID, "Review with team", 2, 2),
    ])

    conn.commit()
    conn.close()
    return path


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def things_db(temp_dir) -> Path:
    """Path to a populated Things database named main.sqlite."""
    return build_things_db(temp_dir / "main.sqlite")


@pytest.fixture
def memory_vault() -> MemoryVault:
    return MemoryVault()


@pytest.fixture
def sample_config(things_db) -> dict:
    """Default configuration pointing at the fixture database, no filters."""
    return {
        **DEFAULT_CONFIG,
        "database_path": str(things_db),
        "custom_tags": "",
    }


@pytest.fixture(autouse=True)
def isolate_files(tmp_path, monkeypatch):
    """Keep config, status and fallback lookups away from the real machine."""
    import config as config_module
    import db_path as db_path_module
    import importer as importer_module

    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.json")
    monkeypatch.setattr(importer_module, "STATUS_FILE", tmp_path / "data" / "import_status.json")
    monkeypatch.setattr(db_path_module, "default_group_containers", lambda: tmp_path / "no-containers")
    monkeypatch.delenv("THINGS_VAULT_PATH", raising=False)
