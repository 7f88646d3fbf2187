"""
Read tasks and checklist items from the Things 3 SQLite database.

Builds a single filtered query over TMTask joined with tags, project and
area, then drops tasks the import cache already knows about. The database
is opened read-only; nothing here writes to it.
"""
import sqlite3
from pathlib import Path

from errors import DatabaseOpenError
from import_cache import ImportCache
from schemas import ChecklistItem, FilterSpec, TaskRecord

DEFAULT_IMPORTED_TAG = "Imported"

TAGGED_WITH = (
    "SELECT TMTaskTag.tasks FROM TMTaskTag "
    "JOIN TMTag ON TMTag.uuid = TMTaskTag.tags "
    "WHERE TMTag.title {condition}"
)


# =============================================================================
# CONNECTION
# =============================================================================

def open_database(db_path: str | Path) -> sqlite3.Connection:
    """
    Open the Things database read-only.

    Raises:
        DatabaseOpenError: If the file can't be opened or isn't a database
    """
    uri = Path(db_path).resolve().as_uri() + "?mode=ro"
    try:
        conn = sqlite3.connect(uri, uri=True)
    except sqlite3.Error as e:
        raise DatabaseOpenError(f"Failed to open database {db_path}: {e}") from e

    conn.row_factory = sqlite3.Row
    try:
        conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
    except sqlite3.Error as e:
        conn.close()
        raise DatabaseOpenError(f"Failed to read database {db_path}: {e}") from e
    return conn


# =============================================================================
# FILTERS & QUERY BUILDING
# =============================================================================

def split_filter(value) -> list[str]:
    """Split a comma-separated setting; anything that isn't a string is empty."""
    if not isinstance(value, str):
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def prepare_filters(config: dict | None) -> FilterSpec:
    """Build a FilterSpec from the filter_* settings."""
    config = config if isinstance(config, dict) else {}
    return FilterSpec(
        tags=split_filter(config.get("filter_tags")),
        projects=split_filter(config.get("filter_projects")),
        areas=split_filter(config.get("filter_areas")),
    )


def _placeholders(values: list) -> str:
    return ",".join("?" for _ in values)


def build_where_clauses(filters: FilterSpec) -> list[str]:
    """
    WHERE clauses for the task query, in parameter order.

    Only plain to-dos (type 0) that aren't trashed are eligible. Tasks
    carrying the imported tag are always excluded.
    """
    clauses = ["TMTask.trashed = 0", "TMTask.type = 0"]
    if filters.tags:
        condition = f"IN ({_placeholders(filters.tags)})"
        clauses.append(f"TMTask.uuid IN ({TAGGED_WITH.format(condition=condition)})")
    if filters.projects:
        clauses.append(f"TMProject.title IN ({_placeholders(filters.projects)})")
    if filters.areas:
        # Tasks without their own area inherit the project's
        clauses.append(
            f"COALESCE(TMArea.title, ProjectArea.title) IN ({_placeholders(filters.areas)})"
        )
    clauses.append(f"TMTask.uuid NOT IN ({TAGGED_WITH.format(condition='= ?')})")
    return clauses


def build_params(filters: FilterSpec, imported_tag: str = DEFAULT_IMPORTED_TAG) -> list:
    """Positional parameters matching build_where_clauses."""
    return [*filters.tags, *filters.projects, *filters.areas, imported_tag]


def build_query(where_clauses: list[str]) -> str:
    """Full task query. Grouped by uuid because the tag join multiplies rows."""
    return f"""
        SELECT
            TMTask.uuid AS uuid,
            TMTask.title AS title,
            TMTask.notes AS notes,
            TMTask.creationDate AS creationDate,
            TMTask.startDate AS startDate,
            TMTask.stopDate AS stopDate,
            TMTask.status AS status,
            TMTask.deadline AS deadline,
            TMArea.title AS area,
            ProjectArea.title AS project_area,
            GROUP_CONCAT(TMTag.title, ', ') AS tags,
            TMProject.title AS project
        FROM TMTask
            LEFT JOIN TMTaskTag ON TMTaskTag.tasks = TMTask.uuid
            LEFT JOIN TMTag ON TMTag.uuid = TMTaskTag.tags
            LEFT JOIN TMArea ON TMTask.area = TMArea.uuid
            LEFT JOIN TMTask TMProject ON TMProject.uuid = TMTask.project
            LEFT JOIN TMArea ProjectArea ON ProjectArea.uuid = TMProject.area
        WHERE {' AND '.join(where_clauses)}
        GROUP BY TMTask.uuid
        ORDER BY TMTask.stopDate
    """


# =============================================================================
# QUERIES
# =============================================================================

def get_tasks(
    conn: sqlite3.Connection,
    filters: FilterSpec,
    cache: ImportCache,
    imported_tag: str = DEFAULT_IMPORTED_TAG
) -> list[TaskRecord]:
    """
    Fetch tasks matching the filters that haven't been imported yet.

    Returns:
        Task records ordered by completion date
    """
    sql = build_query(build_where_clauses(filters))
    params = build_params(filters, imported_tag)
    rows = conn.execute(sql, params).fetchall()
    return [
        TaskRecord.from_row(row)
        for row in rows
        if not cache.has(row["uuid"])
    ]


def get_checklist_items_by_task(conn: sqlite3.Connection, task_uuid: str) -> list[ChecklistItem]:
    """Checklist items for a task in their display order."""
    rows = conn.execute(
        'SELECT title, status FROM TMChecklistItem WHERE task = ? ORDER BY "index" ASC',
        [task_uuid]
    ).fetchall()
    return [ChecklistItem.from_row(row) for row in rows]
