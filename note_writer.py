"""
Render Things tasks as Obsidian notes and write them into the vault.

Each note gets YAML frontmatter with the task's identity, dates and tags,
followed by the title, the task notes and its checklist. A note is only
recorded in the import cache once it has been written successfully.
"""
import re

from dates import date_stamp, now_iso, to_iso
from import_cache import ImportCache
from schemas import CacheEntry, ChecklistItem, TaskRecord
from vault import Vault, normalize_path, parent_folder

# =============================================================================
# CONSTANTS
# =============================================================================

THINGS_LINK = "things:///show?id={uuid}"
NOTE_EXTENSION = ".md"
MAX_TITLE_LENGTH = 50
UUID_PREFIX_LENGTH = 8
INVALID_PATH_MARKERS = ("undefined", "null")

# Characters that change meaning at the start of a plain YAML scalar
YAML_INDICATORS = "-?:,[]{}#&*!|>'\"%@`"

DEFAULT_HEADERS = {
    "note_section_header": "Note",
    "details_section_header": "Details",
    "checklist_section_header": "Checklist",
}


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def sanitize_title(title) -> str:
    """Convert a task title to a filename-safe fragment."""
    if not isinstance(title, str) or not title.strip():
        return "Untitled"
    text = re.sub(r'[^a-zA-Z0-9\-_ ]', '', title).strip()
    text = re.sub(r'\s+', '_', text)
    return text[:MAX_TITLE_LENGTH] or "Untitled"


def sanitize_yaml_string(value: str) -> str:
    """Escape YAML special characters in string values."""
    if not isinstance(value, str):
        return str(value)
    if value == "":
        return '""'
    # If contains special chars or starts with an indicator, wrap in quotes
    needs_quotes = (
        any(c in value for c in [':', '#', '[', ']', '{', '}', '"', "'", '\n', '|', '>', ','])
        or value[0] in YAML_INDICATORS
        or value != value.strip()
    )
    if needs_quotes:
        escaped = value.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n')
        return f'"{escaped}"'
    return value


def format_frontmatter(metadata: dict) -> str:
    """Generate the YAML frontmatter block. Every key is written, in order."""
    lines = ["---"]

    for key, value in metadata.items():
        if isinstance(value, list):
            if not value:
                lines.append(f"{key}: []")
            else:
                lines.append(f"{key}:")
                for item in value:
                    lines.append(f"  - {sanitize_yaml_string(item)}")
        elif value is None:
            lines.append(f'{key}: ""')
        else:
            lines.append(f"{key}: {sanitize_yaml_string(value)}")

    lines.append("---")
    return "\n".join(lines)


def split_setting(value) -> list[str]:
    if not isinstance(value, str):
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def build_tags(record: TaskRecord, config: dict) -> list[str]:
    """
    Collect the note's tags.

    Order: the task's own tags, its project, its area (or the project's area
    when the task has none), then the configured custom tags. Whitespace is
    removed since Obsidian tags can't contain spaces; duplicates are dropped.
    """
    tags = list(record.tags)
    if config.get("include_project_as_tag") and record.project:
        tags.append(record.project)
    if config.get("include_area_as_tag"):
        if record.area:
            tags.append(record.area)
        elif record.project_area:
            tags.append(record.project_area)
    tags.extend(split_setting(config.get("custom_tags")))

    seen = []
    for tag in tags:
        tag = re.sub(r'\s+', '', tag or "")
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def section_header(config: dict, key: str) -> str:
    value = config.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return DEFAULT_HEADERS[key]


# =============================================================================
# NOTE GENERATION
# =============================================================================

def created_iso(record: TaskRecord) -> str:
    """Creation date, falling back to the start date."""
    return to_iso(record.creation_date) or to_iso(record.start_date)


def render_note(record: TaskRecord, config: dict, checklist: list[ChecklistItem]) -> str:
    """Generate markdown for a task note."""
    frontmatter = {
        "t3_uuid": record.uuid,
        "t3_link": THINGS_LINK.format(uuid=record.uuid),
        "t3_created_date": created_iso(record),
        "t3_start_date": to_iso(record.start_date),
        "t3_end_date": to_iso(record.stop_date),
        "t3_deadline": to_iso(record.deadline),
        "tags": build_tags(record, config),
    }

    content = [
        format_frontmatter(frontmatter),
        "",
        f"# {section_header(config, 'note_section_header')}",
        record.title,
    ]

    if record.notes and record.notes.strip():
        content.append("")
        content.append(f"# {section_header(config, 'details_section_header')}")
        content.append(record.notes)

    if checklist:
        content.append("")
        content.append(f"# {section_header(config, 'checklist_section_header')}")
        for item in checklist:
            mark = "[x]" if item.checked else "[ ]"
            content.append(f"- {mark} {item.title}")

    return "\n".join(content)


def note_filename(record: TaskRecord) -> str:
    """[YYYYMMDD_]Title_uuidprefix.md"""
    parts = []
    stamp = date_stamp(record.creation_date) or date_stamp(record.start_date)
    if stamp:
        parts.append(stamp)
    parts.append(sanitize_title(record.title))
    parts.append(record.uuid[:UUID_PREFIX_LENGTH])
    return "_".join(parts) + NOTE_EXTENSION


def note_path(record: TaskRecord, config: dict) -> str:
    """Vault path of the note for a task."""
    folder = config.get("destination_folder")
    folder = normalize_path(folder) if isinstance(folder, str) else ""
    filename = note_filename(record)
    return f"{folder}/{filename}" if folder else filename


# =============================================================================
# WRITING
# =============================================================================

def ensure_folder(vault: Vault, folder: str) -> bool:
    """Make sure folder exists. Returns False if it couldn't be created."""
    if not folder:
        return True
    try:
        if vault.exists(folder):
            return True
        vault.create_folder(folder)
    except ValueError as e:
        print(f"Invalid folder {folder}: {e}")
        return False
    except OSError as e:
        # Someone else may have created it in the meantime
        if vault.exists(folder):
            return True
        print(f"Failed to create folder {folder}: {e}")
        return False
    return True


def is_valid_note_path(path: str) -> bool:
    if not path or any(marker in path for marker in INVALID_PATH_MARKERS):
        return False
    return True


def write_note(
    vault: Vault,
    record: TaskRecord,
    config: dict,
    checklist: list[ChecklistItem],
    cache: ImportCache
) -> str | None:
    """
    Write the note for one task and record it in the cache.

    An existing note at the same path is overwritten, which covers the case
    where the cache was cleared but the notes are still in the vault.

    Returns:
        The note's vault path, or None if the task was skipped
    """
    content = render_note(record, config, checklist)
    path = note_path(record, config)

    if not ensure_folder(vault, parent_folder(path)):
        return None

    if not is_valid_note_path(path):
        print(f"Skipping {record.uuid}: invalid note path {path!r}")
        return None

    try:
        if vault.exists(path):
            vault.modify(path, content)
        else:
            vault.create(path, content)
    except (OSError, ValueError) as e:
        print(f"Failed to create or overwrite note {path}: {e}")
        return None

    cache.add(record.uuid, CacheEntry(imported_at=now_iso(), file_path=path))
    try:
        cache.save()
    except OSError as e:
        # The note exists; the entry stays in memory for the final save
        print(f"Failed to save import cache after {path}: {e}")
    return path
