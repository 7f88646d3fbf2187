"""
Locate the Things 3 SQLite database.

Resolution order, first valid file wins:
1. An explicitly configured file path (a leading ~ means the home directory)
2. A search directory containing ThingsData-* subfolders
3. The default macOS group container for Things

A file only counts if it exists, has the .sqlite extension, starts with the
SQLite magic header and is readable by this process. When several
ThingsData-* folders are present (e.g. after a sync account switch), the
database modified most recently is used.
"""
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from errors import DatabaseNotFoundError

# =============================================================================
# CONSTANTS
# =============================================================================

SQLITE_HEADER = b"SQLite format 3\x00"
DB_EXTENSION = ".sqlite"
DB_FILENAME = "main.sqlite"
DB_BUNDLE = "Things Database.thingsdatabase"
DATA_DIR_PREFIX = "ThingsData-"
GROUP_CONTAINER_PREFIX = "JLMPQHK86H.com.culturedcode.ThingsMac"


def default_group_containers() -> Path:
    return Path.home() / "Library" / "Group Containers"


# =============================================================================
# FILESYSTEM PROBE
# =============================================================================

class FileProbe:
    """Thin wrapper over the filesystem calls used during resolution."""

    def exists(self, path: Path) -> bool:
        return os.path.exists(path)

    def is_dir(self, path: Path) -> bool:
        return os.path.isdir(path)

    def listdir(self, path: Path) -> list[str]:
        return sorted(os.listdir(path))

    def mtime(self, path: Path) -> float:
        return path.stat().st_mtime

    def read_header(self, path: Path, size: int = len(SQLITE_HEADER)) -> bytes:
        with open(path, 'rb') as f:
            return f.read(size)

    def can_read(self, path: Path) -> bool:
        return os.access(path, os.R_OK)


# =============================================================================
# VALIDATION
# =============================================================================

def expand_home(configured_path: str) -> Path:
    """Expand a leading ~ to the home directory; anything else is used literally."""
    configured_path = configured_path.strip()
    if configured_path.startswith("~"):
        rest = configured_path[1:].lstrip("/\\")
        return Path.home() / rest if rest else Path.home()
    return Path(configured_path)


def is_sqlite_file(path: Path, probe: FileProbe) -> bool:
    """Check extension and magic header."""
    if not probe.exists(path) or probe.is_dir(path):
        return False
    if path.suffix != DB_EXTENSION:
        return False
    try:
        return probe.read_header(path) == SQLITE_HEADER
    except OSError as e:
        print(f"Error validating SQLite file {path}: {e}")
        return False


def is_usable_db(path: Path, probe: FileProbe) -> bool:
    """A database we can actually use: valid SQLite file and readable."""
    if not is_sqlite_file(path, probe):
        return False
    if not probe.can_read(path):
        print(f"No read permission for: {path}")
        return False
    return True


# =============================================================================
# CANDIDATE SELECTION
# =============================================================================

class MatchKind(Enum):
    NONE = "none"
    ONE = "one"
    MANY = "many"


@dataclass
class SubdirMatch:
    """ThingsData-* folders found in a directory."""
    kind: MatchKind
    paths: list[Path] = field(default_factory=list)


@dataclass
class Candidate:
    path: Path
    mtime: float


def find_data_dirs(parent: Path, probe: FileProbe) -> SubdirMatch:
    """List immediate ThingsData-* subfolders of parent. An unlistable parent has none."""
    try:
        names = probe.listdir(parent)
    except OSError as e:
        print(f"Cannot list {parent}: {e}")
        return SubdirMatch(MatchKind.NONE)

    paths = [
        parent / name
        for name in names
        if name.startswith(DATA_DIR_PREFIX) and probe.is_dir(parent / name)
    ]
    if not paths:
        return SubdirMatch(MatchKind.NONE)
    if len(paths) == 1:
        return SubdirMatch(MatchKind.ONE, paths)
    return SubdirMatch(MatchKind.MANY, paths)


def db_file_in(data_dir: Path, probe: FileProbe) -> Path:
    """
    Conventional database location inside a ThingsData-* folder.

    Things keeps it inside a .thingsdatabase bundle; older layouts and
    copied folders have main.sqlite at the top level.
    """
    bundle = data_dir / DB_BUNDLE
    if probe.is_dir(bundle):
        return bundle / DB_FILENAME
    return data_dir / DB_FILENAME


def pick_most_recent(candidates: list[Candidate]) -> Path | None:
    """Return the candidate with the newest mtime; the first one wins ties."""
    best = None
    for candidate in candidates:
        if best is None or candidate.mtime > best.mtime:
            best = candidate
    return best.path if best else None


def resolve_data_dirs(match: SubdirMatch, probe: FileProbe) -> Path | None:
    """Apply the none/one/many rule to a set of ThingsData-* folders."""
    if match.kind is MatchKind.NONE:
        return None

    if match.kind is MatchKind.ONE:
        db_path = db_file_in(match.paths[0], probe)
        if is_usable_db(db_path, probe):
            return db_path
        print(f"{DB_FILENAME} not valid or lacks permission: {db_path}")
        return None

    candidates = []
    for data_dir in match.paths:
        db_path = db_file_in(data_dir, probe)
        if not is_usable_db(db_path, probe):
            continue
        try:
            candidates.append(Candidate(db_path, probe.mtime(db_path)))
        except OSError as e:
            print(f"Cannot read modification time of {db_path}: {e}")
    best = pick_most_recent(candidates)
    if best is None:
        print(f"No valid database among {len(match.paths)} {DATA_DIR_PREFIX}* folders")
    return best


# =============================================================================
# RESOLUTION BRANCHES
# =============================================================================

def resolve_from_configured_path(configured_path: str, probe: FileProbe) -> Path | None:
    db_path = expand_home(configured_path)
    if is_usable_db(db_path, probe):
        return db_path
    print(f"Configured database path is not a usable SQLite file: {db_path}")
    return None


def resolve_from_directory(directory: str | Path, probe: FileProbe) -> Path | None:
    directory = expand_home(str(directory))
    if not probe.exists(directory) or not probe.is_dir(directory):
        print(f"Database directory does not exist or is not a directory: {directory}")
        return None
    match = find_data_dirs(directory, probe)
    if match.kind is MatchKind.NONE:
        print(f"No {DATA_DIR_PREFIX}* folders in {directory}")
    return resolve_data_dirs(match, probe)


def resolve_from_fallback(probe: FileProbe, containers: Path | None = None) -> Path | None:
    """Look in the standard macOS group container for Things."""
    containers = containers or default_group_containers()
    if not probe.is_dir(containers):
        return None

    try:
        names = probe.listdir(containers)
    except OSError as e:
        print(f"Cannot list group containers {containers}: {e}")
        return None

    things_dirs = [
        name for name in names
        if name.startswith(GROUP_CONTAINER_PREFIX)
    ]
    if not things_dirs:
        print("No Things group container found")
        return None

    match = find_data_dirs(containers / things_dirs[0], probe)
    return resolve_data_dirs(match, probe)


def resolve_db_path(
    configured_path: str | None = None,
    search_dir: str | Path | None = None,
    probe: FileProbe | None = None,
    containers: Path | None = None
) -> Path:
    """
    Resolve the Things database to read from.

    Args:
        configured_path: Explicit path to main.sqlite (may start with ~)
        search_dir: Folder containing ThingsData-* subfolders
        probe: Filesystem access (defaults to the real filesystem)
        containers: Override for the group container folder used as fallback

    Returns:
        Path to a validated database file

    Raises:
        DatabaseNotFoundError: If no branch produced a usable database
    """
    probe = probe or FileProbe()

    if configured_path and configured_path.strip():
        db_path = resolve_from_configured_path(configured_path, probe)
        if db_path:
            return db_path

    if search_dir and str(search_dir).strip():
        db_path = resolve_from_directory(search_dir, probe)
        if db_path:
            return db_path

    db_path = resolve_from_fallback(probe, containers)
    if db_path:
        return db_path

    raise DatabaseNotFoundError("No valid Things database could be found")
