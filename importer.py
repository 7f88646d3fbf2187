#!/usr/bin/env python3
"""
Import runner - copies Things 3 tasks into the Obsidian vault.

Resolves the database, selects tasks matching the filters that aren't in
the import cache yet, writes one note per task and records each one.

Usage:
    python importer.py --status           # Show cache / vault status
    python importer.py --import           # Import new tasks
    python importer.py --rebuild-cache    # Mark eligible tasks imported without writing notes
    python importer.py --clear-cache      # Forget every import (notes stay in the vault)
"""
import argparse
import json
import os
import platform
import sys
import tempfile
import time
from datetime import datetime
from pathlib import Path

from config import load_config, validate_config
from data_management import format_status_markdown, get_data_status, reset_cache
from dates import now_iso
from db_path import resolve_db_path
from errors import ImportAbortedError
from import_cache import ImportCache
from note_writer import write_note
from schemas import CacheEntry, ImportResult
from things_db import (
    DEFAULT_IMPORTED_TAG,
    get_checklist_items_by_task,
    get_tasks,
    open_database,
    prepare_filters
)
from vault import Vault, vault_from_config

STATUS_FILE = Path("data/import_status.json")


# =============================================================================
# STATUS MANAGEMENT
# =============================================================================

def safe_replace(src, dst, retries=3, delay=0.1):
    """Cross-platform atomic file replace with Windows retry logic."""
    for attempt in range(retries):
        try:
            os.replace(src, dst)
            return
        except PermissionError:
            if platform.system() == 'Windows' and attempt < retries - 1:
                time.sleep(delay)
            else:
                raise


def update_status(message: str, progress_pct: float = None,
                  current: int = 0, total: int = 0,
                  complete: bool = False, error: bool = False):
    """Atomically update import status for UI polling."""
    status = {
        "message": message,
        "progress": progress_pct,
        "current": current,
        "total": total,
        "complete": complete,
        "error": error,
        "timestamp": datetime.now().isoformat(),
        "pid": os.getpid()
    }
    STATUS_FILE.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=STATUS_FILE.parent, suffix='.tmp')
    try:
        with os.fdopen(fd, 'w') as f:
            json.dump(status, f)
        safe_replace(tmp_path, STATUS_FILE)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def get_status() -> dict:
    """Get current import status."""
    if STATUS_FILE.exists():
        with open(STATUS_FILE, 'r') as f:
            return json.load(f)
    return {"message": "No import in progress", "complete": False}


# =============================================================================
# SHARED SETUP
# =============================================================================

def _resolve_vault(config: dict, vault: Vault | None) -> Vault:
    if vault is not None:
        return vault
    vault = vault_from_config(config)
    if vault is None:
        raise ImportAbortedError("No vault configured")
    return vault


def _open_things_db(config: dict):
    """Resolve and open the Things database. Raises ImportAbortedError subclasses."""
    db_path = resolve_db_path(config.get("database_path"), config.get("database_dir"))
    print(f"Using Things database: {db_path}")
    return open_database(db_path)


def _imported_tag(config: dict) -> str:
    tag = config.get("imported_tag")
    return tag if isinstance(tag, str) else DEFAULT_IMPORTED_TAG


def _save_cache(cache: ImportCache) -> bool:
    """Write the cache to the vault. A failure is reported, not raised."""
    try:
        cache.save()
    except OSError as e:
        print(f"Failed to save import cache: {e}")
        return False
    return True


# =============================================================================
# ENTRY POINTS
# =============================================================================

def run_import(config: dict, vault: Vault = None) -> ImportResult:
    """
    Import every eligible task that isn't in the cache yet.

    Args:
        config: Loaded configuration dict
        vault: Target vault (defaults to the configured vault on disk)

    Returns:
        ImportResult with counts for the run

    Raises:
        ImportAbortedError: If the vault, database path or database can't be used
    """
    vault = _resolve_vault(config, vault)
    update_status("Resolving Things database...", progress_pct=0)
    conn = _open_things_db(config)

    try:
        cache = ImportCache(vault)
        cache.load()

        tasks = get_tasks(conn, prepare_filters(config), cache, _imported_tag(config))
        result = ImportResult(found=len(tasks))
        total = len(tasks)

        if not tasks:
            print("No new tasks to import.")

        for i, task in enumerate(tasks):
            if cache.has(task.uuid):
                result.skipped += 1
                continue

            title = (task.title or "Untitled")[:50]
            print(f"[{i+1}/{total}] Importing \"{title}\"...")
            update_status(f"Importing: {title}", (i / total) * 100, i + 1, total)

            checklist = get_checklist_items_by_task(conn, task.uuid)
            try:
                path = write_note(vault, task, config, checklist, cache)
            except (OSError, ValueError) as e:
                print(f"Error writing {task.uuid}: {e}")
                path = None

            if path:
                result.written += 1
            else:
                result.skipped += 1
                result.errors.append(task.uuid)

        result.cache_saved = _save_cache(cache)
        result.cached = len(cache)
    finally:
        conn.close()

    update_status(
        f"Complete: {result.written} imported, {result.skipped} skipped",
        100, total, total, complete=True
    )
    return result


def rebuild_cache_only(config: dict, vault: Vault = None) -> ImportResult:
    """
    Mark every eligible task as imported without writing any notes.

    Useful when the cache file was lost but the notes are still in the vault.
    """
    vault = _resolve_vault(config, vault)
    update_status("Resolving Things database...", progress_pct=0)
    conn = _open_things_db(config)

    try:
        cache = ImportCache(vault)
        cache.load()

        tasks = get_tasks(conn, prepare_filters(config), cache, _imported_tag(config))
        for task in tasks:
            cache.add(task.uuid, CacheEntry(imported_at=now_iso(), file_path=""))
        saved = _save_cache(cache)
    finally:
        conn.close()

    print(f"Cache rebuilt with {len(tasks)} tasks.")
    update_status(f"Cache rebuilt with {len(tasks)} tasks", 100, len(tasks), len(tasks), complete=True)
    return ImportResult(found=len(tasks), cached=len(cache), cache_saved=saved)


def clear_cache(config: dict, vault: Vault = None) -> int:
    """Empty the import cache. Returns the number of entries removed."""
    vault = _resolve_vault(config, vault)
    cleared = reset_cache(vault)["cleared"]
    print(f"Import cache cleared ({cleared} entries).")
    return cleared


# =============================================================================
# CLI INTERFACE
# =============================================================================

def print_summary(result: ImportResult, elapsed: float):
    print()
    print("=" * 50)
    print("IMPORT COMPLETE")
    print("=" * 50)
    print(f"Eligible:      {result.found}")
    print(f"Written:       {result.written}")
    print(f"Skipped:       {result.skipped}")
    print(f"Cache size:    {result.cached}")
    if not result.cache_saved:
        print("Cache file:    NOT SAVED (tasks will be imported again next run)")
    print(f"Total time:    {elapsed:.1f}s")

    if result.errors:
        print(f"\nFailed UUIDs: {result.errors[:5]}")
        if len(result.errors) > 5:
            print(f"  ... and {len(result.errors) - 5} more")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Import Things 3 tasks into an Obsidian vault",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python importer.py --status                 Show cache and vault status
  python importer.py --import                 Import new tasks
  python importer.py --import --vault ~/Notes Import into a specific vault
  python importer.py --rebuild-cache          Mark tasks imported without writing notes
  python importer.py --clear-cache            Forget all previous imports
        """
    )

    action = parser.add_mutually_exclusive_group()
    action.add_argument('--status', action='store_true',
                        help='Show import status')
    action.add_argument('--import', dest='run_import', action='store_true',
                        help='Import tasks not imported yet')
    action.add_argument('--rebuild-cache', action='store_true',
                        help='Add all eligible tasks to the cache without writing notes')
    action.add_argument('--clear-cache', action='store_true',
                        help='Clear the import cache')

    parser.add_argument('--vault', type=str, metavar='PATH',
                        help='Vault root (overrides config)')
    parser.add_argument('--db', type=str, metavar='PATH',
                        help='Path to main.sqlite (overrides config)')
    parser.add_argument('--db-dir', type=str, metavar='PATH',
                        help='Folder containing ThingsData-* (overrides config)')

    args = parser.parse_args(argv)

    config = load_config()
    if args.vault:
        config["vault_path"] = args.vault
    if args.db:
        config["database_path"] = args.db
    if args.db_dir:
        config["database_dir"] = args.db_dir

    is_valid, error = validate_config(config)
    if not is_valid:
        print(f"Configuration error: {error}")
        return 1

    vault = vault_from_config(config)
    start_time = time.time()

    try:
        if args.run_import:
            result = run_import(config, vault)
            print_summary(result, time.time() - start_time)
        elif args.rebuild_cache:
            rebuild_cache_only(config, vault)
        elif args.clear_cache:
            clear_cache(config, vault)
        else:
            status = get_data_status(config, vault)
            print("Import Status")
            print("-" * 30)
            print(format_status_markdown(status).replace("**", ""))
    except ImportAbortedError as e:
        print(f"Import aborted: {e}")
        update_status(f"Import aborted: {e}", error=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
