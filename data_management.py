#!/usr/bin/env python3
"""
Data management utilities for the Things importer.

Provides status reporting and reset functionality for the import cache.
"""
from datetime import datetime, timezone

from import_cache import ImportCache
from note_writer import NOTE_EXTENSION
from vault import Vault, normalize_path


def get_data_status(config: dict, vault: Vault) -> dict:
    """
    Return counts and status of the import cache and destination folder.

    Returns dict with:
        - cached_count: Number of tasks recorded in the cache
        - rebuild_only_count: Cache entries without a note (from a rebuild)
        - note_count: Markdown files in the destination folder
        - last_import: "Never" or "YYYY-MM-DD HH:MM" (UTC)
    """
    status = {
        "cached_count": 0,
        "rebuild_only_count": 0,
        "note_count": 0,
        "last_import": "Never",
    }

    cache = ImportCache(vault)
    cache.load()
    entries = cache.get_all()
    status["cached_count"] = len(entries)
    status["rebuild_only_count"] = sum(1 for e in entries.values() if not e.file_path)

    # Count notes (exclude files starting with _)
    folder = normalize_path(config.get("destination_folder") or "")
    status["note_count"] = len([
        p for p in vault.list_children(folder)
        if p.endswith(NOTE_EXTENSION) and not p.rsplit("/", 1)[-1].startswith("_")
    ])

    timestamps = []
    for entry in entries.values():
        try:
            ts = datetime.fromisoformat(entry.imported_at.replace("Z", "+00:00"))
        except ValueError:
            continue
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        timestamps.append(ts)
    if timestamps:
        status["last_import"] = max(timestamps).strftime('%Y-%m-%d %H:%M')

    return status


def reset_cache(vault: Vault) -> dict:
    """
    Clear the import cache. Notes already in the vault are left alone.

    Returns dict with:
        - cleared: Number of cache entries removed
        - type: "cache"
    """
    cache = ImportCache(vault)
    cache.load()
    count = len(cache)
    cache.clear()
    return {"cleared": count, "type": "cache"}


def format_status_markdown(status: dict) -> str:
    """Format status dict as markdown for display."""
    return f"""**Imported tasks (cache):** {status['cached_count']:,}

**Cache-only entries (rebuild):** {status['rebuild_only_count']:,}

**Notes in destination folder:** {status['note_count']:,}

**Last import:** {status['last_import']}"""


if __name__ == "__main__":
    from config import load_config
    from vault import vault_from_config

    # Show current status when run directly
    config = load_config()
    vault = vault_from_config(config)
    if vault is None:
        print("No vault configured.")
    else:
        status = get_data_status(config, vault)
        print("Data Status:")
        print(f"  Imported tasks:   {status['cached_count']}")
        print(f"  Cache-only:       {status['rebuild_only_count']}")
        print(f"  Notes on disk:    {status['note_count']}")
        print(f"  Last import:      {status['last_import']}")
