"""
Persistent record of which Things tasks have already been imported.

The cache is a single JSON object stored inside the vault, keyed by task
UUID. Tasks present in it are skipped by later imports until it is cleared,
so the Things database itself is never modified.
"""
import json

from pydantic import ValidationError

from schemas import CacheEntry
from vault import Vault, parent_folder

DEFAULT_CACHE_PATH = ".obsidian/plugins/things-vault-sync/imported.json"


class ImportCache:
    """
    In-memory view of the cache file.

    add() only changes memory; call save() to persist. A crash in between
    loses those entries, which just means the tasks are picked up again on
    the next run.
    """

    def __init__(self, vault: Vault, path: str = DEFAULT_CACHE_PATH):
        self.vault = vault
        self.path = path
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, uuid: str) -> bool:
        return self.has(uuid)

    def load(self) -> None:
        """Load the cache file. Missing or unreadable files give an empty cache."""
        self._entries = {}
        try:
            if not self.vault.exists(self.path):
                return
            data = json.loads(self.vault.read(self.path))
        except (OSError, ValueError) as e:
            print(f"Import cache unreadable, starting empty: {e}")
            return

        if not isinstance(data, dict):
            print(f"Import cache at {self.path} is not an object, starting empty")
            return

        try:
            self._entries = {
                str(uuid): CacheEntry.model_validate(entry)
                for uuid, entry in data.items()
            }
        except ValidationError as e:
            print(f"Import cache has invalid entries, starting empty: {e.error_count()} errors")
            self._entries = {}

    def save(self) -> None:
        """Write the whole cache back to disk, replacing the previous file."""
        folder = parent_folder(self.path)
        if folder and not self.vault.exists(folder):
            try:
                self.vault.create_folder(folder)
            except FileExistsError:
                pass
        data = {
            uuid: entry.model_dump(by_alias=True)
            for uuid, entry in self._entries.items()
        }
        self.vault.write(self.path, json.dumps(data, indent=2))

    def has(self, uuid: str) -> bool:
        return uuid in self._entries

    def add(self, uuid: str, entry: CacheEntry) -> None:
        """Insert or replace the entry for a task (memory only)."""
        self._entries[uuid] = entry

    def get(self, uuid: str) -> CacheEntry | None:
        entry = self._entries.get(uuid)
        return entry.model_copy() if entry else None

    def get_all(self) -> dict[str, CacheEntry]:
        """Copy of every entry; changing it does not touch the cache."""
        return {uuid: entry.model_copy() for uuid, entry in self._entries.items()}

    def clear(self) -> None:
        """Empty the cache and persist the empty state immediately."""
        self._entries = {}
        self.save()
