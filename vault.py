"""
Vault file access.

The importer only touches the vault through the small Vault protocol below,
so the note writer and cache can run against the real vault on disk or an
in-memory fake in tests. Paths are vault-relative, "/"-separated strings.
"""
import os
import re
from pathlib import Path
from typing import Protocol


def normalize_path(path: str) -> str:
    """Normalize a vault-relative path: forward slashes, no duplicate or edge slashes."""
    if not path:
        return ""
    path = path.replace("\\", "/")
    path = re.sub(r"/+", "/", path)
    return path.strip().strip("/")


def parent_folder(path: str) -> str:
    """Folder part of a vault path ("" for the vault root)."""
    path = normalize_path(path)
    return path.rsplit("/", 1)[0] if "/" in path else ""


class Vault(Protocol):
    def exists(self, path: str) -> bool: ...
    def read(self, path: str) -> str: ...
    def write(self, path: str, content: str) -> None: ...
    def create(self, path: str, content: str) -> None: ...
    def modify(self, path: str, content: str) -> None: ...
    def create_folder(self, path: str) -> None: ...
    def list_children(self, path: str) -> list[str]: ...


class LocalVault:
    """Vault backed by a directory on the local filesystem."""

    def __init__(self, root: str | Path):
        self.root = Path(root).expanduser()

    def __repr__(self) -> str:
        return f"LocalVault({str(self.root)!r})"

    def _full(self, path: str) -> Path:
        rel = normalize_path(path)
        full = (self.root / rel).resolve() if rel else self.root.resolve()
        root = self.root.resolve()
        if full != root and root not in full.parents:
            raise ValueError(f"Path escapes vault: {path}")
        return full

    def exists(self, path: str) -> bool:
        return self._full(path).exists()

    def read(self, path: str) -> str:
        with open(self._full(path), 'r', encoding='utf-8') as f:
            return f.read()

    def write(self, path: str, content: str) -> None:
        """Write a file, replacing any previous content."""
        full = self._full(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        with open(full, 'w', encoding='utf-8') as f:
            f.write(content)

    def create(self, path: str, content: str) -> None:
        """Create a new file. Raises FileExistsError if it is already there."""
        with open(self._full(path), 'x', encoding='utf-8') as f:
            f.write(content)

    def modify(self, path: str, content: str) -> None:
        """Overwrite an existing file. Raises FileNotFoundError if it is missing."""
        full = self._full(path)
        if not full.is_file():
            raise FileNotFoundError(f"No such note: {path}")
        with open(full, 'w', encoding='utf-8') as f:
            f.write(content)

    def create_folder(self, path: str) -> None:
        """Create a folder. Raises FileExistsError if it already exists."""
        os.makedirs(self._full(path))

    def list_children(self, path: str) -> list[str]:
        """Vault paths of the immediate children of a folder."""
        full = self._full(path)
        if not full.is_dir():
            return []
        prefix = normalize_path(path)
        return sorted(
            f"{prefix}/{child.name}" if prefix else child.name
            for child in full.iterdir()
        )


def vault_from_config(config: dict) -> LocalVault | None:
    """LocalVault for the configured vault root, or None if none is set."""
    from config import get_vault_path

    root = get_vault_path(config)
    return LocalVault(root) if root else None
