"""
Tests for vault.py - Vault file access.
"""
import pytest

from vault import LocalVault, normalize_path, parent_folder, vault_from_config


def test_normalize_path():
    """Test separators and edge slashes are cleaned up."""
    assert normalize_path("/a//b/") == "a/b"
    assert normalize_path("a\\b\\c.md") == "a/b/c.md"
    assert normalize_path("") == ""


def test_parent_folder():
    """Test the folder part of vault paths."""
    assert parent_folder("a/b/c.md") == "a/b"
    assert parent_folder("c.md") == ""


def test_create_and_modify(temp_dir):
    """Test create refuses existing files and modify refuses missing ones."""
    vault = LocalVault(temp_dir)
    vault.create_folder("notes")
    vault.create("notes/a.md", "one")

    with pytest.raises(FileExistsError):
        vault.create("notes/a.md", "two")
    with pytest.raises(FileNotFoundError):
        vault.modify("notes/b.md", "two")

    vault.modify("notes/a.md", "two")
    assert vault.read("notes/a.md") == "two"


def test_create_folder_existing(temp_dir):
    """Test creating an existing folder raises FileExistsError."""
    vault = LocalVault(temp_dir)
    vault.create_folder("x/y")
    assert vault.exists("x/y")
    with pytest.raises(FileExistsError):
        vault.create_folder("x/y")


def test_write_creates_parents(temp_dir):
    """Test write() makes missing folders and replaces content."""
    vault = LocalVault(temp_dir)
    vault.write(".obsidian/plugins/p/data.json", "{}")
    vault.write(".obsidian/plugins/p/data.json", "[]")
    assert (temp_dir / ".obsidian" / "plugins" / "p" / "data.json").read_text() == "[]"


def test_list_children(temp_dir):
    """Test listing returns vault-relative paths."""
    vault = LocalVault(temp_dir)
    vault.write("things3/b.md", "")
    vault.write("things3/a.md", "")

    assert vault.list_children("things3") == ["things3/a.md", "things3/b.md"]
    assert "things3" in vault.list_children("")
    assert vault.list_children("missing") == []


def test_paths_stay_inside_vault(temp_dir):
    """Test paths escaping the vault root are refused."""
    vault = LocalVault(temp_dir / "vault")
    (temp_dir / "vault").mkdir()
    with pytest.raises(ValueError):
        vault.write("../outside.md", "x")


def test_vault_from_config(temp_dir):
    """Test a LocalVault is built only when a vault is configured."""
    assert vault_from_config({"vault_path": ""}) is None
    assert vault_from_config({"vault_path": str(temp_dir)}).root == temp_dir
