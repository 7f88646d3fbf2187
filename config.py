#!/usr/bin/env python3
"""
Configuration management for the Things importer.

Handles the vault location, database discovery, filters and note options.
The loaded dict is passed explicitly to every component that needs it.
"""
import json
import os
from pathlib import Path

CONFIG_FILE = Path(__file__).parent / "config.json"

VAULT_ENV_VAR = "THINGS_VAULT_PATH"

DEFAULT_CONFIG = {
    "vault_path": "",                 # Obsidian vault root (or THINGS_VAULT_PATH)

    # Database discovery (both optional, auto-detected on macOS)
    "database_path": "",              # path to main.sqlite, ~ allowed
    "database_dir": "",               # folder with ThingsData-* subfolders

    # Filters: comma-separated, blank means no constraint
    "filter_tags": "",
    "filter_projects": "",
    "filter_areas": "",

    # On import
    "destination_folder": "things3",  # blank means vault root
    "include_project_as_tag": True,
    "include_area_as_tag": True,
    "custom_tags": "",
    "note_section_header": "Note",
    "details_section_header": "Details",
    "checklist_section_header": "Checklist",
    "imported_tag": "Imported",       # Things tag marking tasks imported elsewhere
}

BOOLEAN_KEYS = ("include_project_as_tag", "include_area_as_tag")


def load_config() -> dict:
    """
    Load configuration from config.json.
    Creates file with defaults if it doesn't exist.
    """
    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, 'r') as f:
            config = json.load(f)
        # Merge with defaults to handle new config options
        merged = {**DEFAULT_CONFIG, **config}
        return merged
    else:
        save_config(DEFAULT_CONFIG)
        return DEFAULT_CONFIG.copy()


def save_config(config: dict) -> None:
    """Save configuration to config.json."""
    with open(CONFIG_FILE, 'w') as f:
        json.dump(config, f, indent=2)


def get_vault_path(config: dict = None) -> Path | None:
    """
    Get the vault root from config or environment variable.

    Priority:
    1. config["vault_path"] if non-empty
    2. THINGS_VAULT_PATH env var
    """
    if config is None:
        config = load_config()

    raw = config.get("vault_path") or os.environ.get(VAULT_ENV_VAR)
    if not raw or not isinstance(raw, str) or not raw.strip():
        return None
    return Path(raw.strip()).expanduser()


def validate_config(config: dict = None) -> tuple[bool, str]:
    """
    Validate configuration is complete and usable.
    Returns (is_valid, error_message).
    """
    if config is None:
        config = load_config()

    vault = get_vault_path(config)
    if vault is None:
        return False, f"No vault configured. Set 'vault_path' in config.json or {VAULT_ENV_VAR} environment variable"
    if not vault.is_dir():
        return False, f"Vault path is not a directory: {vault}"

    for key in BOOLEAN_KEYS:
        if not isinstance(config.get(key), bool):
            return False, f"Setting '{key}' must be true or false"

    folder = config.get("destination_folder", "")
    if not isinstance(folder, str):
        return False, "Setting 'destination_folder' must be a string"
    if ".." in folder.replace("\\", "/").split("/"):
        return False, f"Destination folder must stay inside the vault: {folder}"

    return True, ""


if __name__ == "__main__":
    # Show current config when run directly
    config = load_config()
    print("Current configuration:")
    print(json.dumps(config, indent=2))

    is_valid, error = validate_config(config)
    if is_valid:
        print("\nConfiguration is valid.")
        print(f"Vault: {get_vault_path(config)}")
    else:
        print(f"\nConfiguration error: {error}")
