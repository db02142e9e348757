"""
Localized UI strings.

Strings are looked up by identifier with the default value supplied inline
at the call site, so a missing table or entry never blocks the caller:

    strings = get_string_table()
    label = strings.get("Unknown", "Unknown")
    label = strings["AllSupportedFiles", "All supported files"]

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

from typing import Dict, Optional, Tuple
from pathlib import Path
import logging
import threading

from .config import load_data_file
from .errors import ConfigError

logger = logging.getLogger(__name__)


class StringTable:
    """Read-only mapping of string identifiers to localized text."""

    def __init__(self, entries: Optional[Dict[str, str]] = None, locale: str = ""):
        self._entries: Dict[str, str] = dict(entries or {})
        self.locale = locale

    def get(self, key: str, default: str) -> str:
        """Return the localized text for `key`, or `default` if it has none."""
        value = self._entries.get(key)
        return default if value is None else value

    def __getitem__(self, item: Tuple[str, str]) -> str:
        key, default = item
        return self.get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def load(cls, path: Path, locale: str = "") -> "StringTable":
        """
        Load a flat `identifier: text` mapping from a YAML or JSON file.

        Raises:
            ConfigError: If the file cannot be read or is not a flat mapping
        """
        data = load_data_file(path)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(path, "string table must be a mapping")

        entries = {}
        for key, value in data.items():
            if isinstance(value, (dict, list)):
                raise ConfigError(path, f"entry '{key}' must be a plain string")
            entries[str(key)] = "" if value is None else str(value)

        logger.debug(f"Loaded {len(entries)} strings from {path}")
        return cls(entries, locale=locale or Path(path).stem)


# Process default table
_default_table = StringTable()
_default_lock = threading.Lock()


def get_string_table() -> StringTable:
    """Get the process default string table."""
    with _default_lock:
        return _default_table


def set_string_table(table: Optional[StringTable]) -> StringTable:
    """
    Replace the process default string table.

    Args:
        table: New table, or None to reset to an empty table

    Returns:
        The previous table
    """
    global _default_table
    with _default_lock:
        previous = _default_table
        _default_table = table if table is not None else StringTable()
        return previous


def tr(key: str, default: str) -> str:
    """Shortcut for `get_string_table().get(key, default)`."""
    return get_string_table().get(key, default)


__all__ = [
    "StringTable",
    "get_string_table",
    "set_string_table",
    "tr",
]
