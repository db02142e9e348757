"""
Provider Engine - Configuration v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Registry and command line configuration. Files may be JSON or YAML,
chosen by suffix.
"""

from dataclasses import dataclass, asdict, fields
from typing import Dict, Any, Optional
import json
import logging
from pathlib import Path

import yaml

from .errors import ConfigError


YAML_SUFFIXES = (".yaml", ".yml")


def load_data_file(path: Path) -> Any:
    """
    Read a JSON or YAML document.

    Args:
        path: File to read; `.yaml`/`.yml` are parsed as YAML, anything else as JSON

    Returns:
        The parsed document

    Raises:
        ConfigError: If the file is missing or cannot be parsed
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                return yaml.safe_load(f)
            return json.load(f)
    except OSError as e:
        raise ConfigError(path, e.strerror or str(e)) from e
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(path, f"parse error: {e}") from e


@dataclass
class RegistryConfig:
    """
    Configuration for provider registries and the command line.

    Defaults produce Windows common-dialog filter strings
    (`Label|*.a;*.b|Label|*.c`).
    """

    # =========================================================================
    # DIALOG FILTER
    # =========================================================================

    filter_separator: str = "|"        # Between labels and pattern lists
    pattern_separator: str = ";"       # Between globs of one entry
    sort_dialog_filter: bool = False   # CLI default for `filter`

    # =========================================================================
    # LOCALIZATION
    # =========================================================================

    string_table_path: Optional[str] = None

    # =========================================================================
    # LOGGING
    # =========================================================================

    log_level: str = "WARNING"
    json_logs: bool = False

    # =========================================================================
    # METHODS
    # =========================================================================

    def __post_init__(self):
        level = self.log_level
        if not isinstance(level, str) or not isinstance(getattr(logging, level.upper(), None), int):
            raise ValueError(f"log_level must be a logging level name, got {level!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistryConfig":
        """
        Create config from dictionary (unknown keys are ignored).

        Raises:
            ValueError: If `log_level` is not a logging level name
        """
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def save(self, path: Path) -> None:
        """Save config to a JSON or YAML file."""
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                yaml.safe_dump(self.to_dict(), f, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> "RegistryConfig":
        """Load config from a JSON or YAML file."""
        data = load_data_file(path)
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(path, "top level must be a mapping")
        try:
            return cls.from_dict(data)
        except ValueError as e:
            raise ConfigError(path, str(e)) from e

    @classmethod
    def for_testing(cls) -> "RegistryConfig":
        """Create config for tests (verbose logging, plain separators)."""
        return cls(
            log_level="DEBUG",
            json_logs=False,
        )


__all__ = [
    "RegistryConfig",
    "load_data_file",
]
