"""
Provider Engine - format-based provider registry.

Maps declared content formats to the provider implementations that handle
them, and resolves a provider for a source (file path, URL, stream name)
by asking each registered format's recognizer.

Usage:
    from provider_engine import ProviderRegistry, file_format

    registry = ProviderRegistry(ArchiveProvider)

    @registry.register
    @file_format("Comic Book Zip", 1, "cbz")
    class ZipProvider(ArchiveProvider):
        ...

    registry.get_source_format_name("issue-01.cbz")   # "Comic Book Zip"
    provider = registry.create_source_provider("issue-01.cbz")

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

__version__ = "1.0.0"

from .base import ValidateProvider
from .config import RegistryConfig
from .discovery import (
    is_provider_candidate,
    iter_module_candidates,
    load_manifest,
    resolve_provider_path,
)
from .errors import (
    ProviderError,
    InvalidProviderError,
    DiscoveryError,
    ConfigError,
)
from .formats import (
    FormatDescriptor,
    build_dialog_filter,
    file_format,
    get_declared_formats,
)
from .i18n import StringTable, get_string_table, set_string_table, tr
from .locking import ReaderWriterLock
from .logging_utils import setup_logging, get_logger
from .registry import ProviderDescriptor, ProviderRegistry

__all__ = [
    # Registry
    "ProviderRegistry",
    "ProviderDescriptor",

    # Formats
    "FormatDescriptor",
    "file_format",
    "get_declared_formats",
    "build_dialog_filter",

    # Capabilities
    "ValidateProvider",

    # Discovery
    "is_provider_candidate",
    "iter_module_candidates",
    "resolve_provider_path",
    "load_manifest",

    # Localization
    "StringTable",
    "get_string_table",
    "set_string_table",
    "tr",

    # Infrastructure
    "ReaderWriterLock",
    "RegistryConfig",
    "setup_logging",
    "get_logger",

    # Errors
    "ProviderError",
    "InvalidProviderError",
    "DiscoveryError",
    "ConfigError",
]
