# provider_engine/errors.py
"""
Provider Engine - Custom Exceptions v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Only programming and setup errors are exceptions here. Expected absences
(no matching format, no provider, a provider that fails to construct) are
reported as None or an empty result by the registry and never raised.
"""


class ProviderError(Exception):
    """Base exception for provider engine errors."""

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message


# =============================================================================
# REGISTRATION ERRORS
# =============================================================================

class InvalidProviderError(ProviderError):
    """A provider type identity that can never be registered or built."""

    def __init__(self, provider_type, issue: str):
        super().__init__(
            f"Invalid provider {provider_type!r}: {issue}",
            f"The provider '{getattr(provider_type, '__name__', provider_type)}' "
            f"cannot be registered ({issue})."
        )
        self.provider_type = provider_type
        self.issue = issue


# =============================================================================
# DISCOVERY ERRORS
# =============================================================================

class DiscoveryError(ProviderError):
    """A provider module, dotted path or manifest could not be loaded."""

    def __init__(self, target: str, details: str = ""):
        detail_suffix = f": {details}" if details else ""
        super().__init__(
            f"Provider discovery failed for {target}{detail_suffix}",
            f"Could not load providers from '{target}'. "
            f"Check that the module is installed and the path is spelled correctly."
        )
        self.target = target
        self.details = details


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigError(ProviderError):
    """A config or string table file is unreadable or malformed."""

    def __init__(self, path, issue: str):
        super().__init__(
            f"Invalid configuration file {path}: {issue}",
            f"The file '{path}' could not be read: {issue}"
        )
        self.path = path
        self.issue = issue


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    "ProviderError",
    "InvalidProviderError",
    "DiscoveryError",
    "ConfigError",
]
