"""
Provider capability base classes.

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

from abc import ABC, abstractmethod


class ValidateProvider(ABC):
    """
    Optional capability: a provider that can opt out of registration.

    During self-describing registration the registry builds a throwaway
    probe instance; if the probe implements this interface and reports
    `is_valid == False`, the provider is not registered. Typical use is a
    provider whose native codec library is missing at runtime.
    """

    @property
    @abstractmethod
    def is_valid(self) -> bool:
        """True if this provider can work in the current environment."""
        pass


__all__ = [
    "ValidateProvider",
]
