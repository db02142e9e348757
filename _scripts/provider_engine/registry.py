"""
Provider registry with format-based resolution.

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

from dataclasses import dataclass, field
from types import ModuleType
from typing import (
    Any, Callable, Generic, Iterable, List, Optional, Sequence, Set, Tuple,
    TypeVar, Union,
)
import logging

from .base import ValidateProvider
from .config import RegistryConfig
from .discovery import is_provider_candidate, iter_module_candidates
from .errors import InvalidProviderError
from .formats import FormatDescriptor, build_dialog_filter, get_declared_formats
from .i18n import StringTable, get_string_table
from .locking import ReaderWriterLock
from .logging_utils import Timer

logger = logging.getLogger(__name__)

T = TypeVar("T")

FormatKey = Union[str, int]


def _provider_name(provider_type: Any) -> str:
    return getattr(provider_type, "__qualname__", None) or repr(provider_type)


@dataclass(frozen=True)
class ProviderDescriptor(Generic[T]):
    """
    Binding of one provider implementation to the formats it handles.

    Attributes:
        provider_type: Identity of the implementation (usually its class)
        formats: Formats the provider claims, in declaration order
        factory: Zero-argument callable building a provider instance
    """
    provider_type: Any
    formats: Tuple[FormatDescriptor, ...] = field(default=(), compare=False)
    factory: Optional[Callable[[], T]] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "formats", tuple(self.formats))
        if self.factory is None:
            object.__setattr__(self, "factory", self.provider_type)

    @property
    def name(self) -> str:
        return _provider_name(self.provider_type)

    def matches(self, source: str) -> bool:
        """True if any of the provider's formats recognizes `source`."""
        return any(f.matches(source) for f in self.formats)

    def matching_format(self, source: str) -> Optional[FormatDescriptor]:
        """The first of the provider's formats that recognizes `source`."""
        return next((f for f in self.formats if f.matches(source)), None)


class ProviderRegistry(Generic[T]):
    """
    Registry of provider implementations for a capability type `T`.

    Handles:
    - Registration, explicit or self-describing (declared formats plus an
      optional validity probe), singly or in atomic batches
    - Resolution of a provider for a source, format name or format id;
      the earliest registered provider wins when recognizers overlap
    - Provider instantiation, where any construction failure becomes None

    Thread safety: lookups copy a snapshot under a shared lock; writers
    take the lock exclusively only to append. Providers are constructed
    outside the lock.

    Usage:
        registry = ProviderRegistry(ArchiveProvider)

        # Register explicitly
        registry.register_provider(ZipProvider, [CBZ_FORMAT])

        # Or from declared formats
        @registry.register
        @file_format("Comic Book RAR", 2, "cbr")
        class RarProvider(ArchiveProvider):
            ...

        # Resolve and build
        provider = registry.create_source_provider("issue-01.cbr")
    """

    def __init__(
        self,
        base_type: Optional[type] = None,
        config: Optional[RegistryConfig] = None,
        strings: Optional[StringTable] = None
    ):
        """
        Args:
            base_type: Capability type; batch registration filters candidates
                by it and instances that are not of this type are discarded
            config: Dialog filter separators and defaults
            strings: Localized labels (process default table if None)

        Raises:
            InvalidProviderError: If `base_type` cannot be used with
                isinstance/issubclass (e.g. a Protocol without @runtime_checkable)
        """
        self.base_type = self._check_base_type(base_type)
        self.config = config or RegistryConfig()
        self._strings = strings
        self._lock = ReaderWriterLock()
        self._entries: List[ProviderDescriptor[T]] = []

    @property
    def strings(self) -> StringTable:
        return self._strings if self._strings is not None else get_string_table()

    # =========================================================================
    # Registration
    # =========================================================================

    def register_provider(
        self,
        provider_type: Any,
        formats: Optional[Iterable[FormatDescriptor]] = None,
        *,
        factory: Optional[Callable[[], T]] = None
    ) -> bool:
        """
        Register a provider.

        With `formats`, the provider is bound to exactly those formats. With
        `formats=None` the provider describes itself: a probe instance is
        built, the provider is skipped if that fails or the probe reports
        itself invalid, and the formats declared with `@file_format` are used.

        Registering a type that is already present does nothing; the first
        registration's formats are kept.

        Args:
            provider_type: Provider identity, normally the class
            formats: Formats handled, or None to use the declared ones
            factory: Builds instances; defaults to calling `provider_type`

        Returns:
            True if a new entry was added

        Raises:
            InvalidProviderError: If `provider_type` is None, or not callable
                and no factory was given
        """
        self._check_provider_type(provider_type, factory)

        if formats is None:
            if not self._probe(provider_type, factory):
                return False
            formats = get_declared_formats(provider_type)

        descriptor = ProviderDescriptor(provider_type, tuple(formats), factory)

        with self._lock.upgradeable_read_lock():
            if self._find(provider_type) is not None:
                return False
            with self._lock.write_lock():
                self._entries.append(descriptor)

        logger.debug(
            f"Registered provider {descriptor.name} for "
            f"{[f.name for f in descriptor.formats]}",
            extra={"provider": descriptor.name}
        )
        return True

    def register(self, provider_type: type) -> type:
        """
        Decorator form of self-describing registration.

        Usage:
            @registry.register
            @file_format("Comic Book Zip", 1, "cbz")
            class ZipProvider(ArchiveProvider):
                ...
        """
        self.register_provider(provider_type)
        return provider_type

    def register_providers(
        self,
        candidates: Iterable[Any],
        base_type: Optional[type] = None
    ) -> int:
        """
        Register every eligible candidate in one atomic step.

        Candidates that are abstract, not subclasses of the capability type,
        or need constructor arguments are skipped, as are providers whose
        probe fails or reports invalid. Readers see the registry either
        before or after the whole batch.

        Args:
            candidates: Candidate classes, typically from discovery
            base_type: Required base class (defaults to the registry's)

        Returns:
            Number of providers added
        """
        base_type = self._check_base_type(base_type) or self.base_type
        candidates = list(candidates)
        added = 0

        with Timer(logger, f"register {len(candidates)} provider candidates"):
            with self._lock.write_lock():
                for candidate in candidates:
                    if not is_provider_candidate(candidate, base_type):
                        continue
                    if self.register_provider(candidate):
                        added += 1

        logger.info(
            f"Registered {added} of {len(candidates)} provider candidates",
            extra={"count": added}
        )
        return added

    def register_module_providers(
        self,
        module: Union[str, ModuleType],
        base_type: Optional[type] = None
    ) -> int:
        """Register the provider classes defined in a module (object or dotted name)."""
        return self.register_providers(iter_module_candidates(module), base_type)

    def _probe(self, provider_type: Any, factory: Optional[Callable[[], T]]) -> bool:
        try:
            probe = (factory or provider_type)()
            if isinstance(probe, ValidateProvider):
                return bool(probe.is_valid)
            return True
        except Exception:
            return False

    @staticmethod
    def _check_base_type(base_type: Optional[type]) -> Optional[type]:
        """Reject capability types that isinstance/issubclass cannot check."""
        if base_type is None:
            return None
        try:
            isinstance(None, base_type)
            issubclass(object, base_type)
        except TypeError as e:
            raise InvalidProviderError(
                base_type, f"cannot be used as a capability type: {e}"
            ) from e
        return base_type

    @staticmethod
    def _check_provider_type(provider_type: Any, factory: Optional[Callable[[], T]]) -> None:
        if provider_type is None:
            raise InvalidProviderError(provider_type, "provider type is None")
        if factory is None and not callable(provider_type):
            raise InvalidProviderError(provider_type, "not callable and no factory given")
        if factory is not None and not callable(factory):
            raise InvalidProviderError(provider_type, "factory is not callable")
        try:
            hash(provider_type)
        except TypeError as e:
            raise InvalidProviderError(provider_type, "provider type is not hashable") from e

    def _find(self, provider_type: Any) -> Optional[ProviderDescriptor[T]]:
        # Caller holds the lock
        return next((pi for pi in self._entries if pi.provider_type == provider_type), None)

    # =========================================================================
    # Enumeration & lookup
    # =========================================================================

    def get_provider_infos(self) -> List[ProviderDescriptor[T]]:
        """Snapshot of all registered providers in registration order."""
        with self._lock.read_lock():
            return list(self._entries)

    def get_provider_types(self) -> List[Any]:
        return [pi.provider_type for pi in self.get_provider_infos()]

    def get_source_provider_infos(self, source: str) -> List[ProviderDescriptor[T]]:
        """Providers with at least one format recognizing `source`, in registration order."""
        return [pi for pi in self.get_provider_infos() if pi.matches(source)]

    def get_source_provider_types(self, source: str) -> List[Any]:
        return [pi.provider_type for pi in self.get_source_provider_infos(source)]

    def get_source_provider_info(self, source: str) -> Optional[ProviderDescriptor[T]]:
        """The earliest registered provider recognizing `source`, or None."""
        return next((pi for pi in self.get_provider_infos() if pi.matches(source)), None)

    def get_source_provider_type(self, source: str) -> Optional[Any]:
        info = self.get_source_provider_info(source)
        return None if info is None else info.provider_type

    def get_source_formats(self, source: Optional[str] = None) -> List[FormatDescriptor]:
        """
        Formats of all providers, or only of the providers recognizing `source`.

        Every format of a matching provider is included, not just the ones
        that recognize `source` themselves.
        """
        infos = self.get_provider_infos() if source is None else self.get_source_provider_infos(source)
        return [f for pi in infos for f in pi.formats]

    def get_source_format(self, source: str) -> Optional[FormatDescriptor]:
        """The first format (of the first matching provider) that recognizes `source`."""
        info = self.get_source_provider_info(source)
        return None if info is None else info.matching_format(source)

    def get_source_format_name(self, source: str) -> str:
        """Display name of the format of `source`, or the localized "Unknown"."""
        fmt = self.get_source_format(source)
        if fmt is not None and fmt.name:
            return fmt.name
        return self.strings.get("Unknown", "Unknown")

    def get_format_provider_type(self, format_key: FormatKey) -> Optional[Any]:
        """
        First provider declaring a format with this name (str) or id (int).

        Names compare exactly; recognition predicates are not consulted.
        Booleans are not format ids and never match.
        """
        info = self._get_format_provider_info(format_key)
        return None if info is None else info.provider_type

    def _get_format_provider_info(self, format_key: FormatKey) -> Optional[ProviderDescriptor[T]]:
        if isinstance(format_key, bool):
            return None
        if isinstance(format_key, str):
            def _hit(f: FormatDescriptor) -> bool:
                return f.name == format_key
        else:
            def _hit(f: FormatDescriptor) -> bool:
                return f.format_id == format_key

        return next(
            (pi for pi in self.get_provider_infos() if any(_hit(f) for f in pi.formats)),
            None
        )

    def get_file_extensions(self) -> Set[str]:
        """All extensions of all registered formats, without duplicates."""
        return {ext for f in self.get_source_formats() for ext in f.extensions}

    def get_dialog_filter(
        self,
        with_all_filter: bool = True,
        sort: bool = False,
        key: Optional[Callable[[FormatDescriptor], Any]] = None
    ) -> str:
        """
        File dialog filter string for every registered format.

        Args:
            with_all_filter: Put an "All supported files" entry first
            sort: Order formats by name (or by `key`) instead of registration order
            key: Custom sort key used when `sort` is set
        """
        formats: Sequence[FormatDescriptor] = self.get_source_formats()
        if sort:
            formats = sorted(formats, key=key)

        return build_dialog_filter(
            formats,
            with_all_filter=with_all_filter,
            strings=self.strings,
            filter_separator=self.config.filter_separator,
            pattern_separator=self.config.pattern_separator,
        )

    def __len__(self) -> int:
        with self._lock.read_lock():
            return len(self._entries)

    def __contains__(self, provider_type: object) -> bool:
        with self._lock.read_lock():
            return self._find(provider_type) is not None

    # =========================================================================
    # Instantiation
    # =========================================================================

    def create_format_provider(self, format_key: FormatKey) -> Optional[T]:
        """Build the provider for a format name or id; None if missing or it fails."""
        return self._instantiate(self._get_format_provider_info(format_key))

    def create_source_provider(self, source: str) -> Optional[T]:
        """Build the provider for `source`; None if missing or it fails."""
        return self._instantiate(self.get_source_provider_info(source))

    def create_providers(self) -> List[Optional[T]]:
        """
        Build one instance of every registered provider, in registration order.

        A provider that fails to construct leaves a None in its slot; the
        remaining providers are still built.
        """
        return [self._instantiate(pi) for pi in self.get_provider_infos()]

    def _instantiate(self, info: Optional[ProviderDescriptor[T]]) -> Optional[T]:
        if info is None:
            return None

        try:
            instance = info.factory()
        except Exception as e:
            logger.warning(
                f"Could not create provider {info.name}: {e}",
                extra={"provider": info.name}
            )
            return None

        if self.base_type is not None and not isinstance(instance, self.base_type):
            logger.warning(
                f"Provider {info.name} built a {type(instance).__name__}, "
                f"not a {self.base_type.__name__}",
                extra={"provider": info.name}
            )
            return None

        return instance


__all__ = [
    "ProviderDescriptor",
    "ProviderRegistry",
]
