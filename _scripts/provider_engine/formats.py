"""
Format descriptors and format declarations.

A FormatDescriptor names one content format and decides whether a source
identifier (path, URL, stream name) belongs to it. Providers declare the
formats they handle with the `file_format` class decorator:

    @file_format("Comic Book Zip", 1, "cbz")
    @file_format("Zip Archive", 2, "zip")
    class ZipProvider(ArchiveProvider):
        ...

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple, Union
from urllib.parse import urlsplit
import re

from .i18n import StringTable, get_string_table


# Class attribute holding a provider class's own declarations
FORMATS_ATTR = "__file_formats__"

_EXTENSION_SPLIT = re.compile(r"[;,\s]+")


def normalize_extensions(extensions: Union[str, Iterable[str], None]) -> Tuple[str, ...]:
    """
    Normalize extension tokens: lower-case, no leading dot or glob, no duplicates.

    A single string may hold several tokens separated by `;`, `,` or spaces
    (".cbz;.zip"). Declaration order is kept.
    """
    if extensions is None:
        return ()
    if isinstance(extensions, str):
        extensions = _EXTENSION_SPLIT.split(extensions)

    result: List[str] = []
    for ext in extensions:
        token = str(ext).strip().lower().lstrip("*").lstrip(".")
        if token and token not in result:
            result.append(token)
    return tuple(result)


def _source_path(source: str) -> str:
    """Path part of a source; URLs lose their query string and fragment."""
    if "://" in source:
        return urlsplit(source).path
    return source


@dataclass(frozen=True)
class FormatDescriptor:
    """
    One supported content format.

    Attributes:
        format_id: Numeric identity, unique within a registry by convention
        name: Display name (may be empty)
        extensions: Extension tokens without the dot, e.g. ("cbz", "zip")
        matcher: Optional recognition predicate replacing extension matching
    """
    format_id: int
    name: str = ""
    extensions: Tuple[str, ...] = ()
    matcher: Optional[Callable[[str], bool]] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "extensions", normalize_extensions(self.extensions))
        object.__setattr__(self, "name", self.name or "")

    def matches(self, source: str) -> bool:
        """
        Check whether `source` belongs to this format.

        Without a custom matcher the source matches when its path ends with
        one of the extensions (case-insensitive), so "tar.gz" works as well.
        """
        if not source:
            return False
        if self.matcher is not None:
            return bool(self.matcher(source))
        path = _source_path(source).lower()
        return any(path.endswith("." + ext) for ext in self.extensions)

    @property
    def patterns(self) -> List[str]:
        """File-dialog globs for the extensions ("*.cbz")."""
        return [f"*.{ext}" for ext in self.extensions]

    def __lt__(self, other: "FormatDescriptor") -> bool:
        if not isinstance(other, FormatDescriptor):
            return NotImplemented
        return self.name < other.name


# =============================================================================
# Format declarations on provider classes
# =============================================================================

def file_format(
    name: Union[str, FormatDescriptor],
    format_id: Optional[int] = None,
    *extensions: str,
    matcher: Optional[Callable[[str], bool]] = None
) -> Callable[[type], type]:
    """
    Class decorator declaring a format handled by a provider.

    Stack several decorators for several formats; they are reported in the
    order they appear in the source, top to bottom.

    Usage:
        @file_format("Comic Book RAR", 2, "cbr")
        class RarProvider(ArchiveProvider):
            ...

        @file_format(PDF_FORMAT)
        class PdfProvider(ArchiveProvider):
            ...
    """
    if isinstance(name, FormatDescriptor):
        fmt = name
    else:
        if format_id is None:
            raise TypeError("file_format() requires a format_id when given a name")
        fmt = FormatDescriptor(format_id, name, extensions, matcher)

    def decorator(cls: type) -> type:
        own = cls.__dict__.get(FORMATS_ATTR, ())
        # Decorators apply bottom-up; prepend to keep source order
        setattr(cls, FORMATS_ATTR, (fmt,) + tuple(own))
        return cls

    return decorator


def get_declared_formats(provider_type) -> Tuple[FormatDescriptor, ...]:
    """
    Collect formats declared on a provider class and its base classes.

    The class's own declarations come first, then inherited ones. Tokens that
    are not classes declare nothing.
    """
    mro = getattr(provider_type, "__mro__", None)
    if not mro:
        return ()

    declared: List[FormatDescriptor] = []
    for klass in mro:
        for fmt in klass.__dict__.get(FORMATS_ATTR, ()):
            # Equality ignores matchers; formats differing only there are kept
            if not any(fmt == d and fmt.matcher is d.matcher for d in declared):
                declared.append(fmt)
    return tuple(declared)


# =============================================================================
# File dialog filter
# =============================================================================

def build_dialog_filter(
    formats: Iterable[FormatDescriptor],
    with_all_filter: bool = True,
    strings: Optional[StringTable] = None,
    filter_separator: str = "|",
    pattern_separator: str = ";"
) -> str:
    """
    Build a file dialog filter string.

    Each format with extensions becomes `"Name (*.a;*.b)|*.a;*.b"`. With
    `with_all_filter`, an "All supported files" entry covering every pattern
    is put first.

    Args:
        formats: Formats in display order
        with_all_filter: Prepend the aggregate entry
        strings: Table for the aggregate label (process default if None)
        filter_separator: Separator between labels and pattern lists
        pattern_separator: Separator between globs of one entry

    Returns:
        The filter string, empty when no format has extensions
    """
    if strings is None:
        strings = get_string_table()

    entries: List[str] = []
    all_patterns: List[str] = []
    for fmt in formats:
        patterns = fmt.patterns
        if not patterns:
            continue
        joined = pattern_separator.join(patterns)
        label = f"{fmt.name} ({joined})" if fmt.name else joined
        entries.append(f"{label}{filter_separator}{joined}")
        for pattern in patterns:
            if pattern not in all_patterns:
                all_patterns.append(pattern)

    if not entries:
        return ""

    if with_all_filter:
        label = strings.get("AllSupportedFiles", "All supported files")
        entries.insert(0, f"{label}{filter_separator}{pattern_separator.join(all_patterns)}")

    return filter_separator.join(entries)


__all__ = [
    "FormatDescriptor",
    "file_format",
    "get_declared_formats",
    "build_dialog_filter",
    "normalize_extensions",
]
