"""
Provider discovery: where candidate provider classes come from.

The registry never scans anything by itself. Startup code collects
candidates with one of the helpers here and hands them to
`ProviderRegistry.register_providers()`:

    registry.register_providers(iter_module_candidates(my_plugins))
    registry.register_providers(load_manifest(Path("providers.yaml")))

Manifest format (YAML or JSON):

    modules:
      - myapp.providers.archives
    providers:
      - myapp.providers.pdf:PdfProvider

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

from typing import Iterator, List, Optional, Union
from pathlib import Path
from types import ModuleType
import importlib
import inspect
import logging

from .config import load_data_file
from .errors import ConfigError, DiscoveryError

logger = logging.getLogger(__name__)


def has_default_constructor(cls: type) -> bool:
    """True if `cls()` can be called without arguments."""
    try:
        signature = inspect.signature(cls)
    except (TypeError, ValueError):
        # No introspectable signature (some builtins/extension types)
        return False

    for param in signature.parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        if param.default is param.empty:
            return False
    return True


def is_provider_candidate(cls, base_type: Optional[type] = None) -> bool:
    """
    Check whether `cls` can be registered as a provider.

    A candidate is a concrete class, a strict subclass of `base_type` (when
    given), constructible without arguments.
    """
    if not inspect.isclass(cls) or inspect.isabstract(cls):
        return False
    if base_type is not None:
        if cls is base_type:
            return False
        try:
            if not issubclass(cls, base_type):
                return False
        except TypeError:
            return False
    return has_default_constructor(cls)


def import_module(module: Union[str, ModuleType]) -> ModuleType:
    """Import a module by dotted name (modules pass through)."""
    if isinstance(module, ModuleType):
        return module
    try:
        return importlib.import_module(module)
    except ImportError as e:
        raise DiscoveryError(module, str(e)) from e


def iter_module_candidates(module: Union[str, ModuleType]) -> Iterator[type]:
    """Yield classes defined in `module` (not imported into it), in definition order."""
    module = import_module(module)
    for value in list(vars(module).values()):
        if inspect.isclass(value) and value.__module__ == module.__name__:
            yield value


def resolve_provider_path(path: str) -> type:
    """
    Resolve a `package.module:ClassName` path to a class.

    `package.module.ClassName` is accepted too.
    """
    if ":" in path:
        module_name, _, qualname = path.partition(":")
    else:
        module_name, _, qualname = path.rpartition(".")

    if not module_name or not qualname:
        raise DiscoveryError(path, "expected 'module:ClassName'")

    target = import_module(module_name)
    for part in qualname.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise DiscoveryError(path, f"'{part}' not found") from e

    if not inspect.isclass(target):
        raise DiscoveryError(path, "not a class")
    return target


def load_manifest(path: Path) -> List[type]:
    """
    Load candidate classes listed in a plugin manifest.

    Returns:
        Classes from `modules` (each module's classes in definition order),
        then `providers`, without duplicates

    Raises:
        DiscoveryError: If the manifest is malformed or an entry cannot be imported
    """
    try:
        data = load_data_file(path)
    except ConfigError as e:
        raise DiscoveryError(str(path), e.issue) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise DiscoveryError(str(path), "manifest must be a mapping")

    candidates: List[type] = []

    def _add(cls: type) -> None:
        if cls not in candidates:
            candidates.append(cls)

    for key in ("modules", "providers"):
        entries = data.get(key) or []
        if not isinstance(entries, list):
            raise DiscoveryError(str(path), f"'{key}' must be a list")

    for module_name in data.get("modules") or []:
        for cls in iter_module_candidates(str(module_name)):
            _add(cls)

    for provider_path in data.get("providers") or []:
        _add(resolve_provider_path(str(provider_path)))

    logger.debug(f"Manifest {path} listed {len(candidates)} candidate classes")
    return candidates


__all__ = [
    "has_default_constructor",
    "is_provider_candidate",
    "import_module",
    "iter_module_candidates",
    "resolve_provider_path",
    "load_manifest",
]
