"""
Tests for the provider registry.

Tests cover:
- Explicit and self-describing registration
- Batch registration and candidate filtering
- Source, name and id lookups with first-registered-wins resolution
- Extension listing and dialog filters
- Provider instantiation with failure swallowing

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

import logging
from typing import List, Protocol, runtime_checkable

import pytest

import sample_providers
from sample_providers import (
    ArchiveProvider,
    CbrProvider,
    CbzProvider,
    NeedsArgumentsProvider,
    NotAProvider,
    SevenZipProvider,
)
from provider_engine import (
    FormatDescriptor,
    InvalidProviderError,
    ProviderDescriptor,
    ProviderRegistry,
    RegistryConfig,
    StringTable,
    ValidateProvider,
    file_format,
)


CBZ = FormatDescriptor(1, "Comic Book Zip", ("cbz",))
CBR = FormatDescriptor(2, "Comic Book RAR", ("cbr",))
ZIP = FormatDescriptor(10, "Zip Archive", ("zip", "cbz"))


class ProviderA:
    pass


class ProviderB:
    pass


class BrokenProvider:
    def __init__(self):
        raise RuntimeError("native codec missing")


@pytest.fixture
def registry():
    """Registry with A (cbz) and B (cbr) registered explicitly."""
    reg = ProviderRegistry(config=RegistryConfig.for_testing(), strings=StringTable())
    reg.register_provider(ProviderA, [CBZ])
    reg.register_provider(ProviderB, [CBR])
    return reg


# =============================================================================
# ProviderDescriptor Tests
# =============================================================================

class TestProviderDescriptor:
    """Tests for ProviderDescriptor."""

    def test_factory_defaults_to_type(self):
        """Without a factory the provider type itself builds instances."""
        info = ProviderDescriptor(ProviderA, (CBZ,))
        assert info.factory is ProviderA

    def test_formats_become_tuple(self):
        """Formats should be stored as an immutable tuple."""
        info = ProviderDescriptor(ProviderA, [CBZ, CBR])
        assert info.formats == (CBZ, CBR)

    def test_equality_by_provider_type(self):
        """Descriptors compare by provider type only."""
        assert ProviderDescriptor(ProviderA, (CBZ,)) == ProviderDescriptor(ProviderA, (CBR,))
        assert ProviderDescriptor(ProviderA, (CBZ,)) != ProviderDescriptor(ProviderB, (CBZ,))

    def test_matching_format(self):
        """matching_format should return the format that accepts the source."""
        info = ProviderDescriptor(ProviderA, (CBR, ZIP))
        assert info.matching_format("x.cbz") == ZIP
        assert info.matching_format("x.txt") is None

    def test_name(self):
        """name should be the qualified class name."""
        assert ProviderDescriptor(ProviderA).name == "ProviderA"


# =============================================================================
# Registration Tests
# =============================================================================

class TestRegisterProvider:
    """Tests for single registration."""

    def test_register_appends(self):
        """A new provider should be added."""
        reg = ProviderRegistry()
        assert reg.register_provider(ProviderA, [CBZ]) is True
        assert reg.get_provider_types() == [ProviderA]
        assert ProviderA in reg
        assert len(reg) == 1

    def test_register_twice_keeps_first(self):
        """Re-registering a type should be a no-op keeping the first formats."""
        reg = ProviderRegistry()
        reg.register_provider(ProviderA, [CBZ])
        assert reg.register_provider(ProviderA, [CBR]) is False

        infos = reg.get_provider_infos()
        assert len(infos) == 1
        assert infos[0].formats == (CBZ,)

    def test_register_empty_formats(self):
        """A provider without formats is registered but unreachable by source."""
        reg = ProviderRegistry()
        assert reg.register_provider(ProviderA, []) is True
        assert reg.get_source_provider_info("x.cbz") is None
        assert reg.get_provider_types() == [ProviderA]

    def test_register_with_factory(self):
        """A factory should be used to build instances."""
        reg = ProviderRegistry()
        reg.register_provider("zip-provider", [CBZ], factory=lambda: {"kind": "zip"})
        assert reg.create_source_provider("x.cbz") == {"kind": "zip"}
        assert reg.get_source_provider_type("x.cbz") == "zip-provider"

    def test_none_type_raises(self):
        """None is a programming error."""
        with pytest.raises(InvalidProviderError):
            ProviderRegistry().register_provider(None, [CBZ])

    def test_non_callable_without_factory_raises(self):
        """A token that cannot build instances needs a factory."""
        with pytest.raises(InvalidProviderError):
            ProviderRegistry().register_provider("zip-provider", [CBZ])

    def test_non_callable_factory_raises(self):
        """A factory must be callable."""
        with pytest.raises(InvalidProviderError):
            ProviderRegistry().register_provider(ProviderA, [CBZ], factory="nope")

    def test_unhashable_type_raises(self):
        """Provider identities must be hashable."""
        with pytest.raises(InvalidProviderError):
            ProviderRegistry().register_provider([], [CBZ], factory=dict)


class TestSelfDescribingRegistration:
    """Tests for registration from declared formats."""

    def test_uses_declared_formats(self):
        """Declared formats should be picked up."""
        reg = ProviderRegistry()
        assert reg.register_provider(CbzProvider) is True
        assert reg.get_provider_infos()[0].formats[0].name == "Comic Book Zip"

    def test_invalid_provider_skipped(self):
        """A probe reporting is_valid == False should not be registered."""
        reg = ProviderRegistry()
        assert reg.register_provider(SevenZipProvider) is False
        assert len(reg) == 0

    def test_valid_provider_registered(self):
        """A probe reporting is_valid == True should be registered."""
        @file_format("Plain", 20, "txt")
        class Available(ValidateProvider):
            @property
            def is_valid(self):
                return True

        reg = ProviderRegistry()
        assert reg.register_provider(Available) is True

    def test_probe_failure_skipped(self):
        """A provider whose constructor fails should be skipped silently."""
        reg = ProviderRegistry()
        assert reg.register_provider(BrokenProvider) is False
        assert reg.register_provider(NeedsArgumentsProvider) is False
        assert len(reg) == 0

    def test_decorator(self):
        """registry.register should work as a class decorator."""
        reg = ProviderRegistry()

        @reg.register
        @file_format("Comic Book Zip", 1, "cbz")
        class DecoratedProvider:
            pass

        assert reg.get_source_provider_type("a.cbz") is DecoratedProvider


class TestRegisterProviders:
    """Tests for batch registration."""

    def test_filters_candidates(self):
        """Only concrete, compatible, default-constructible, valid classes are added."""
        reg = ProviderRegistry(ArchiveProvider)
        added = reg.register_providers([
            ArchiveProvider,
            CbzProvider,
            CbrProvider,
            SevenZipProvider,
            NeedsArgumentsProvider,
            NotAProvider,
            "not a class",
        ])
        assert added == 2
        assert reg.get_provider_types() == [CbzProvider, CbrProvider]

    def test_explicit_base_type(self):
        """An explicit base type overrides the registry's."""
        reg = ProviderRegistry()
        reg.register_providers([CbzProvider, NotAProvider], base_type=ArchiveProvider)
        assert reg.get_provider_types() == [CbzProvider]

    def test_no_duplicates(self):
        """Duplicates within and across batches should be ignored."""
        reg = ProviderRegistry(ArchiveProvider)
        assert reg.register_providers([CbzProvider, CbzProvider]) == 1
        assert reg.register_providers([CbzProvider, CbrProvider]) == 1
        assert reg.get_provider_types() == [CbzProvider, CbrProvider]

    def test_register_module_providers(self):
        """Classes defined in a module should be registered in definition order."""
        reg = ProviderRegistry(ArchiveProvider)
        assert reg.register_module_providers(sample_providers) == 2
        assert reg.get_provider_types() == [CbzProvider, CbrProvider]

    def test_register_module_by_name(self):
        """Modules may be given by dotted name."""
        reg = ProviderRegistry(ArchiveProvider)
        reg.register_module_providers("sample_providers")
        assert CbrProvider in reg

    def test_batch_summary_logged(self, caplog):
        """The batch should log a summary at INFO."""
        reg = ProviderRegistry(ArchiveProvider)
        with caplog.at_level(logging.INFO, logger="provider_engine.registry"):
            reg.register_providers([CbzProvider, NotAProvider])
        assert "Registered 1 of 2 provider candidates" in caplog.text

    def test_skips_are_not_logged(self, caplog):
        """Skipped candidates should leave no trace in the log."""
        reg = ProviderRegistry(ArchiveProvider)
        with caplog.at_level(logging.DEBUG, logger="provider_engine"):
            reg.register_providers([SevenZipProvider, NeedsArgumentsProvider])
        assert "SevenZipProvider" not in caplog.text
        assert "NeedsArgumentsProvider" not in caplog.text


# =============================================================================
# Lookup Tests
# =============================================================================

class TestLookup:
    """Tests for enumeration and lookup."""

    def test_snapshot_is_independent(self, registry):
        """A snapshot should not change when the registry does."""
        snapshot = registry.get_provider_infos()
        registry.register_provider(BrokenProvider, [ZIP])
        assert len(snapshot) == 2
        assert len(registry.get_provider_infos()) == 3

    def test_source_provider(self, registry):
        """Source lookup should find the provider by extension."""
        assert registry.get_source_provider_type("foo.cbz") is ProviderA
        assert registry.get_source_provider_type("foo.cbr") is ProviderB

    def test_source_provider_miss(self, registry):
        """An unknown source should give None, not an error."""
        assert registry.get_source_provider_info("unknown.xyz") is None
        assert registry.get_source_provider_type("unknown.xyz") is None
        assert registry.get_source_provider_infos("unknown.xyz") == []

    def test_first_registered_wins(self):
        """Overlapping recognizers resolve to the earliest registration."""
        reg = ProviderRegistry()
        reg.register_provider(ProviderA, [CBZ])
        reg.register_provider(ProviderB, [ZIP])

        assert reg.get_source_provider_info("x.cbz").provider_type is ProviderA
        assert reg.get_source_provider_types("x.cbz") == [ProviderA, ProviderB]

    def test_source_format_is_the_matching_one(self):
        """get_source_format should return the format that accepts the source."""
        reg = ProviderRegistry()
        reg.register_provider(ProviderA, [CBR, ZIP])
        assert reg.get_source_format("x.zip") == ZIP

    def test_source_formats(self):
        """get_source_formats should return all formats of matching providers."""
        reg = ProviderRegistry()
        reg.register_provider(ProviderA, [CBR, ZIP])
        reg.register_provider(ProviderB, [CBZ])
        assert reg.get_source_formats("x.zip") == [CBR, ZIP]
        assert reg.get_source_formats() == [CBR, ZIP, CBZ]

    def test_source_format_name(self, registry):
        """Scenario: names for known sources and Unknown otherwise."""
        assert registry.get_source_format_name("foo.cbz") == "Comic Book Zip"
        assert registry.get_source_format_name("foo.txt") == "Unknown"

    def test_source_format_name_localized(self):
        """The Unknown placeholder should come from the string table."""
        reg = ProviderRegistry(strings=StringTable({"Unknown": "Unbekannt"}))
        reg.register_provider(ProviderA, [CBZ])
        assert reg.get_source_format_name("foo.txt") == "Unbekannt"

    def test_source_format_name_unnamed_format(self):
        """A matched format without a name also reads as Unknown."""
        reg = ProviderRegistry(strings=StringTable())
        reg.register_provider(ProviderA, [FormatDescriptor(5, "", ("raw",))])
        assert reg.get_source_format_name("photo.raw") == "Unknown"

    def test_format_provider_by_id(self, registry):
        """Scenario: format id 2 belongs to provider B."""
        assert registry.get_format_provider_type(2) is ProviderB
        assert registry.get_format_provider_type(99) is None

    def test_format_provider_by_name(self, registry):
        """Name lookup should compare names exactly."""
        assert registry.get_format_provider_type("Comic Book Zip") is ProviderA
        assert registry.get_format_provider_type("comic book zip") is None
        assert registry.get_format_provider_type("cbz") is None

    def test_format_provider_bool_key(self, registry):
        """Booleans are not format ids, even though True == 1."""
        assert registry.get_format_provider_type(True) is None
        assert registry.get_format_provider_type(False) is None
        assert registry.create_format_provider(True) is None

    def test_file_extensions_deduplicated(self):
        """An extension declared by several formats is listed once."""
        reg = ProviderRegistry()
        reg.register_provider(ProviderA, [CBZ])
        reg.register_provider(ProviderB, [ZIP])
        assert reg.get_file_extensions() == {"cbz", "zip"}

    def test_empty_registry(self):
        """An empty registry answers every query with nothing."""
        reg = ProviderRegistry(strings=StringTable())
        assert reg.get_provider_infos() == []
        assert reg.get_file_extensions() == set()
        assert reg.get_dialog_filter() == ""
        assert reg.create_providers() == []
        assert reg.get_source_format("x.cbz") is None


class TestDialogFilter:
    """Tests for get_dialog_filter."""

    def test_scenario_with_all_filter(self, registry):
        """Both formats plus an aggregate covering cbz and cbr."""
        result = registry.get_dialog_filter(True, False)
        assert result == (
            "All supported files|*.cbz;*.cbr"
            "|Comic Book Zip (*.cbz)|*.cbz"
            "|Comic Book RAR (*.cbr)|*.cbr"
        )

    def test_sorted(self, registry):
        """Sorting should order entries by format name."""
        result = registry.get_dialog_filter(with_all_filter=False, sort=True)
        assert result == "Comic Book RAR (*.cbr)|*.cbr|Comic Book Zip (*.cbz)|*.cbz"

    def test_sorted_with_key(self, registry):
        """A custom key should drive the order."""
        result = registry.get_dialog_filter(
            with_all_filter=False, sort=True, key=lambda f: -f.format_id
        )
        assert result.startswith("Comic Book RAR")

    def test_config_separators(self):
        """Separators come from the registry config."""
        config = RegistryConfig(filter_separator="\n", pattern_separator=",")
        reg = ProviderRegistry(config=config, strings=StringTable())
        reg.register_provider(ProviderA, [ZIP])
        assert reg.get_dialog_filter(with_all_filter=False) == "Zip Archive (*.zip,*.cbz)\n*.zip,*.cbz"


# =============================================================================
# Instantiation Tests
# =============================================================================

class TestInstantiation:
    """Tests for provider creation."""

    def test_create_source_provider(self, registry):
        """A fresh instance of the resolved provider should be returned."""
        first = registry.create_source_provider("x.cbz")
        second = registry.create_source_provider("x.cbz")
        assert isinstance(first, ProviderA)
        assert first is not second

    def test_create_source_provider_miss(self, registry):
        """No matching provider gives None."""
        assert registry.create_source_provider("x.txt") is None

    def test_create_format_provider(self, registry):
        """Providers can be built by format name or id."""
        assert isinstance(registry.create_format_provider("Comic Book RAR"), ProviderB)
        assert isinstance(registry.create_format_provider(1), ProviderA)

    def test_create_format_provider_miss(self, registry):
        """Unknown names and ids both give None."""
        assert registry.create_format_provider("Nope") is None
        assert registry.create_format_provider(42) is None

    def test_construction_failure_is_none(self, caplog):
        """A failing constructor should give None and log a warning."""
        reg = ProviderRegistry()
        reg.register_provider(BrokenProvider, [CBZ])
        with caplog.at_level(logging.WARNING, logger="provider_engine.registry"):
            assert reg.create_source_provider("x.cbz") is None
            assert reg.create_format_provider(1) is None
        assert "Could not create provider BrokenProvider" in caplog.text

    def test_construction_failure_by_name_is_none(self, caplog):
        """Creating by format name swallows constructor failures too."""
        reg = ProviderRegistry()
        reg.register_provider(BrokenProvider, [CBZ])
        with caplog.at_level(logging.WARNING, logger="provider_engine.registry"):
            assert reg.create_format_provider("Comic Book Zip") is None
        assert "Could not create provider BrokenProvider" in caplog.text

    def test_create_providers_keeps_failed_slots(self):
        """Failures leave None slots without stopping the other providers."""
        reg = ProviderRegistry()
        reg.register_provider(ProviderA, [CBZ])
        reg.register_provider(BrokenProvider, [ZIP])
        reg.register_provider(ProviderB, [CBR])

        providers = reg.create_providers()
        assert len(providers) == 3
        assert isinstance(providers[0], ProviderA)
        assert providers[1] is None
        assert isinstance(providers[2], ProviderB)

    def test_wrong_capability_is_none(self):
        """Instances that are not of the capability type are discarded."""
        reg = ProviderRegistry(ArchiveProvider)
        reg.register_provider(NotAProvider, [CBZ])
        reg.register_provider(CbrProvider, [CBR])
        assert reg.create_source_provider("x.cbz") is None
        assert isinstance(reg.create_source_provider("x.cbr"), CbrProvider)

    def test_factory_failure_is_none(self):
        """Factories that raise are treated like failing constructors."""
        def factory():
            raise OSError("library not found")

        reg = ProviderRegistry()
        reg.register_provider("native", [CBZ], factory=factory)
        assert reg.create_source_provider("x.cbz") is None


# =============================================================================
# Capability Type Tests
# =============================================================================

@runtime_checkable
class PageSource(Protocol):
    def read_page(self, index: int) -> bytes: ...


class StaticPageSource(Protocol):
    def read_page(self, index: int) -> bytes: ...


@file_format("Comic Book Zip", 1, "cbz")
class ZipPages:
    """Satisfies PageSource structurally, without inheriting from it."""

    def read_page(self, index: int) -> bytes:
        return b""


class TestCapabilityType:
    """Tests for the capability type a registry checks against."""

    def test_runtime_checkable_protocol(self):
        """Structural providers are found and built; others are discarded."""
        reg = ProviderRegistry(PageSource)
        assert reg.register_providers([ZipPages, ProviderA]) == 1
        reg.register_provider(ProviderB, [CBR])

        assert isinstance(reg.create_source_provider("x.cbz"), ZipPages)
        assert reg.create_source_provider("x.cbr") is None
        assert reg.create_providers()[1] is None

    def test_plain_protocol_rejected(self):
        """A protocol isinstance cannot check fails at construction."""
        with pytest.raises(InvalidProviderError, match="capability type"):
            ProviderRegistry(StaticPageSource)

    def test_parameterized_generic_rejected(self):
        with pytest.raises(InvalidProviderError):
            ProviderRegistry(List[int])

    def test_batch_base_type_checked(self):
        """An explicit batch base type gets the same check."""
        reg = ProviderRegistry()
        with pytest.raises(InvalidProviderError):
            reg.register_providers([ZipPages], base_type=StaticPageSource)
        assert len(reg) == 0
