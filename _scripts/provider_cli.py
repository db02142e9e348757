"""
Provider Engine CLI - inspect a provider registry from the command line

Copyright (c) 2025 Brent Lefebure / EhkoLabs

Usage:
    provider-engine formats --module myapp.providers          - List registered formats
    provider-engine extensions --manifest providers.yaml      - List supported extensions
    provider-engine filter --module myapp.providers --sort    - Print the file dialog filter
    provider-engine resolve issue-01.cbz --module myapp.providers
                                                             - Show provider and format of sources

Common options:
    --module NAME        Register provider classes defined in a module (repeatable)
    --manifest PATH      Register provider classes listed in a YAML/JSON manifest
    --base MODULE:CLASS  Capability base class candidates must derive from
    --config PATH        RegistryConfig file (JSON or YAML)
    --strings PATH       Localized string table (JSON or YAML)
    --json               Machine-readable output
"""

import argparse
import json
import sys
from typing import List, Optional

from provider_engine import (
    ProviderRegistry,
    RegistryConfig,
    StringTable,
    ProviderError,
    load_manifest,
    resolve_provider_path,
    get_logger,
    setup_logging,
)

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_UNRESOLVED = 1
EXIT_ERROR = 2


# =============================================================================
# SETUP
# =============================================================================

def load_config(args: argparse.Namespace) -> RegistryConfig:
    return RegistryConfig.load(args.config) if args.config else RegistryConfig()


def build_registry(args: argparse.Namespace, config: RegistryConfig) -> ProviderRegistry:
    """Create and populate a registry from command line options."""
    strings_path = args.strings or config.string_table_path
    strings = StringTable.load(strings_path) if strings_path else None

    base_type = resolve_provider_path(args.base) if args.base else None
    registry = ProviderRegistry(base_type, config=config, strings=strings)

    for module_name in args.module:
        registry.register_module_providers(module_name)

    if args.manifest:
        registry.register_providers(load_manifest(args.manifest))

    return registry


# =============================================================================
# COMMANDS
# =============================================================================

def cmd_formats(registry: ProviderRegistry, args: argparse.Namespace) -> int:
    """List every registered format with its provider."""
    rows = [
        {
            "id": fmt.format_id,
            "name": fmt.name,
            "extensions": list(fmt.extensions),
            "provider": info.name,
        }
        for info in registry.get_provider_infos()
        for fmt in info.formats
    ]

    if args.json:
        print(json.dumps(rows, indent=2))
        return EXIT_OK

    if not rows:
        print("No formats registered.")
        return EXIT_OK

    print(f"\n{'ID':>6}  {'Format':<30} {'Extensions':<20} Provider")
    print("-" * 78)
    for row in rows:
        exts = ", ".join(row["extensions"]) or "-"
        print(f"{row['id']:>6}  {row['name'] or '-':<30} {exts:<20} {row['provider']}")
    print(f"\n{len(rows)} formats from {len(registry)} providers")
    return EXIT_OK


def cmd_extensions(registry: ProviderRegistry, args: argparse.Namespace) -> int:
    """List supported file extensions."""
    extensions = sorted(registry.get_file_extensions())
    if args.json:
        print(json.dumps(extensions))
    else:
        for ext in extensions:
            print(f".{ext}")
    return EXIT_OK


def cmd_filter(registry: ProviderRegistry, args: argparse.Namespace) -> int:
    """Print the file dialog filter string."""
    sort = args.sort or registry.config.sort_dialog_filter
    print(registry.get_dialog_filter(with_all_filter=not args.no_all, sort=sort))
    return EXIT_OK


def cmd_resolve(registry: ProviderRegistry, args: argparse.Namespace) -> int:
    """Show which provider and format each source resolves to."""
    results = []
    for source in args.sources:
        info = registry.get_source_provider_info(source)
        results.append({
            "source": source,
            "provider": info.name if info else None,
            "format": registry.get_source_format_name(source),
        })

    if args.json:
        print(json.dumps(results, indent=2))
    else:
        for result in results:
            provider = result["provider"] or "(no provider)"
            print(f"{result['source']}: {result['format']} -> {provider}")

    unresolved = [r for r in results if r["provider"] is None]
    return EXIT_UNRESOLVED if unresolved else EXIT_OK


COMMANDS = {
    "formats": cmd_formats,
    "extensions": cmd_extensions,
    "filter": cmd_filter,
    "resolve": cmd_resolve,
}


# =============================================================================
# MAIN
# =============================================================================

def make_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--module", action="append", default=[], help="Module with provider classes")
    common.add_argument("--manifest", help="YAML/JSON provider manifest")
    common.add_argument("--base", help="Capability base class as module:Class")
    common.add_argument("--config", help="RegistryConfig file")
    common.add_argument("--strings", help="Localized string table")
    common.add_argument("--json", action="store_true", help="JSON output")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    parser = argparse.ArgumentParser(
        prog="provider-engine",
        description="Inspect format providers and resolve sources"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("formats", parents=[common], help="List registered formats")
    sub.add_parser("extensions", parents=[common], help="List supported extensions")

    filter_parser = sub.add_parser("filter", parents=[common], help="Print file dialog filter")
    filter_parser.add_argument("--no-all", action="store_true", help="Omit the all-supported entry")
    filter_parser.add_argument("--sort", action="store_true", help="Sort formats by name")

    resolve_parser = sub.add_parser("resolve", parents=[common], help="Resolve sources")
    resolve_parser.add_argument("sources", nargs="+", help="File paths or URLs")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = make_parser().parse_args(argv)

    try:
        config = load_config(args)
        setup_logging("DEBUG" if args.verbose else config.log_level, json_output=config.json_logs)
        registry = build_registry(args, config)
    except ProviderError as e:
        logger.debug(str(e))
        print(f"Error: {e.user_message}", file=sys.stderr)
        return EXIT_ERROR

    return COMMANDS[args.command](registry, args)


if __name__ == "__main__":
    sys.exit(main())
