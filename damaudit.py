#!/usr/bin/env python3
"""
DamAudit - DAM Asset Usage Checker

CLI tool that compares a Magnolia DAM export against a page export and
reports which assets are referenced by page content and which are unused.

Commands:
- check: all / referenced / unused asset reports
- extract: list every asset found in a DAM export
"""

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from checker import AnalysisResult, AssetChecker
from config import ConfigError, load_config
from extractor import extract_assets_from_file
from reports import FORMATS, output_filename, write_report
from resolver import MODES, PAGE_EXTENSIONS, STRUCTURAL_MODE, TEXT_MODE

logger = logging.getLogger("damaudit.cli")


def setup_logging(verbose: bool = False, quiet: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    if quiet:
        level = logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def fail(message: str):
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def validate_file(path: Path, label: str, extensions: tuple, expected: str = None):
    """Exit with an error unless ``path`` exists and has a supported extension."""
    if not path.exists():
        fail(f"{label} file not found: {path}")
    ext = path.suffix.lower()
    if ext not in extensions:
        expected = expected or " or ".join(e.lstrip('.').upper() for e in extensions)
        fail(f"{label} file must be {expected}. Provided: {ext or '(none)'}")


def print_result(result: AnalysisResult, reports: dict, verbose: bool = False):
    """Print analysis summary."""
    print()
    print("=" * 60)
    print("DamAudit Asset Usage Report")
    print("=" * 60)
    print()

    if result.errors:
        print("ERRORS:")
        for error in result.errors:
            print(f"  ✗ {error}")
        print()

    if result.warnings:
        print("WARNINGS:")
        for warning in result.warnings:
            print(f"  ! {warning}")
        print()

    print("Results:")
    print(f"  Total unique assets:     {len(result.all_assets)}")
    print(f"  Asset UUIDs searched:    {result.identifiers_searched}")
    print(f"  Assets used in pages:    {len(result.referenced_assets)}")
    print(f"  Unused assets:           {len(result.unused_assets)}")
    print()

    if verbose and result.unused_assets:
        print("-" * 60)
        print("UNUSED ASSETS:")
        print("-" * 60)
        for i, asset in enumerate(result.unused_assets, 1):
            print(f"  {i}. {asset.location}/{asset.file_name} ({asset.identifier})")
        print()

    if not result.unused_assets:
        print("✓ All assets are being used.")
    else:
        print(f"Found {len(result.unused_assets)} unused assets that could potentially be cleaned up.")

    print()
    print("Reports generated:")
    for label, path in reports.items():
        print(f"  - {label}: {path}")


def run_check(args) -> int:
    validate_file(args.assets, "Asset", ('.xml',))
    validate_file(args.pages, "Page", PAGE_EXTENSIONS, expected="XML or YAML")

    try:
        config = load_config(args.config)
    except ConfigError as e:
        fail(str(e))

    if not args.quiet:
        print(f"\nAnalyzing exports ({args.mode} matching):")
        print(f"  Assets: {args.assets}")
        print(f"  Pages:  {args.pages}")

    checker = AssetChecker(config, mode=args.mode, detailed=args.detailed)
    result = checker.check(args.assets, args.pages)

    sections = [
        ("Unused assets", "unused", result.unused_assets, "Unused Assets"),
        ("All assets", "all_assets", result.all_assets, "All Assets"),
        ("Referenced assets", "referenced", result.referenced_assets, "Referenced Assets"),
    ]
    reports = {}
    now = datetime.now(timezone.utc)
    for label, suffix, assets, title in sections:
        path = output_filename(args.output, suffix, args.format, args.output_dir, now=now)
        rows = [asset.to_dict(args.detailed) for asset in assets]
        write_report(rows, path, args.format, title)
        logger.info("Results written to: %s", path)
        reports[label] = path

    if not args.quiet:
        print_result(result, reports, verbose=args.verbose)

    return 0 if result.success else 1


def run_extract(args) -> int:
    validate_file(args.input, "Input", ('.xml',))

    try:
        config = load_config(args.config)
    except ConfigError as e:
        fail(str(e))

    assets = extract_assets_from_file(args.input, config, detailed=args.detailed)
    if not assets:
        print("No asset files found in the XML export.", file=sys.stderr)
        return 1

    path = output_filename(args.output, None, args.format, args.output_dir)
    write_report([asset.to_dict(args.detailed) for asset in assets], path, args.format)

    if not args.quiet:
        print(f"Asset results written to: {path}")
        print(f"Extracted {len(assets)} asset files from export")
    return 0


def add_common_arguments(parser: argparse.ArgumentParser):
    parser.add_argument(
        "-o", "--output",
        required=True,
        help="Output file base name (timestamp will be added)"
    )

    parser.add_argument(
        "-f", "--format",
        type=str.lower,
        choices=FORMATS,
        default="csv",
        help="Output format (default: csv)"
    )

    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("output"),
        help="Directory for report files (default: output)"
    )

    parser.add_argument(
        "--detailed",
        action="store_true",
        help="Include asset name, MIME type and size in reports"
    )

    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: built-in Magnolia settings)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug logging and list unused assets"
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress all output except errors"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="damaudit",
        description="Find DAM assets that are not referenced by page content.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compare a DAM export against a page export
  damaudit check -a dam_export.xml -p website_export.xml -o cleanup_list

  # Same, JSON reports, structural matching of a YAML page export
  damaudit check -a dam_export.xml -p website_export.yaml -o cleanup_list \\
      -f json --mode structural

  # List every asset in a DAM export
  damaudit extract -i dam_export.xml -o assets -f txt

Matching modes:
  text        Search the raw page export for each asset UUID (default).
              Finds UUIDs anywhere, including inside /dam/jcr:<uuid> paths.
  structural  Walk the XML/YAML structure and collect bare UUIDs and
              /dam/jcr:<uuid> references from values, attributes and keys.
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser(
        "check",
        help="Compare page exports against asset exports to find unused assets"
    )
    check.add_argument(
        "-a", "--assets",
        type=Path,
        required=True,
        help="DAM asset export XML file"
    )
    check.add_argument(
        "-p", "--pages",
        type=Path,
        required=True,
        help="Page export file (XML or YAML)"
    )
    check.add_argument(
        "-m", "--mode",
        choices=MODES,
        default=TEXT_MODE,
        help=f"Reference matching mode (default: {TEXT_MODE}; "
             f"'{STRUCTURAL_MODE}' walks the document tree)"
    )
    add_common_arguments(check)
    check.set_defaults(handler=run_check)

    extract = subparsers.add_parser(
        "extract",
        help="Extract asset files and UUIDs from a DAM export"
    )
    extract.add_argument(
        "-i", "--input",
        type=Path,
        required=True,
        help="DAM asset export XML file"
    )
    add_common_arguments(extract)
    extract.set_defaults(handler=run_extract)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, quiet=args.quiet)

    sys.exit(args.handler(args))


if __name__ == "__main__":
    main()
