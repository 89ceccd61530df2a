#!/usr/bin/env python3
"""
DamAudit Diagnostic Tool

Inspects a DAM export to show which primary types it uses and which nodes
the extractor recognizes as assets, helping configure DamAudit for exports
that mark assets differently.
"""

import argparse
import sys
from collections import Counter
from pathlib import Path

from lxml import etree

from config import ConfigError, load_config
from extractor import AssetExtractor
from jcr_tree import Node, parse_export


def get_primary_type(node: Node, type_property: str):
    for prop in node.properties():
        if prop.name == type_property:
            return prop.value
    return None


def analyze_export(tree: Node, extractor: AssetExtractor, show_all: bool = False):
    """Print primary types, detection counts and unrecognized UUID nodes."""
    detection = extractor.config.asset_detection
    uuid_property = extractor.config.properties.identifier

    type_counts = Counter()
    strategy_counts = Counter()
    node_count = 0

    for node in tree.iter():
        if not node.is_container:
            continue
        node_count += 1
        type_counts[get_primary_type(node, detection.type_property) or "(none)"] += 1

    asset_nodes = list(extractor.find_asset_nodes(tree))
    asset_ids = {id(n) for n in asset_nodes}
    for node in asset_nodes:
        strategy_counts[extractor.detection_strategy(node) or "unknown"] += 1

    unrecognized = []
    for node in tree.iter():
        if not node.is_container or id(node) in asset_ids:
            continue
        if node.name == detection.content_node:
            continue
        uuid = next((p.value for p in node.properties() if p.name == uuid_property), None)
        if uuid:
            unrecognized.append((node, uuid))

    print(f"\nTotal nodes: {node_count}")
    print(f"Asset nodes recognized: {len(asset_nodes)}")
    print()
    print("Primary types:")
    for type_name, count in type_counts.most_common():
        marker = " (asset)" if type_name in detection.accepted_types else ""
        print(f"  {type_name}: {count}{marker}")

    print()
    print("Detections by strategy:")
    if not strategy_counts:
        print("  (none)")
    for strategy, count in sorted(strategy_counts.items()):
        print(f"  {strategy}: {count}")

    folder_types = {"mgnl:folder", "mgnl:content", "rep:root", "(none)"}
    candidates = Counter(
        get_primary_type(node, detection.type_property) or "(none)"
        for node, _ in unrecognized
    )

    print()
    print(f"Nodes with {uuid_property} not recognized as assets: {len(unrecognized)}")
    shown = unrecognized if show_all else unrecognized[:20]
    for node, uuid in shown:
        node_type = get_primary_type(node, detection.type_property) or "(none)"
        print(f"  - {node.name or '(unnamed)'} [{node_type}] {uuid}")
    if len(unrecognized) > len(shown):
        print(f"  ... and {len(unrecognized) - len(shown)} more (use --all)")

    suggestions = [t for t in candidates if t not in folder_types]
    if suggestions:
        print()
        print("💡 Suggestion: if these types are assets, add them to your config under")
        print("   asset_detection.accepted_types:")
        for type_name in sorted(suggestions):
            print(f"     - \"{type_name}\"")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Diagnose a DAM export to help configure DamAudit"
    )
    parser.add_argument("input", type=Path, help="DAM export XML file")
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file"
    )
    parser.add_argument(
        "-a", "--all",
        action="store_true",
        help="List every unrecognized node"
    )

    args = parser.parse_args(argv)

    if not args.input.exists():
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        tree = parse_export(args.input)
    except (OSError, etree.XMLSyntaxError) as e:
        print(f"Error: Cannot parse {args.input}: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"\nDiagnosing DAM export: {args.input}")
    print("=" * 70)
    analyze_export(tree, AssetExtractor(config), show_all=args.all)


if __name__ == "__main__":
    main()
