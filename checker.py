"""
DamAudit Asset Checker Module

Compares a DAM asset export against a page export:

    UNUSED = EXTRACTED - REFERENCED

Phases: extract assets from the DAM export, resolve their identifiers in the
page export, then partition the deduplicated assets.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from lxml import etree

from config import CheckerConfig
from extractor import NOT_AVAILABLE, AssetExtractor, AssetRecord
from jcr_tree import parse_export
from resolver import TEXT_MODE, ReferenceResolver, load_page_export

logger = logging.getLogger("damaudit.checker")


@dataclass
class AnalysisResult:
    """Assets split by whether the page export references them."""
    all_assets: List[AssetRecord] = field(default_factory=list)
    referenced_assets: List[AssetRecord] = field(default_factory=list)
    unused_assets: List[AssetRecord] = field(default_factory=list)

    identifiers_searched: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    def to_dict(self, detailed: bool = False) -> dict:
        """Convert to a dictionary for JSON serialization."""
        return {
            'results': {
                'totalAssets': len(self.all_assets),
                'referencedAssets': len(self.referenced_assets),
                'unusedAssets': len(self.unused_assets),
                'assetUUIDsSearched': self.identifiers_searched,
            },
            'assets': {
                'all': [a.to_dict(detailed) for a in self.all_assets],
                'referenced': [a.to_dict(detailed) for a in self.referenced_assets],
                'unused': [a.to_dict(detailed) for a in self.unused_assets],
            },
            'errors': self.errors,
            'warnings': self.warnings,
        }


def combine(assets: Iterable[AssetRecord], matched: Iterable[str]) -> AnalysisResult:
    """
    Partition assets into referenced and unused.

    Assets are deduplicated by identifier (first seen wins, order kept).
    Assets without a usable identifier cannot be matched and are left out of
    every list.
    """
    matched = set(matched)
    result = AnalysisResult()
    seen_uuids = set()

    for asset in assets:
        uuid = asset.identifier
        if not uuid or uuid == NOT_AVAILABLE or uuid in seen_uuids:
            continue
        seen_uuids.add(uuid)
        result.all_assets.append(asset)

        if uuid in matched:
            result.referenced_assets.append(asset)
        else:
            result.unused_assets.append(asset)

    return result


class AssetChecker:
    """
    Runs the full comparison for one asset export and one page export.

    Strategy:
    1. Parse the DAM export and extract asset records
    2. Load the page export (raw text or structured, per ``mode``)
    3. Resolve the asset identifiers against the page export
    4. Combine into all / referenced / unused

    Read and parse failures are recorded in ``AnalysisResult.errors`` and
    degrade to empty intermediate results instead of raising.
    """

    def __init__(self, config: Optional[CheckerConfig] = None, mode: str = TEXT_MODE,
                 detailed: bool = False, log: Optional[logging.Logger] = None):
        self.config = config or CheckerConfig()
        self.mode = mode
        self.detailed = detailed
        self.log = log or logger
        self.extractor = AssetExtractor(self.config, detailed=detailed, log=self.log)
        self.resolver = ReferenceResolver(self.config, log=self.log)

    def check(self, asset_path: Union[str, Path], page_path: Union[str, Path]) -> AnalysisResult:
        """Compare ``asset_path`` (DAM export XML) against ``page_path``."""
        errors = []

        self.log.info("1. Extracting assets from asset export...")
        assets = self._extract(Path(asset_path), errors)

        self.log.info("2. Searching for asset identifiers in page export...")
        asset_uuids = [asset.identifier for asset in assets]
        content = load_page_export(page_path, self.mode, log=self.log)
        if content is None:
            errors.append(f"Could not read page export: {page_path}")
        matched = self.resolver.resolve(asset_uuids, content)

        self.log.info("3. Comparing assets against page references...")
        result = combine(assets, matched)
        result.identifiers_searched = len(asset_uuids)
        result.errors.extend(errors)

        duplicates = len(assets) - len(result.all_assets)
        if duplicates:
            result.warnings.append(f"{duplicates} duplicate asset identifiers ignored")
        if not assets and not errors:
            result.warnings.append("No assets found in asset export")

        return result

    def _extract(self, asset_path: Path, errors: list) -> List[AssetRecord]:
        try:
            tree = parse_export(asset_path)
        except (OSError, etree.XMLSyntaxError) as e:
            self.log.error("Error reading asset XML file %s: %s", asset_path, e)
            errors.append(f"Could not read asset export: {asset_path}: {e}")
            return []
        return self.extractor.extract(tree)


def check_exports(
    asset_path: Union[str, Path],
    page_path: Union[str, Path],
    config: Optional[CheckerConfig] = None,
    mode: str = TEXT_MODE,
    detailed: bool = False,
) -> AnalysisResult:
    """
    Compare a DAM asset export against a page export.

    This is the main entry point for collaborators that work with files.

    Args:
        asset_path: DAM export (System View XML)
        page_path: page export (XML or YAML)
        config: repository vocabulary; defaults match stock Magnolia exports
        mode: "text" for substring search, "structural" for tree walking
        detailed: include asset name, MIME type and size in records

    Returns:
        AnalysisResult with all, referenced and unused assets
    """
    checker = AssetChecker(config, mode=mode, detailed=detailed)
    return checker.check(asset_path, page_path)
