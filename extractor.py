"""
DamAudit Asset Extractor Module

Walks a DAM export tree and emits one AssetRecord per asset node.

Exports differ in how thoroughly an asset is marked, so detection tries two
strategies in sequence:
- marker: a ``jcr:primaryType`` property whose value is the asset type;
  the asset is the property's parent node
- property scan: a node whose own properties carry an accepted primary type,
  or whose content sub-node carries a file name or MIME type
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

from lxml import etree

from config import CheckerConfig
from jcr_tree import Node, parse_export

logger = logging.getLogger("damaudit.extractor")

NOT_AVAILABLE = "N/A"
ROOT_LOCATION = "root"


@dataclass
class AssetRecord:
    """One extracted asset."""
    file_name: str
    identifier: str
    location: str = ROOT_LOCATION
    # Filled by detailed extraction only
    asset_name: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[str] = None

    def to_dict(self, detailed: bool = False) -> dict:
        """Convert to the report row layout."""
        row = {
            'fileName': self.file_name,
            'uuid': self.identifier,
            'location': self.location,
        }
        if detailed:
            row['assetName'] = self.asset_name or NOT_AVAILABLE
            row['mimeType'] = self.mime_type or NOT_AVAILABLE
            row['size'] = self.size or NOT_AVAILABLE
        return row


class AssetExtractor:
    """
    Extracts asset records from a parsed DAM export.

    The extractor keeps only configuration on the instance; every call to
    ``extract`` works on its own tree and its own bookkeeping.
    """

    def __init__(self, config: Optional[CheckerConfig] = None, detailed: bool = False,
                 log: Optional[logging.Logger] = None):
        self.config = config or CheckerConfig()
        self.detailed = detailed
        self.log = log or logger

    def extract(self, tree: Node) -> list[AssetRecord]:
        """Return one record per asset node that carries an identifier."""
        assets = []
        for asset_node in self.find_asset_nodes(tree):
            record = self._extract_record(asset_node)
            if record is None:
                self.log.debug("Skipping asset node '%s': no identifier", asset_node.name)
                continue
            assets.append(record)

        self.log.info("Found %d assets in asset export", len(assets))
        return assets

    def find_asset_nodes(self, tree: Node) -> Iterator[Node]:
        """Yield each asset node once, in document order of its first detection."""
        seen: set[int] = set()
        for node in tree.iter():
            asset_node = self.detect(node)
            if asset_node is None or id(asset_node) in seen:
                continue
            seen.add(id(asset_node))
            yield asset_node

    def detect(self, node: Node) -> Optional[Node]:
        """Return the asset node that ``node`` identifies, if any."""
        asset_node = self._detect_by_marker(node)
        if asset_node is None:
            asset_node = self._detect_by_properties(node)
        return asset_node

    def detection_strategy(self, asset_node: Node) -> Optional[str]:
        """Name of the first strategy that recognizes ``asset_node``."""
        if any(self._detect_by_marker(p) is asset_node for p in asset_node.properties()):
            return "marker"
        if self._detect_by_properties(asset_node) is not None:
            return "property_scan"
        return None

    def _detect_by_marker(self, node: Node) -> Optional[Node]:
        detection = self.config.asset_detection
        if not node.is_property or node.name != detection.type_property:
            return None
        if node.value != detection.marker_type:
            return None
        parent = node.parent
        if parent is None or not parent.is_container:
            return None
        return parent

    def _detect_by_properties(self, node: Node) -> Optional[Node]:
        detection = self.config.asset_detection
        names = self.config.properties
        if not node.is_container or node.name == detection.content_node:
            return None

        for prop in node.properties():
            if prop.name == detection.type_property and prop.value in detection.accepted_types:
                return node

        content = node.find_child_node(detection.content_node)
        if content is not None:
            content_props = _property_map(content)
            if content_props.get(names.file_name) or content_props.get(names.mime_type):
                return node
        return None

    def _extract_record(self, asset_node: Node) -> Optional[AssetRecord]:
        names = self.config.properties
        props = _property_map(asset_node)

        content_props = {}
        content = asset_node.find_child_node(self.config.asset_detection.content_node)
        if content is not None:
            content_props = _property_map(content)

        identifier = props.get(names.identifier)
        if not identifier or identifier == NOT_AVAILABLE:
            return None

        file_name = (
            props.get(names.file_name)
            or content_props.get(names.file_name)
            or asset_node.name
            or identifier
        )

        record = AssetRecord(
            file_name=file_name,
            identifier=identifier,
            location=build_location(asset_node),
        )
        if self.detailed:
            record.asset_name = asset_node.name
            record.mime_type = props.get(names.mime_type) or content_props.get(names.mime_type)
            record.size = props.get(names.size) or content_props.get(names.size)
        return record


def _property_map(node: Node) -> dict[str, str]:
    """Map property name to value; later duplicates overwrite earlier ones."""
    properties = {}
    for prop in node.properties():
        value = prop.value
        if prop.name and value:
            properties[prop.name] = value
    return properties


def build_location(asset_node: Node) -> str:
    """Join structural ancestor names root-first; 'root' when there are none."""
    folder_path = [
        ancestor.name
        for ancestor in asset_node.ancestors()
        if ancestor.is_container and ancestor.name
    ]
    folder_path.reverse()
    return "/".join(folder_path) if folder_path else ROOT_LOCATION


def extract_assets(tree: Node, config: Optional[CheckerConfig] = None,
                   detailed: bool = False) -> list[AssetRecord]:
    """Extract asset records from an already parsed export tree."""
    return AssetExtractor(config, detailed=detailed).extract(tree)


def extract_assets_from_file(
    path: Union[str, Path],
    config: Optional[CheckerConfig] = None,
    detailed: bool = False,
    log: Optional[logging.Logger] = None,
) -> list[AssetRecord]:
    """
    Parse a DAM export file and extract its assets.

    Unreadable or malformed files are logged and yield an empty list.
    """
    log = log or logger
    try:
        tree = parse_export(path)
    except (OSError, etree.XMLSyntaxError) as e:
        log.error("Error reading asset export %s: %s", path, e)
        return []
    return AssetExtractor(config, detailed=detailed, log=log).extract(tree)
