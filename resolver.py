"""
DamAudit Reference Resolver Module

Decides which asset identifiers a page export references.

Three matching policies, chosen by how the page export is represented:
- raw text: exact substring search for each candidate identifier
- XML tree: every leaf text and attribute value is tested for a bare
  identifier or a composite ``/dam/jcr:<uuid>`` reference
- decoded YAML: every string scalar and map key gets the same tests

Structural policies discover identifiers; ``resolve_references`` always
intersects them with the candidates so the referenced/unused split stays
meaningful.
"""

import logging
import re
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Union

import yaml
from lxml import etree

from config import CheckerConfig
from jcr_tree import Node, parse_xml

logger = logging.getLogger("damaudit.resolver")

UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE,
)

TEXT_MODE = "text"
STRUCTURAL_MODE = "structural"
MODES = (TEXT_MODE, STRUCTURAL_MODE)

XML_EXTENSIONS = ('.xml',)
YAML_EXTENSIONS = ('.yaml', '.yml')
PAGE_EXTENSIONS = XML_EXTENSIONS + YAML_EXTENSIONS


def is_uuid(text: Any) -> bool:
    """True if ``text`` is a canonical 8-4-4-4-12 hexadecimal identifier."""
    return isinstance(text, str) and UUID_PATTERN.match(text) is not None


def composite_reference_pattern(repository_marker: str = "dam") -> re.Pattern:
    """Pattern for ``/<marker>/jcr:<36 chars>`` capturing the identifier part."""
    return re.compile(
        rf'/{re.escape(repository_marker)}/jcr:([0-9a-f-]{{36}})',
        re.IGNORECASE,
    )


class ReferenceResolver:
    """Finds candidate identifiers in page export content."""

    def __init__(self, config: Optional[CheckerConfig] = None,
                 log: Optional[logging.Logger] = None):
        self.config = config or CheckerConfig()
        self.log = log or logger
        self._composite = composite_reference_pattern(self.config.references.repository_marker)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def resolve(self, candidates: Iterable[str], content: Any) -> set[str]:
        """
        Return the candidates referenced by ``content``.

        ``content`` may be raw text (str or UTF-8 bytes), an lxml element or
        tree, a Node tree, or a decoded YAML document. ``None`` (a page export
        that failed to load) and undecodable bytes match nothing.
        """
        candidates = list(candidates)
        if content is None:
            return set()
        if isinstance(content, bytes):
            try:
                content = content.decode('utf-8')
            except UnicodeDecodeError as e:
                self.log.error("Cannot decode page content as UTF-8: %s", e)
                return set()
        if isinstance(content, str):
            return self.find_in_text(candidates, content)
        return self._intersect(candidates, self.discover(content))

    def discover(self, content: Any) -> set[str]:
        """Every identifier a structured document references, candidate or not."""
        if isinstance(content, etree._ElementTree):
            content = content.getroot()
        if isinstance(content, etree._Element):
            values = _xml_values(content)
        elif isinstance(content, Node):
            values = _node_values(content)
        elif isinstance(content, (str, bytes)):
            raise TypeError("Raw text has no structure; use find_in_text()")
        else:
            values = _document_values(content)

        found = set()
        for value in values:
            self._collect(value, found)

        self.log.info("Found %d identifier references in page export", len(found))
        return found

    def find_in_text(self, candidates: Iterable[str], text: str) -> set[str]:
        """Candidates that occur anywhere in ``text`` as an exact substring."""
        candidates = list(candidates)
        self.log.info("Searching for %d asset identifiers in page content (%d characters)",
                      len(candidates), len(text))

        found = set()
        for uuid in candidates:
            if not uuid:
                continue
            position = text.find(uuid)
            if position != -1:
                found.add(uuid)
                self.log.debug("Found identifier %s at position %d", uuid, position)
            else:
                self.log.debug("Identifier not found: %s", uuid)

        self.log.info("Found %d asset identifiers referenced in page export", len(found))
        return found

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _collect(self, text: str, found: set[str]):
        """Add a bare identifier and every composite reference in ``text``."""
        value = text.strip()
        if is_uuid(value):
            found.add(value)
        for match in self._composite.finditer(text):
            uuid = match.group(1)
            if is_uuid(uuid):
                found.add(uuid)

    def _intersect(self, candidates: list[str], discovered: set[str]) -> set[str]:
        """Candidates present in ``discovered``, compared case-insensitively."""
        discovered_lower = {d.lower() for d in discovered}
        matched = {c for c in candidates if c and c.lower() in discovered_lower}
        self.log.info("Found %d asset identifiers referenced in page export", len(matched))
        return matched


def _xml_values(root: etree._Element) -> Iterator[str]:
    """
    Leaf element texts and attribute values of an XML tree.

    A leaf has no element children; comments and processing instructions
    inside it are skipped but the text around them is kept.
    """
    for elem in root.iter():
        if not isinstance(elem.tag, str):
            continue
        if not any(isinstance(child.tag, str) for child in elem):
            text = (elem.text or "") + "".join(child.tail or "" for child in elem)
            if text:
                yield text
        for attr_val in elem.attrib.values():
            if attr_val:
                yield attr_val


def _node_values(tree: Node) -> Iterator[str]:
    """Property values and node names of a Node tree."""
    for node in tree.iter():
        if node.name:
            yield node.name
        for value in node.values:
            if value:
                yield value


def _document_values(document: Any) -> Iterator[str]:
    """
    String scalars and string map keys of a decoded YAML document.

    Aliased collections are walked once, so recursive aliases terminate.
    """
    stack = [document]
    visited: set[int] = set()
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            yield item
            continue
        if not isinstance(item, (dict, list, tuple, set)):
            continue
        if id(item) in visited:
            continue
        visited.add(id(item))
        if isinstance(item, dict):
            for key, value in item.items():
                if isinstance(key, str):
                    yield key
                stack.append(value)
        elif isinstance(item, (list, tuple, set)):
            stack.extend(item)


def load_page_export(path: Union[str, Path], mode: str = TEXT_MODE,
                     log: Optional[logging.Logger] = None) -> Any:
    """
    Load a page export in the representation its matching policy needs.

    Text mode returns the raw text of any supported file. Structural mode
    returns an lxml element for XML and the list of decoded documents for
    YAML (a file may hold several ``---`` separated documents).

    Returns None (after logging) when the file cannot be read or parsed.

    Raises:
        ValueError: unsupported extension or mode
    """
    log = log or logger
    path = Path(path)
    ext = path.suffix.lower()
    if ext not in PAGE_EXTENSIONS:
        raise ValueError(f"Page file must be XML or YAML. Provided: {ext or '(none)'}")
    if mode not in MODES:
        raise ValueError(f"Unknown matching mode '{mode}'. Supported: {', '.join(MODES)}")

    try:
        if mode == TEXT_MODE:
            return path.read_text(encoding='utf-8')
        if ext in XML_EXTENSIONS:
            return parse_xml(path)
        with open(path, 'r', encoding='utf-8') as f:
            return list(yaml.safe_load_all(f))
    except (OSError, UnicodeDecodeError) as e:
        log.error("Error reading page file %s: %s", path, e)
    except etree.XMLSyntaxError as e:
        log.error("Error parsing XML page file %s: %s", path, e)
    except yaml.YAMLError as e:
        log.error("Error parsing YAML page file %s: %s", path, e)
    return None


def resolve_references(candidates: Iterable[str], content: Any,
                       config: Optional[CheckerConfig] = None) -> set[str]:
    """Return the candidate identifiers referenced by ``content``."""
    return ReferenceResolver(config).resolve(candidates, content)


def discover_references(content: Any, config: Optional[CheckerConfig] = None) -> set[str]:
    """Return every identifier referenced by a structured document."""
    return ReferenceResolver(config).discover(content)
