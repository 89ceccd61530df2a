"""
DamAudit Export Tree Module

Generic node/property tree for JCR System View exports, plus the lxml-based
parser that builds it.

A System View export nests ``sv:node`` elements (structural containers) and
``sv:property`` elements (name/value leaves with one or more ``sv:value``
children). Both become ``Node`` objects here, distinguished by ``kind``.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Union

from lxml import etree

# JCR System View namespace
SV_NS = "http://www.jcp.org/jcr/sv/1.0"
SV = f"{{{SV_NS}}}"

NODE = "node"
PROPERTY = "property"


@dataclass
class Node:
    """One node or property of an export tree."""
    kind: str
    name: Optional[str] = None
    values: list[str] = field(default_factory=list)
    children: list["Node"] = field(default_factory=list)
    # Back-reference for upward path lookups only; the parent owns its children
    parent: Optional["Node"] = field(default=None, repr=False, compare=False)

    @property
    def is_property(self) -> bool:
        return self.kind == PROPERTY

    @property
    def is_container(self) -> bool:
        return self.kind == NODE

    @property
    def value(self) -> Optional[str]:
        """First non-empty value, stripped; None when the property has none."""
        for v in self.values:
            if v and v.strip():
                return v.strip()
        return None

    def properties(self) -> Iterator["Node"]:
        """Direct property children, in document order."""
        return (c for c in self.children if c.is_property)

    def child_nodes(self) -> Iterator["Node"]:
        """Direct structural children, in document order."""
        return (c for c in self.children if c.is_container)

    def find_child_node(self, name: str) -> Optional["Node"]:
        for child in self.child_nodes():
            if child.name == name:
                return child
        return None

    def add_child(self, child: "Node") -> "Node":
        child.parent = self
        self.children.append(child)
        return child

    def iter(self) -> Iterator["Node"]:
        """Pre-order traversal of this node and all descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def ancestors(self) -> Iterator["Node"]:
        """Parents from nearest to the tree root."""
        current = self.parent
        while current is not None:
            yield current
            current = current.parent


def _local_name(name: str) -> str:
    """Strip a Clark-notation namespace or an unbound ``prefix:``."""
    if '}' in name:
        return name.split('}')[-1]
    return name.split(':')[-1]


def _sv_name(elem: etree._Element) -> Optional[str]:
    name = elem.get(f"{SV}name")
    if name is None:
        for attr_name, attr_val in elem.attrib.items():
            if _local_name(attr_name) == "name":
                return attr_val
    return name


def _build(elem: etree._Element) -> Optional[Node]:
    """Convert a System View element subtree into a Node subtree."""
    tag = _local_name(elem.tag) if isinstance(elem.tag, str) else None
    if tag not in (NODE, PROPERTY):
        return None

    root = Node(kind=tag, name=_sv_name(elem))
    stack = [(elem, root)]
    while stack:
        xml_elem, node = stack.pop()
        for child in xml_elem:
            if not isinstance(child.tag, str):
                continue  # comments, processing instructions
            child_tag = _local_name(child.tag)
            if node.is_property:
                if child_tag == "value":
                    node.values.append("".join(child.itertext()))
            elif child_tag in (NODE, PROPERTY):
                child_node = node.add_child(Node(kind=child_tag, name=_sv_name(child)))
                stack.append((child, child_node))
    return root


def from_element(root: etree._Element) -> Node:
    """
    Build a Node tree from a parsed System View document.

    If the document element is not itself an ``sv:node`` (e.g. a wrapper
    element), a nameless container holds every top-level ``sv:node`` found
    beneath it.
    """
    tree = _build(root)
    if tree is not None:
        return tree

    holder = Node(kind=NODE)
    for elem in root.iter():
        if not isinstance(elem.tag, str) or _local_name(elem.tag) != NODE:
            continue
        parent = elem.getparent()
        if parent is not None and isinstance(parent.tag, str) and _local_name(parent.tag) == NODE:
            continue
        subtree = _build(elem)
        if subtree is not None:
            holder.add_child(subtree)
    return holder


def make_parser() -> etree.XMLParser:
    """XML parser for untrusted exports: no entity expansion, no network."""
    return etree.XMLParser(
        remove_blank_text=False,
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
    )


def parse_xml(source: Union[str, Path, bytes]) -> etree._Element:
    """
    Parse XML from a file path or raw bytes.

    Raises:
        OSError: file cannot be read
        etree.XMLSyntaxError: content is not well-formed
    """
    parser = make_parser()
    if isinstance(source, bytes):
        return etree.fromstring(source, parser)
    tree = etree.parse(str(source), parser)
    return tree.getroot()


def parse_export(source: Union[str, Path, bytes]) -> Node:
    """Parse a System View export (path or bytes) into a Node tree."""
    return from_element(parse_xml(source))
