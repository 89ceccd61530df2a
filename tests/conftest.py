"""Shared fixtures: small JCR System View exports built from strings."""

from pathlib import Path

import pytest

SV_NS = "http://www.jcp.org/jcr/sv/1.0"

U1 = "a1b2c3d4-e5f6-7890-abcd-ef1234567890"
U2 = "11111111-2222-3333-4444-555555555555"
U3 = "9f8e7d6c-5b4a-4039-8271-6a5b4c3d2e1f"


def prop(name: str, *values: str, type_: str = "String") -> str:
    vals = "".join(f"<sv:value>{v}</sv:value>" for v in values)
    return f'<sv:property sv:name="{name}" sv:type="{type_}">{vals}</sv:property>'


def node(name: str, *children: str) -> str:
    return f'<sv:node sv:name="{name}">{"".join(children)}</sv:node>'


def folder(name: str, *children: str) -> str:
    return node(name, prop("jcr:primaryType", "mgnl:folder", type_="Name"), *children)


def asset(name: str, uuid: str = None, file_name: str = None,
          content_file_name: str = None, mime_type: str = None,
          size: str = None) -> str:
    """A Magnolia asset node with an optional jcr:content sub-node."""
    children = [prop("jcr:primaryType", "mgnl:asset", type_="Name")]
    if uuid:
        children.append(prop("jcr:uuid", uuid))
    if file_name:
        children.append(prop("fileName", file_name))
    if content_file_name or mime_type or size:
        content = [prop("jcr:primaryType", "mgnl:resource", type_="Name")]
        if content_file_name:
            content.append(prop("fileName", content_file_name))
        if mime_type:
            content.append(prop("jcr:mimeType", mime_type))
        if size:
            content.append(prop("size", size, type_="Long"))
        children.append(node("jcr:content", *content))
    return node(name, *children)


def document(root: str) -> bytes:
    """Declare the sv namespace on the first element and encode."""
    assert root.startswith("<sv:")
    tag_end = root.index(" ")
    root = f'{root[:tag_end]} xmlns:sv="{SV_NS}"{root[tag_end:]}'
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{root}'.encode("utf-8")


@pytest.fixture
def three_asset_export() -> bytes:
    """DAM export with assets U1, U2 and U3 in nested folders."""
    return document(
        folder(
            "images",
            folder(
                "2024",
                folder(
                    "banners",
                    asset("hero", U1, file_name="hero.jpg"),
                    asset("footer", U2, content_file_name="footer.png"),
                ),
            ),
            asset("logo", U3, file_name="logo.svg"),
        )
    )


@pytest.fixture
def write_file(tmp_path: Path):
    """Write bytes or text to a file under tmp_path and return its path."""
    def _write(name: str, content) -> Path:
        path = tmp_path / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path
    return _write
