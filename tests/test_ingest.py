from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest
from lxml import etree

from svgdim.ingest import (
    SVG_NS,
    MalformedMarkupError,
    detach,
    ingest,
    iter_rendered,
    local_name,
)


@pytest.mark.parametrize(
    "source",
    [
        "",
        "   ",
        "<svg><rect></svg>",
        "<svg xmlns='http://www.w3.org/2000/svg'",
        "<html><body/></html>",
        "<svg xmlns='http://example.com/other'/>",
        "<svg xmlns='http://www.w3.org/2000/svg'><text>a&nbsp;b</text></svg>",
        "<svg xmlns='http://www.w3.org/2000/svg'><text>&undefined;</text></svg>",
        "<svg xmlns='http://www.w3.org/2000/svg'><text>fish & chips</text></svg>",
        "<?xml version='1.0' encoding='UTF-8'?>",
    ],
)
def test_ingest_rejects_malformed_markup(source: str) -> None:
    with pytest.raises(MalformedMarkupError):
        ingest(source)


def test_malformed_markup_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        ingest("<svg")


def test_ingest_adopts_svg_namespace() -> None:
    document = ingest("<svg width='10' height='10'><g><rect width='1' height='1'/></g></svg>")

    assert document.adopted_namespace is True
    assert document.root.tag == f"{{{SVG_NS}}}svg"
    assert all(node.tag.startswith(f"{{{SVG_NS}}}") for node in document.root.iter())
    assert document.root.get("width") == "10"
    markup = document.to_string()
    assert 'xmlns="http://www.w3.org/2000/svg"' in markup
    assert "<rect" in markup


def test_ingest_keeps_existing_namespace() -> None:
    document = ingest(f"<svg xmlns='{SVG_NS}'><rect/></svg>")
    assert document.adopted_namespace is False
    assert document.root[0].tag == f"{{{SVG_NS}}}rect"


def test_ingest_strips_executable_content() -> None:
    source = (
        f"<svg xmlns='{SVG_NS}' xmlns:xlink='http://www.w3.org/1999/xlink' onload='boot()'>"
        "<script>alert(1)</script>"
        "<rect width='1' height='1' onclick='steal()'/>"
        "<a href=' javascript:alert(1)'><text>t</text></a>"
        "<a xlink:href='JavaScript:void(0)'><text>u</text></a>"
        "<a href='https://example.com'><text>v</text></a>"
        "</svg>"
    )
    document = ingest(source)
    markup = document.to_string()

    assert document.removed_scripts == 1
    assert document.removed_handlers == 2
    assert document.removed_links == 2
    assert "script" not in markup
    assert "onclick" not in markup
    assert "onload" not in markup
    assert "javascript" not in markup.lower()
    assert "https://example.com" in markup


def test_ingest_sets_default_preserve_aspect_ratio() -> None:
    assert ingest(f"<svg xmlns='{SVG_NS}'/>").root.get("preserveAspectRatio") == "xMidYMid meet"
    kept = ingest(f"<svg xmlns='{SVG_NS}' preserveAspectRatio='none'/>")
    assert kept.root.get("preserveAspectRatio") == "none"


def test_ingest_does_not_expand_external_entities(tmp_path: Path) -> None:
    secret = tmp_path / "secret.txt"
    secret.write_text("TOPSECRET", encoding="utf-8")
    source = (
        f'<!DOCTYPE svg [<!ENTITY xxe SYSTEM "file://{secret}">]>'
        f"<svg xmlns='{SVG_NS}'><text>&xxe;</text></svg>"
    )
    document = ingest(source)
    assert "TOPSECRET" not in document.to_string()


def test_detach_keeps_tail_text() -> None:
    root = etree.fromstring("<p>a<b/>tail<c/></p>")
    assert detach(root[0]) is True
    assert etree.tostring(root, encoding="unicode") == "<p>atail<c/></p>"
    assert detach(root) is False


def test_iter_rendered_skips_defs_and_comments() -> None:
    document = ingest(
        f"<svg xmlns='{SVG_NS}'><!-- note --><defs><rect id='hidden'/></defs><g><circle/></g><rect/></svg>"
    )
    names = [local_name(node) for node in iter_rendered(document.root)]
    assert names == ["svg", "g", "circle", "rect"]


@pytest.mark.parametrize("encoding", ["UTF-8", "ISO-8859-1", "UTF-16", "windows-1252"])
def test_ingest_ignores_declared_encoding(encoding: str) -> None:
    source = (
        f'<?xml version="1.0" encoding="{encoding}" standalone="no"?>\n'
        f"<svg xmlns='{SVG_NS}' width='10' height='10'><text>café ≈ 10µm</text></svg>"
    )
    document = ingest(source)
    assert document.root.findtext(f"{{{SVG_NS}}}text") == "café ≈ 10µm"
    assert "<text>café ≈ 10µm</text>" in document.to_string()


def test_ingest_accepts_byte_order_mark_and_stylesheet_instruction() -> None:
    source = (
        "\ufeff<?xml version='1.0'?><?xml-stylesheet href='a.css'?>"
        f"<svg xmlns='{SVG_NS}'><text>naïve</text></svg>"
    )
    document = ingest(source)
    assert document.root.findtext(f"{{{SVG_NS}}}text") == "naïve"
