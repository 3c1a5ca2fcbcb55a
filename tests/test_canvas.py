from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest

from svgdim.canvas import DEFAULT_CANVAS_SIZE, parse_length, parse_viewbox, resolve_metrics
from svgdim.ingest import SVG_NS, ingest


def _svg(attrs: str) -> str:
    return f"<svg xmlns='{SVG_NS}' {attrs}><rect width='1' height='1'/></svg>"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("100", 100.0),
        (" 12.5px ", 12.5),
        ("3e2", 300.0),
        ("40mm", 40.0),
        ("100%", None),
        ("0", None),
        ("-3", None),
        ("abc", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_length(value, expected) -> None:
    assert parse_length(value) == expected


def test_parse_viewbox_variants() -> None:
    assert parse_viewbox("0 0 10 20") == (0.0, 0.0, 10.0, 20.0)
    assert parse_viewbox("-5,-5, 10 ,10") == (-5.0, -5.0, 10.0, 10.0)
    assert parse_viewbox("0 0 0 10") is None
    assert parse_viewbox("0 0 10") is None
    assert parse_viewbox("a b c d") is None
    assert parse_viewbox(None) is None


def test_attributes_win_and_viewbox_is_synthesized() -> None:
    document = ingest(_svg("width='100' height='50'"))
    metrics = resolve_metrics(document)

    assert (metrics.width, metrics.height) == (100.0, 50.0)
    assert (metrics.origin_x, metrics.origin_y) == (0.0, 0.0)
    assert metrics.source == "attributes"
    assert metrics.defaulted is False
    assert document.root.get("viewBox") == "0 0 100 50"


def test_viewbox_supplies_size_and_origin() -> None:
    document = ingest(_svg("viewBox='10 20 300 150'"))
    metrics = resolve_metrics(document)

    assert (metrics.width, metrics.height) == (300.0, 150.0)
    assert (metrics.origin_x, metrics.origin_y) == (10.0, 20.0)
    assert metrics.source == "viewbox"
    assert document.root.get("viewBox") == "10 20 300 150"


def test_percent_attributes_defer_to_viewbox() -> None:
    metrics = resolve_metrics(ingest(_svg("width='100%' height='100%' viewBox='0 0 64 32'")))
    assert (metrics.width, metrics.height) == (64.0, 32.0)
    assert metrics.source == "viewbox"


def test_mixed_sources() -> None:
    metrics = resolve_metrics(ingest(_svg("width='200' viewBox='0 0 100 50'")))
    assert (metrics.width, metrics.height) == (200.0, 50.0)
    assert metrics.source == "mixed"
    assert metrics.defaulted is False


def test_default_canvas_when_nothing_is_usable() -> None:
    document = ingest(_svg("width='auto' viewBox='0 0 -1 5'"))
    metrics = resolve_metrics(document)

    assert (metrics.width, metrics.height) == DEFAULT_CANVAS_SIZE
    assert metrics.source == "default"
    assert metrics.defaulted is True
    assert document.root.get("viewBox") == "0 0 320 180"


def test_custom_default_size_and_partial_default() -> None:
    metrics = resolve_metrics(ingest(_svg("height='40'")), default_size=(64, 48))
    assert (metrics.width, metrics.height) == (64.0, 40.0)
    assert metrics.source == "mixed"
    assert metrics.defaulted is True


def test_signature_changes_with_size() -> None:
    first = resolve_metrics(ingest(_svg("width='10' height='10'")))
    second = resolve_metrics(ingest(_svg("width='10' height='10'")))
    third = resolve_metrics(ingest(_svg("width='10' height='11'")))
    assert first.signature == second.signature
    assert first.signature != third.signature
