from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest

from svgdim.canvas import resolve_metrics
from svgdim.ingest import SVG_NS, ingest, iter_rendered, local_name
from svgdim.prune import canvas_tolerance, prune_background_shapes
from svgdim.types import CanvasMetrics


def _ids(document) -> list:
    return [node.get("id") for node in document.root.iter() if local_name(node) == "rect"]


def _document(body: str, attrs: str = "width='100' height='50'"):
    document = ingest(f"<svg xmlns='{SVG_NS}' {attrs}>{body}</svg>")
    return document, resolve_metrics(document)


def test_removes_canvas_sized_rects_only() -> None:
    document, metrics = _document(
        "<rect id='bg' width='100' height='50' fill='white'/>"
        "<rect id='pct' x='0' y='0' width='100%' height='100%'/>"
        "<rect id='small' x='10' width='20' height='20'/>"
        "<path id='path-bg' d='M0 0H100V50H0Z'/>"
        "<defs><rect id='template' width='100' height='50'/></defs>"
    )
    assert prune_background_shapes(document, metrics) == 2
    assert _ids(document) == ["small", "template"]


def test_pruning_is_idempotent() -> None:
    document, metrics = _document("<rect width='100' height='50'/><circle r='3'/>")
    assert prune_background_shapes(document, metrics) == 1
    assert prune_background_shapes(document, metrics) == 0
    assert [local_name(n) for n in iter_rendered(document.root)] == ["svg", "circle"]


def test_tolerance_scales_with_canvas() -> None:
    metrics = CanvasMetrics(100.0, 50.0)
    assert canvas_tolerance(metrics) == pytest.approx(1.0)

    document, metrics = _document(
        "<rect id='near' width='100.9' height='49.2'/><rect id='far' width='101.5' height='50'/>"
    )
    assert prune_background_shapes(document, metrics) == 1
    assert _ids(document) == ["far"]


def test_tolerance_is_configurable() -> None:
    document, metrics = _document("<rect id='far' width='101.5' height='50'/>")
    assert prune_background_shapes(document, metrics, tolerance_abs=2.0) == 1
    assert _ids(document) == []


def test_position_follows_viewbox_origin() -> None:
    document, metrics = _document(
        "<rect id='placed' x='10' y='10' width='100' height='50'/>"
        "<rect id='unplaced' width='100' height='50'/>",
        attrs="viewBox='10 10 100 50'",
    )
    assert prune_background_shapes(document, metrics) == 1
    assert _ids(document) == ["unplaced"]


def test_percent_position_must_be_zero() -> None:
    document, metrics = _document("<rect id='shifted' x='5%' width='100%' height='100%'/>")
    assert prune_background_shapes(document, metrics) == 0


@pytest.mark.parametrize(
    "metrics",
    [
        CanvasMetrics(float("nan"), 50.0),
        CanvasMetrics(100.0, float("inf")),
        CanvasMetrics(0.0, 50.0),
    ],
)
def test_unusable_metrics_are_not_attempted(metrics: CanvasMetrics) -> None:
    document, _ = _document("<rect width='100' height='50'/>")
    assert prune_background_shapes(document, metrics) is None
    assert len(_ids(document)) == 1
