"""Remove art-board placeholder rectangles that duplicate the canvas footprint.

This is a heuristic: a background drawn as a ``<path>`` survives, and a
foreground rectangle that happens to cover the whole canvas is removed.
"""
from __future__ import annotations

import logging
import math
import re
from typing import List, Optional

from lxml import etree

from .ingest import ParsedDocument, detach, iter_rendered, local_name
from .types import CanvasMetrics


log = logging.getLogger(__name__)


TOLERANCE_REL = 0.005
TOLERANCE_ABS = 0.5
PERCENT_EPS = 0.01

_NUMBER_RE = re.compile(r"^\s*([-+]?(?:\d*\.\d+|\d+\.?\d*)(?:[eE][-+]?\d+)?)")


def canvas_tolerance(
    metrics: CanvasMetrics,
    tolerance_rel: float = TOLERANCE_REL,
    tolerance_abs: float = TOLERANCE_ABS,
) -> float:
    return max(metrics.width, metrics.height) * tolerance_rel + tolerance_abs


def _leading_number(text: str) -> Optional[float]:
    match = _NUMBER_RE.match(text)
    if not match:
        return None
    value = float(match.group(1))
    return value if math.isfinite(value) else None


def _matches_size(attr: Optional[str], expected: float, tolerance: float) -> bool:
    if attr is None or not attr.strip():
        return False
    text = attr.strip()
    if text.endswith("%"):
        pct = _leading_number(text[:-1])
        return pct is not None and abs(pct - 100.0) < PERCENT_EPS
    value = _leading_number(text)
    return value is not None and abs(value - expected) <= tolerance


def _matches_position(attr: Optional[str], expected: float, tolerance: float) -> bool:
    if attr is None or not attr.strip():
        return abs(expected) <= tolerance
    text = attr.strip()
    if text.endswith("%"):
        pct = _leading_number(text[:-1])
        return pct is not None and abs(pct) < PERCENT_EPS
    value = _leading_number(text)
    return value is not None and abs(value - expected) <= tolerance


def is_canvas_rect(node: etree._Element, metrics: CanvasMetrics, tolerance: float) -> bool:
    return (
        _matches_size(node.get("width"), metrics.width, tolerance)
        and _matches_size(node.get("height"), metrics.height, tolerance)
        and _matches_position(node.get("x"), metrics.origin_x, tolerance)
        and _matches_position(node.get("y"), metrics.origin_y, tolerance)
    )


def prune_background_shapes(
    document: ParsedDocument,
    metrics: CanvasMetrics,
    tolerance_rel: float = TOLERANCE_REL,
    tolerance_abs: float = TOLERANCE_ABS,
) -> Optional[int]:
    """Delete rendered ``<rect>`` elements that cover exactly the canvas.

    Returns the number of removed elements, or ``None`` when the canvas size
    is not a pair of positive finite numbers and nothing was attempted.
    """
    for value in (metrics.width, metrics.height, metrics.origin_x, metrics.origin_y):
        if not math.isfinite(value):
            return None
    if metrics.width <= 0 or metrics.height <= 0:
        return None

    tolerance = canvas_tolerance(metrics, tolerance_rel, tolerance_abs)
    matches: List[etree._Element] = [
        node
        for node in iter_rendered(document.root)
        if local_name(node) == "rect" and is_canvas_rect(node, metrics, tolerance)
    ]
    removed = 0
    for node in matches:
        if detach(node):
            removed += 1
            log.debug("Removed canvas-sized <rect id=%r>", node.get("id"))
    log.info("Background pruning removed %d shape(s) (tolerance %.3f)", removed, tolerance)
    return removed


__all__ = ["TOLERANCE_ABS", "TOLERANCE_REL", "canvas_tolerance", "is_canvas_rect", "prune_background_shapes"]
