from __future__ import annotations

import logging
import math
import re
from typing import Optional, Tuple

from .ingest import ParsedDocument
from .types import CanvasMetrics


log = logging.getLogger(__name__)


DEFAULT_CANVAS_SIZE: Tuple[float, float] = (320.0, 180.0)

_LENGTH_RE = re.compile(r"^([-+]?(?:\d*\.\d+|\d+\.?\d*)(?:[eE][-+]?\d+)?)\s*([a-zA-Z]*)$")
_VIEWBOX_SPLIT_RE = re.compile(r"[\s,]+")


def parse_length(value: Optional[str]) -> Optional[float]:
    """Return the number of a ``width``/``height`` attribute.

    A trailing unit suffix is accepted but not converted. Percentages,
    non-numeric text and non-positive values return ``None``.
    """
    if value is None:
        return None
    text = value.strip()
    if not text or text.endswith("%"):
        return None
    match = _LENGTH_RE.match(text)
    if not match:
        return None
    number = float(match.group(1))
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def parse_viewbox(value: Optional[str]) -> Optional[Tuple[float, float, float, float]]:
    if not value:
        return None
    parts = [p for p in _VIEWBOX_SPLIT_RE.split(value.strip()) if p]
    if len(parts) != 4:
        return None
    try:
        numbers = [float(p) for p in parts]
    except ValueError:
        return None
    if not all(math.isfinite(n) for n in numbers):
        return None
    min_x, min_y, width, height = numbers
    if width <= 0 or height <= 0:
        return None
    return min_x, min_y, width, height


def _format_number(value: float) -> str:
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"


def resolve_metrics(
    document: ParsedDocument,
    default_size: Tuple[float, float] = DEFAULT_CANVAS_SIZE,
) -> CanvasMetrics:
    """Resolve the canvas size and origin of *document*.

    Priority: explicit ``width``/``height`` attributes, then the viewBox, then
    *default_size*. When the root carries no usable viewBox one is written
    back from the resolved values so later consumers share the same
    coordinate space. Never fails.
    """
    root = document.root
    width = parse_length(root.get("width"))
    height = parse_length(root.get("height"))
    view_box = parse_viewbox(root.get("viewBox"))

    width_from = "attributes" if width is not None else None
    height_from = "attributes" if height is not None else None
    origin_x, origin_y = 0.0, 0.0

    if view_box is not None:
        origin_x, origin_y = view_box[0], view_box[1]
        if width is None:
            width = view_box[2]
            width_from = "viewbox"
        if height is None:
            height = view_box[3]
            height_from = "viewbox"

    default_w, default_h = default_size
    if width is None:
        width = float(default_w)
        width_from = "default"
    if height is None:
        height = float(default_h)
        height_from = "default"

    if view_box is None:
        synthesized = f"0 0 {_format_number(width)} {_format_number(height)}"
        root.set("viewBox", synthesized)
        log.debug("No usable viewBox; wrote viewBox=%r", synthesized)

    source = width_from if width_from == height_from else "mixed"
    defaulted = "default" in (width_from, height_from)
    if defaulted:
        log.debug("Canvas size fell back to default %sx%s", default_w, default_h)

    return CanvasMetrics(
        width=float(width),
        height=float(height),
        origin_x=float(origin_x),
        origin_y=float(origin_y),
        source=str(source),
        defaulted=defaulted,
    )


__all__ = ["DEFAULT_CANVAS_SIZE", "parse_length", "parse_viewbox", "resolve_metrics"]
