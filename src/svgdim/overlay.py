"""Engineering-drawing style dimension overlays for an SVG canvas.

Geometry is computed in the image's own coordinate space (viewBox origin and
canvas size) so the overlay composites 1:1 above the source. The numbers
printed on the labels are the caller's requested dimensions; no unit
conversion happens here.
"""
from __future__ import annotations

import copy
import logging
import math
import re
from dataclasses import dataclass
from typing import List, Optional

from lxml import etree

from .background import TRANSPARENT
from .ingest import SVG_NS, XLINK_NS, ParsedDocument
from .types import (
    Arrowhead,
    Axis,
    CanvasMetrics,
    LabelPlacement,
    OverlayConfig,
    OverlayGeometry,
    OverlayLine,
    Segment,
)


log = logging.getLogger(__name__)


_INPUT_NUMBER_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


@dataclass(frozen=True)
class OverlayStyle:
    margin_ratio: float = 0.15
    min_margin: float = 20.0
    line_offset_ratio: float = 0.6
    overshoot_ratio: float = 0.2
    label_offset_ratio: float = 0.2
    stroke_ratio: float = 0.012
    stroke_min: float = 1.1
    stroke_max: float = 4.0
    font_ratio: float = 0.1
    font_min: float = 12.0
    font_max: float = 26.0
    arrow_length: float = 5.0
    arrow_half_width: float = 2.0
    precision: int = 2
    width_word: str = "width"
    height_word: str = "height"


DEFAULT_STYLE = OverlayStyle()


def _usable(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _format_float(value: Optional[float], precision: int = 3) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return ""
    fmt = f"{{:.{precision}f}}"
    return fmt.format(value)


def parse_dimension_input(text: Optional[str]) -> Optional[float]:
    """Read the leading decimal number of free-form input such as ``"120.5 px"``."""

    if text is None:
        return None
    match = _INPUT_NUMBER_RE.match(str(text))
    if not match:
        return None
    value = float(match.group(1))
    return value if math.isfinite(value) else None


def format_dimension(value: Optional[float], round_values: bool = False, precision: int = 2) -> str:
    """Render a dimension: half-up integer when rounding, else trimmed fixed-point."""

    if value is None or not math.isfinite(value):
        return ""
    if round_values:
        return str(int(math.floor(value + 0.5)))
    text = f"{value:.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


def dimension_label(
    value: float,
    axis: Axis,
    config: OverlayConfig,
    style: OverlayStyle = DEFAULT_STYLE,
) -> str:
    if not _usable(value):
        return ""
    number = format_dimension(value, config.round_values, style.precision)
    prefix = ""
    if config.show_labels:
        prefix = f"{style.width_word if axis == 'width' else style.height_word} "
    return f"{prefix}{number}{config.unit}"


def generate_overlay(
    metrics: CanvasMetrics,
    requested_width: Optional[float],
    requested_height: Optional[float],
    config: OverlayConfig,
    *,
    edited: Optional[Axis] = None,
    ratio: Optional[float] = None,
    style: OverlayStyle = DEFAULT_STYLE,
) -> OverlayGeometry:
    """Compute dimension lines, arrowheads and labels for one canvas.

    Requested dimensions that are missing, non-finite or not positive fall
    back to the canvas size. With ``lock_aspect_ratio`` and an *edited* axis,
    the other axis follows from *ratio* (width / height) carried over from
    the previous pass. Never fails: a degenerate canvas draws with 1 unit
    sides and the minimum margin.
    """
    width = requested_width if _usable(requested_width) else metrics.width
    height = requested_height if _usable(requested_height) else metrics.height

    if config.lock_aspect_ratio and edited is not None and _usable(ratio):
        if edited == "width" and _usable(width):
            height = width / ratio
        elif edited == "height" and _usable(height):
            width = height * ratio

    display_w = width if _usable(width) else 1.0
    display_h = height if _usable(height) else 1.0
    canvas_w = metrics.width if _usable(metrics.width) else 1.0
    canvas_h = metrics.height if _usable(metrics.height) else 1.0
    ox = metrics.origin_x if math.isfinite(metrics.origin_x) else 0.0
    oy = metrics.origin_y if math.isfinite(metrics.origin_y) else 0.0

    max_side = max(canvas_w, canvas_h)
    margin = max(max_side * style.margin_ratio, style.min_margin)
    stroke_width = _clamp(max_side * style.stroke_ratio, style.stroke_min, style.stroke_max)
    font_size = _clamp(max_side * style.font_ratio, style.font_min, style.font_max)

    width_line_y = oy - margin * style.line_offset_ratio
    height_line_x = ox - margin * style.line_offset_ratio
    overshoot = margin * style.overshoot_ratio
    label_offset = margin * style.label_offset_ratio
    right = ox + canvas_w
    bottom = oy + canvas_h

    geometry = OverlayGeometry(
        width=float(width),
        height=float(height),
        width_text=dimension_label(display_w, "width", config, style),
        height_text=dimension_label(display_h, "height", config, style),
        margin=margin,
        stroke_width=stroke_width,
        font_size=font_size,
        view_box=(ox - margin, oy - margin, canvas_w + 2 * margin, canvas_h + 2 * margin),
        canvas_box=(ox, oy, canvas_w, canvas_h),
    )
    if not config.show_lines:
        return geometry

    geometry.lines = [
        OverlayLine(Segment(ox, oy, ox, width_line_y - overshoot), "extension", "width"),
        OverlayLine(Segment(right, oy, right, width_line_y - overshoot), "extension", "width"),
        OverlayLine(Segment(ox, oy, height_line_x - overshoot, oy), "extension", "height"),
        OverlayLine(Segment(ox, bottom, height_line_x - overshoot, bottom), "extension", "height"),
        OverlayLine(Segment(ox, width_line_y, right, width_line_y), "dimension", "width"),
        OverlayLine(Segment(height_line_x, oy, height_line_x, bottom), "dimension", "height"),
    ]

    length = stroke_width * style.arrow_length
    half_width = stroke_width * style.arrow_half_width
    geometry.arrowheads = [
        Arrowhead(ox, width_line_y, 180.0, length, half_width),
        Arrowhead(right, width_line_y, 0.0, length, half_width),
        Arrowhead(height_line_x, oy, -90.0, length, half_width),
        Arrowhead(height_line_x, bottom, 90.0, length, half_width),
    ]

    labels: List[LabelPlacement] = []
    if geometry.width_text:
        labels.append(
            LabelPlacement(ox + canvas_w / 2.0, width_line_y - label_offset, 0.0, geometry.width_text, "width")
        )
    if geometry.height_text:
        labels.append(
            LabelPlacement(height_line_x - label_offset, oy + canvas_h / 2.0, -90.0, geometry.height_text, "height")
        )
    geometry.labels = labels
    log.debug(
        "Overlay %s x %s (margin=%.2f, stroke=%.2f, font=%.1f)",
        geometry.width_text,
        geometry.height_text,
        margin,
        stroke_width,
        font_size,
    )
    return geometry


def _svg(tag: str) -> str:
    return f"{{{SVG_NS}}}{tag}"


def _append_overlay_content(parent: etree._Element, geometry: OverlayGeometry, ink: str) -> None:
    if geometry.lines:
        line_group = etree.SubElement(
            parent,
            _svg("g"),
            id="dimension-lines",
            stroke=ink,
            fill="none",
            **{
                "stroke-width": _format_float(geometry.stroke_width, 3),
                "stroke-linecap": "square",
            },
        )
        for index, line in enumerate(geometry.lines):
            seg = line.segment
            etree.SubElement(
                line_group,
                _svg("line"),
                x1=_format_float(seg.x1, 3),
                y1=_format_float(seg.y1, 3),
                x2=_format_float(seg.x2, 3),
                y2=_format_float(seg.y2, 3),
                **{"class": f"{line.kind}-line {line.axis}", "data-index": str(index)},
            )

    if geometry.arrowheads:
        arrow_group = etree.SubElement(parent, _svg("g"), id="dimension-arrows", fill=ink, stroke="none")
        for arrow in geometry.arrowheads:
            d = (
                f"M0,0 L{_format_float(-arrow.length, 3)},{_format_float(-arrow.half_width, 3)} "
                f"L{_format_float(-arrow.length, 3)},{_format_float(arrow.half_width, 3)} Z"
            )
            etree.SubElement(
                arrow_group,
                _svg("path"),
                d=d,
                transform=(
                    f"translate({_format_float(arrow.x, 3)},{_format_float(arrow.y, 3)}) "
                    f"rotate({_format_float(arrow.angle_deg, 1)})"
                ),
            )

    for label in geometry.labels:
        attrs = {
            "x": _format_float(label.x, 3),
            "y": _format_float(label.y, 3),
            "fill": ink,
            "font-size": _format_float(geometry.font_size, 2),
            "text-anchor": "middle",
            "dominant-baseline": "central",
            "class": f"dimension-label {label.axis}",
        }
        if label.rotation:
            attrs["transform"] = (
                f"rotate({_format_float(label.rotation, 1)} "
                f"{_format_float(label.x, 3)} {_format_float(label.y, 3)})"
            )
        text_node = etree.SubElement(parent, _svg("text"), **attrs)
        text_node.text = label.text


def _view_box_attr(geometry: OverlayGeometry) -> str:
    return " ".join(_format_float(v, 3) for v in geometry.view_box)


def render_overlay(geometry: OverlayGeometry, ink: str) -> etree._Element:
    """Standalone ``<svg>`` fragment holding only the overlay."""

    root = etree.Element(
        _svg("svg"),
        nsmap={None: SVG_NS},
        viewBox=_view_box_attr(geometry),
        preserveAspectRatio="xMidYMid meet",
        style="pointer-events:none",
        **{"class": "dimension-overlay"},
    )
    _append_overlay_content(root, geometry, ink)
    return root


def compose_annotated(
    document: ParsedDocument,
    geometry: OverlayGeometry,
    background: str,
    ink: str,
) -> etree._Element:
    """One SVG with backdrop, the sanitized image and the overlay stacked."""

    root = etree.Element(
        _svg("svg"),
        nsmap={None: SVG_NS, "xlink": XLINK_NS},
        viewBox=_view_box_attr(geometry),
        preserveAspectRatio="xMidYMid meet",
    )
    vx, vy, vw, vh = geometry.view_box
    if background != TRANSPARENT:
        etree.SubElement(
            root,
            _svg("rect"),
            id="backdrop",
            x=_format_float(vx, 3),
            y=_format_float(vy, 3),
            width=_format_float(vw, 3),
            height=_format_float(vh, 3),
            fill=background,
        )

    image = copy.deepcopy(document.root)
    ox, oy, cw, ch = geometry.canvas_box
    image.set("x", _format_float(ox, 3))
    image.set("y", _format_float(oy, 3))
    image.set("width", _format_float(cw, 3))
    image.set("height", _format_float(ch, 3))
    root.append(image)

    overlay_group = etree.SubElement(root, _svg("g"), id="dimension-overlay", style="pointer-events:none")
    _append_overlay_content(overlay_group, geometry, ink)
    return root


def to_markup(element: etree._Element) -> str:
    return etree.tostring(element, encoding="unicode")


__all__ = [
    "DEFAULT_STYLE",
    "OverlayStyle",
    "compose_annotated",
    "dimension_label",
    "format_dimension",
    "generate_overlay",
    "parse_dimension_input",
    "render_overlay",
    "to_markup",
]
