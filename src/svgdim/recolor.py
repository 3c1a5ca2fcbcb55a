from __future__ import annotations

import logging

from .colors import parse_color
from .ingest import ParsedDocument, iter_rendered, local_name
from .palette import parse_style


log = logging.getLogger(__name__)


RECOLOR_TAGS = frozenset({"path", "rect", "circle", "ellipse", "polygon", "polyline", "line", "use", "g"})


def _set_style_fill(style: str, fill: str) -> str:
    parts = []
    for prop, value in parse_style(style):
        if prop == "fill":
            value = fill
        parts.append(f"{prop}:{value}")
    return ";".join(parts)


def recolor_fills(document: ParsedDocument, fill: str) -> int:
    """Paint every rendered shape with *fill*, leaving ``fill="none"`` shapes alone."""

    if parse_color(fill) is None:
        raise ValueError(f"Fill color {fill!r} is not a recognised color")

    count = 0
    for node in iter_rendered(document.root):
        if local_name(node) not in RECOLOR_TAGS:
            continue
        current = (node.get("fill") or "").strip().lower()
        style = node.get("style") or ""
        style_fill = dict(parse_style(style)).get("fill", "").lower()
        if current == "none" or style_fill == "none":
            continue
        node.set("fill", fill)
        if style_fill:
            node.set("style", _set_style_fill(style, fill))
        count += 1
    log.debug("Recolored %d element(s) with %s", count, fill)
    return count


__all__ = ["RECOLOR_TAGS", "recolor_fills"]
