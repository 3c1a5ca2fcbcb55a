from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Sequence, Tuple

from lxml import etree

from .colors import Color, parse_color
from .ingest import ParsedDocument, iter_rendered, local_name


log = logging.getLogger(__name__)


PAINT_PROPERTIES: Tuple[str, ...] = ("fill", "stroke", "stop-color")


@dataclass(frozen=True)
class PaletteEntry:
    color: Color
    source_text: str
    element: str
    prop: str


def parse_style(style: str) -> List[Tuple[str, str]]:
    """Split an inline ``style`` declaration list into ``(property, value)`` pairs."""

    declarations: List[Tuple[str, str]] = []
    for chunk in style.split(";"):
        if ":" not in chunk:
            continue
        prop, value = chunk.split(":", 1)
        prop = prop.strip().lower()
        value = value.strip()
        if value.lower().endswith("!important"):
            value = value[: -len("!important")].strip()
        if prop and value:
            declarations.append((prop, value))
    return declarations


def _paint_candidates(node: etree._Element) -> Iterator[Tuple[str, str]]:
    for prop in PAINT_PROPERTIES:
        value = node.get(prop)
        if value:
            yield prop, value
    style = node.get("style")
    if style:
        for prop, value in parse_style(style):
            if prop in PAINT_PROPERTIES:
                yield prop, value


def extract_palette(document: ParsedDocument) -> List[PaletteEntry]:
    """Collect the distinct paint colors used by rendered elements.

    Order is first-seen document order; two spellings of the same RGB triple
    (alpha ignored) produce a single entry. Values that are ``none``, paint
    server references or otherwise unparseable are skipped.
    """
    seen: Dict[Tuple[int, int, int], PaletteEntry] = {}
    skipped = 0
    for node in iter_rendered(document.root):
        for prop, value in _paint_candidates(node):
            color = parse_color(value)
            if color is None:
                skipped += 1
                log.debug("Skipping %s=%r on <%s>", prop, value, local_name(node))
                continue
            if color.rgb in seen:
                continue
            seen[color.rgb] = PaletteEntry(
                color=color,
                source_text=value.strip(),
                element=local_name(node),
                prop=prop,
            )
    log.debug("Palette: %d color(s), %d value(s) skipped", len(seen), skipped)
    return list(seen.values())


def palette_colors(entries: Sequence[PaletteEntry]) -> List[Color]:
    return [entry.color for entry in entries]


__all__ = ["PAINT_PROPERTIES", "PaletteEntry", "extract_palette", "palette_colors", "parse_style"]
