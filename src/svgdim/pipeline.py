"""Run the whole annotation pass: ingest, measure, analyse colors, prune and overlay.

Every pass recomputes everything from the source string. The only state
that survives between passes is what :class:`AnnotationSession` carries for
the caller: the dimension inputs and the last width/height ratio.
"""
from __future__ import annotations

import dataclasses
import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from .background import TRANSPARENT, overlay_ink, select_background
from .canvas import resolve_metrics
from .colors import Color
from .config import (
    HARDCODED_DEFAULTS,
    background_options_from,
    canvas_default_from,
    overlay_config_from,
    overlay_style_from,
    prune_options_from,
    recolor_options_from,
)
from .ingest import MalformedMarkupError, ParsedDocument, ingest
from .overlay import (
    compose_annotated,
    format_dimension,
    generate_overlay,
    parse_dimension_input,
    render_overlay,
    to_markup,
)
from .palette import PaletteEntry, extract_palette, palette_colors
from .prune import prune_background_shapes
from .recolor import recolor_fills
from .types import Axis, CanvasMetrics, OverlayConfig, OverlayGeometry


log = logging.getLogger(__name__)


@dataclass
class AnnotationRequest:
    source: str
    width: Optional[str] = None
    height: Optional[str] = None
    config: OverlayConfig = field(default_factory=OverlayConfig)
    prune_background: Optional[bool] = None
    fill: Optional[str] = None
    edited: Optional[Axis] = None
    ratio: Optional[float] = None


@dataclass
class AnnotationResult:
    markup: Optional[str] = None
    overlay: Optional[str] = None
    composite: Optional[str] = None
    background: Optional[str] = None
    ink: Optional[str] = None
    geometry: Optional[OverlayGeometry] = None
    metrics: Optional[CanvasMetrics] = None
    palette: List[PaletteEntry] = field(default_factory=list)
    source_palette: List[PaletteEntry] = field(default_factory=list)
    pruned: Optional[int] = None
    recolored: int = 0
    notes: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _positive(text: Optional[str]) -> bool:
    value = parse_dimension_input(text)
    return value is not None and value > 0


def _apply_sizing(document: ParsedDocument, geometry: OverlayGeometry, precision: int) -> None:
    if geometry.width > 0 and math.isfinite(geometry.width):
        document.root.set("width", format_dimension(geometry.width, False, precision))
    if geometry.height > 0 and math.isfinite(geometry.height):
        document.root.set("height", format_dimension(geometry.height, False, precision))


def annotate(request: AnnotationRequest, settings: Optional[Mapping[str, Any]] = None) -> AnnotationResult:
    """Run one synchronous pass.

    Malformed markup yields a result that only carries ``error``; nothing
    else in the pass raises for bad input.
    """
    settings = settings if settings is not None else HARDCODED_DEFAULTS
    config = request.config
    notes: List[str] = []

    try:
        document = ingest(request.source)
    except MalformedMarkupError as exc:
        log.warning("%s", exc)
        return AnnotationResult(error=str(exc))

    metrics = resolve_metrics(document, canvas_default_from(settings))
    source_palette = extract_palette(document)

    prune_opts = prune_options_from(settings)
    do_prune = prune_opts["enabled"] if request.prune_background is None else request.prune_background
    pruned: Optional[int] = None
    if do_prune:
        if metrics.defaulted and prune_opts["skip_defaulted_canvas"]:
            notes.append("background pruning skipped: canvas size fell back to the default")
        else:
            pruned = prune_background_shapes(
                document,
                metrics,
                tolerance_rel=prune_opts["tolerance_rel"],
                tolerance_abs=prune_opts["tolerance_abs"],
            )
            if pruned is None:
                notes.append("background pruning not attempted: canvas size unresolved")
            elif pruned == 0:
                notes.append("no background shapes matched the canvas")

    recolor_opts = recolor_options_from(settings)
    fill = request.fill or (recolor_opts["fill"] if recolor_opts["enabled"] else None)
    recolored = 0
    if fill:
        try:
            recolored = recolor_fills(document, fill)
        except ValueError as exc:
            log.warning("Recolor skipped: %s", exc)
            notes.append(f"recolor skipped: {exc}")

    palette = extract_palette(document) if (pruned or recolored) else source_palette
    if not palette:
        notes.append("no paint colors found")

    background_color: Optional[Color] = None
    if config.transparent_background:
        background = TRANSPARENT
    else:
        ramp, weights = background_options_from(settings)
        background_color = select_background(palette_colors(palette), ramp, weights)
        background = background_color.hex()
    ink = overlay_ink(background_color, config.transparent_background)

    style = overlay_style_from(settings)
    geometry = generate_overlay(
        metrics,
        parse_dimension_input(request.width),
        parse_dimension_input(request.height),
        config,
        edited=request.edited,
        ratio=request.ratio if request.ratio is not None else metrics.width / metrics.height,
        style=style,
    )
    _apply_sizing(document, geometry, style.precision)

    log.info(
        "Annotated %s x %s, background %s, %d color(s)",
        geometry.width_text or "-",
        geometry.height_text or "-",
        background,
        len(palette),
    )
    return AnnotationResult(
        markup=document.to_string(),
        overlay=to_markup(render_overlay(geometry, ink)),
        composite=to_markup(compose_annotated(document, geometry, background, ink)),
        background=background,
        ink=ink,
        geometry=geometry,
        metrics=metrics,
        palette=palette,
        source_palette=source_palette,
        pruned=pruned,
        recolored=recolored,
        notes=notes,
    )


class AnnotationSession:
    """Caller-side state for one open image, with passes serialised by a lock."""

    def __init__(
        self,
        settings: Optional[Mapping[str, Any]] = None,
        config: Optional[OverlayConfig] = None,
    ) -> None:
        self.settings: Mapping[str, Any] = settings if settings is not None else HARDCODED_DEFAULTS
        self.config = config or overlay_config_from(self.settings)
        self.precision = overlay_style_from(self.settings).precision
        self.source: Optional[str] = None
        self.width_text: Optional[str] = None
        self.height_text: Optional[str] = None
        self.ratio: Optional[float] = None
        self.prune_background: Optional[bool] = None
        self.fill: Optional[str] = None
        self.last_result: Optional[AnnotationResult] = None
        self._signature: Optional[str] = None
        self._lock = threading.Lock()

    def set_source(self, source: str) -> AnnotationResult:
        with self._lock:
            self.source = source
            return self._run(None)

    def edit_width(self, text: str) -> AnnotationResult:
        with self._lock:
            self.width_text = text
            return self._run("width")

    def edit_height(self, text: str) -> AnnotationResult:
        with self._lock:
            self.height_text = text
            return self._run("height")

    def update_config(self, **changes: Any) -> AnnotationResult:
        with self._lock:
            previous = self.config
            self.config = dataclasses.replace(self.config, **changes)
            if self.config.lock_aspect_ratio and not previous.lock_aspect_ratio:
                self._capture_ratio()
            return self._run(None)

    def set_options(self, *, prune_background: Optional[bool] = None, fill: Optional[str] = None) -> AnnotationResult:
        with self._lock:
            self.prune_background = prune_background
            self.fill = fill
            return self._run(None)

    def _capture_ratio(self) -> None:
        if _positive(self.width_text) and _positive(self.height_text):
            self.ratio = parse_dimension_input(self.width_text) / parse_dimension_input(self.height_text)

    def _request(self, edited: Optional[Axis]) -> AnnotationRequest:
        return AnnotationRequest(
            source=self.source or "",
            width=self.width_text,
            height=self.height_text,
            config=self.config,
            prune_background=self.prune_background,
            fill=self.fill,
            edited=edited,
            ratio=self.ratio,
        )

    def _run(self, edited: Optional[Axis]) -> AnnotationResult:
        result = annotate(self._request(edited), self.settings)
        if not result.ok or result.metrics is None or result.geometry is None:
            # A failed pass must not leave the previous output on display.
            self.last_result = result
            return result

        signature = result.metrics.signature
        if signature != self._signature:
            self._signature = signature
            self.width_text = format_dimension(result.metrics.width, False, self.precision)
            self.height_text = format_dimension(result.metrics.height, False, self.precision)
            self.ratio = result.metrics.width / result.metrics.height
            result = annotate(self._request(None), self.settings)
        else:
            geometry = result.geometry
            # Text that is not a positive number leaves the other field as typed.
            if self.config.lock_aspect_ratio and _positive(
                self.width_text if edited == "width" else self.height_text
            ):
                if edited == "width":
                    self.height_text = format_dimension(geometry.height, False, self.precision)
                elif edited == "height":
                    self.width_text = format_dimension(geometry.width, False, self.precision)
            self._capture_ratio()

        self.last_result = result
        return result


__all__ = ["AnnotationRequest", "AnnotationResult", "AnnotationSession", "annotate"]
