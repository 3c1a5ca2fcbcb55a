"""Pick an achromatic backdrop that stands apart from an image's own palette."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .colors import MAX_DISTANCE, Color, luminance, parse_color, rgb_to_hsl


log = logging.getLogger(__name__)


TRANSPARENT = "transparent"

# Light to dark. The empty-palette default is the second entry.
DEFAULT_RAMP: Tuple[str, ...] = ("#fafafa", "#f5f5f5", "#dbdbdb", "#a3a3a3", "#5c5c5c", "#262626")
DEFAULT_WEIGHTS: Tuple[float, float] = (0.6, 0.4)

INK_ON_TRANSPARENT = "#1f1f1f"
INK_ON_DARK = "#f5f7f9"
INK_ON_LIGHT = "#1b1f24"
DARK_LIGHTNESS = 0.45


@dataclass(frozen=True)
class CandidateScore:
    color: Color
    min_distance: float
    luminance_closeness: float
    score: float


def ramp_colors(ramp: Sequence[str]) -> List[Color]:
    colors: List[Color] = []
    for text in ramp:
        color = parse_color(text)
        if color is None:
            raise ValueError(f"Background ramp entry {text!r} is not a color")
        colors.append(color)
    if len(colors) < 2:
        raise ValueError("Background ramp needs at least two colors")
    return colors


def _check_weights(weights: Sequence[float]) -> Tuple[float, float]:
    if len(weights) != 2:
        raise ValueError("Background weights must be a (distance, luminance) pair")
    w_dist, w_lum = float(weights[0]), float(weights[1])
    if w_dist < 0 or w_lum < 0 or (w_dist == 0 and w_lum == 0):
        raise ValueError("Background weights must be non-negative and not both zero")
    return w_dist, w_lum


def score_candidates(
    palette: Sequence[Color],
    ramp: Sequence[str] = DEFAULT_RAMP,
    weights: Sequence[float] = DEFAULT_WEIGHTS,
) -> List[CandidateScore]:
    """Score every ramp color against *palette* (which must not be empty)."""

    if not palette:
        raise ValueError("Cannot score candidates against an empty palette")
    w_dist, w_lum = _check_weights(weights)
    candidates = ramp_colors(ramp)

    cand_rgb = np.array([c.rgb for c in candidates], dtype=float)
    pal_rgb = np.array([c.rgb for c in palette], dtype=float)
    dist = np.linalg.norm(cand_rgb[:, None, :] - pal_rgb[None, :, :], axis=2)
    min_dist = dist.min(axis=1)

    target = 1.0 - float(np.mean([luminance(c) for c in palette]))
    cand_lum = np.array([luminance(c) for c in candidates], dtype=float)
    closeness = 1.0 - np.abs(cand_lum - target)

    scores = w_dist * (min_dist / MAX_DISTANCE) + w_lum * closeness
    return [
        CandidateScore(
            color=candidates[i],
            min_distance=float(min_dist[i]),
            luminance_closeness=float(closeness[i]),
            score=float(scores[i]),
        )
        for i in range(len(candidates))
    ]


def select_background(
    palette: Sequence[Color],
    ramp: Sequence[str] = DEFAULT_RAMP,
    weights: Sequence[float] = DEFAULT_WEIGHTS,
) -> Color:
    """Return the best-scoring neutral for *palette*.

    Ties resolve to the earlier ramp entry. An empty palette yields the
    second-lightest ramp color.
    """
    if not palette:
        return ramp_colors(ramp)[1]
    scored = score_candidates(palette, ramp, weights)
    best = scored[0]
    for candidate in scored[1:]:
        if candidate.score > best.score:
            best = candidate
    log.debug(
        "Background %s (score=%.4f, min_distance=%.1f) for %d palette color(s)",
        best.color.hex(),
        best.score,
        best.min_distance,
        len(palette),
    )
    return best.color


def overlay_ink(background: Optional[Color], transparent: bool = False) -> str:
    """Stroke/text color for the dimension overlay drawn above *background*."""

    if transparent or background is None:
        return INK_ON_TRANSPARENT
    _, _, lightness = rgb_to_hsl(background)
    if lightness < DARK_LIGHTNESS:
        return INK_ON_DARK
    return INK_ON_LIGHT


__all__ = [
    "CandidateScore",
    "DEFAULT_RAMP",
    "DEFAULT_WEIGHTS",
    "TRANSPARENT",
    "overlay_ink",
    "ramp_colors",
    "score_candidates",
    "select_background",
]
