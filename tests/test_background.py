from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest

from svgdim.background import (
    DEFAULT_RAMP,
    INK_ON_DARK,
    INK_ON_LIGHT,
    INK_ON_TRANSPARENT,
    overlay_ink,
    ramp_colors,
    score_candidates,
    select_background,
)
from svgdim.colors import Color, luminance, parse_color


WHITE = Color(255, 255, 255)
BLACK = Color(0, 0, 0)
RED = Color(255, 0, 0)


def test_empty_palette_uses_second_ramp_entry() -> None:
    assert select_background([]).hex() == "#f5f5f5"
    assert select_background([], ramp=("#111111", "#222222", "#333333")).hex() == "#222222"


def test_white_and_red_artwork_gets_mid_gray() -> None:
    assert select_background([WHITE, RED]).hex() == "#a3a3a3"


def test_red_artwork_gets_light_backdrop() -> None:
    assert select_background([RED]).hex() == "#f5f5f5"


def test_dark_artwork_gets_light_backdrop_and_vice_versa() -> None:
    light = select_background([BLACK])
    dark = select_background([WHITE])
    assert luminance(light) > 0.5
    assert luminance(dark) < 0.5


def test_result_is_always_a_ramp_member() -> None:
    ramp = {c.rgb for c in ramp_colors(DEFAULT_RAMP)}
    palettes = [[WHITE], [BLACK], [RED], [WHITE, RED], [Color(12, 200, 90), Color(80, 80, 250)]]
    for palette in palettes:
        assert select_background(palette).rgb in ramp


@pytest.mark.parametrize(
    "palette",
    [
        [WHITE],
        [BLACK],
        [RED, WHITE],
        [Color(163, 163, 163)],
        [Color(30, 144, 255), Color(255, 215, 0), Color(34, 139, 34)],
    ],
)
def test_selected_candidate_is_not_dominated(palette) -> None:
    scored = score_candidates(palette)
    best = max(scored, key=lambda c: c.score)
    assert select_background(palette) == best.color
    for other in scored:
        dominates = (
            other.min_distance >= best.min_distance
            and other.luminance_closeness >= best.luminance_closeness
            and (
                other.min_distance > best.min_distance
                or other.luminance_closeness > best.luminance_closeness
            )
        )
        assert not dominates


def test_weights_shift_the_choice() -> None:
    # Pure distance: furthest neutral from black is the lightest ramp entry.
    assert select_background([BLACK], weights=(1.0, 0.0)).hex() == "#fafafa"
    # Pure luminance: white art wants the darkest neutral.
    assert select_background([WHITE], weights=(0.0, 1.0)).hex() == "#262626"


def test_ties_resolve_to_earlier_entry() -> None:
    ramp = ("#808080", "#7f7f7f", "#808080")
    scored = score_candidates([Color(0, 0, 0), Color(255, 255, 255)], ramp)
    assert scored[0].score == scored[2].score
    chosen = select_background([Color(0, 0, 0), Color(255, 255, 255)], ramp)
    assert chosen == parse_color(ramp[0])


def test_invalid_ramp_and_weights() -> None:
    with pytest.raises(ValueError):
        ramp_colors(["#fff", "nope"])
    with pytest.raises(ValueError):
        ramp_colors(["#fff"])
    with pytest.raises(ValueError):
        select_background([RED], weights=(0.0, 0.0))
    with pytest.raises(ValueError):
        select_background([RED], weights=(-1.0, 1.0))
    with pytest.raises(ValueError):
        score_candidates([])


def test_overlay_ink() -> None:
    assert overlay_ink(None, transparent=True) == INK_ON_TRANSPARENT
    assert overlay_ink(Color(245, 245, 245), transparent=True) == INK_ON_TRANSPARENT
    assert overlay_ink(Color(38, 38, 38)) == INK_ON_DARK
    assert overlay_ink(Color(92, 92, 92)) == INK_ON_DARK
    assert overlay_ink(Color(163, 163, 163)) == INK_ON_LIGHT
    assert overlay_ink(Color(245, 245, 245)) == INK_ON_LIGHT
