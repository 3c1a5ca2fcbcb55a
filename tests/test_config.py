from __future__ import annotations

import sys
import textwrap
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest

from svgdim.background import DEFAULT_RAMP
from svgdim.config import (
    DEFAULT_CONFIG_PATH,
    HARDCODED_DEFAULTS,
    background_options_from,
    canvas_default_from,
    deep_merge,
    load_config,
    load_settings,
    overlay_config_from,
    overlay_style_from,
    parse_override,
    prune_options_from,
    recolor_options_from,
)


def test_shipped_yaml_matches_hardcoded_defaults() -> None:
    shipped = load_config(str(DEFAULT_CONFIG_PATH))
    assert deep_merge(HARDCODED_DEFAULTS, shipped) == HARDCODED_DEFAULTS


def test_defaults_round_trip_through_accessors() -> None:
    settings = load_settings()
    config = overlay_config_from(settings)
    style = overlay_style_from(settings)

    assert config.unit == "px"
    assert config.lock_aspect_ratio is True
    assert style.min_margin == 20.0
    assert style.precision == 2
    assert canvas_default_from(settings) == (320.0, 180.0)
    assert background_options_from(settings) == (DEFAULT_RAMP, (0.6, 0.4))
    assert prune_options_from(settings)["enabled"] is False
    assert recolor_options_from(settings)["fill"] == "#3b82f6"


def test_yaml_file_and_overrides_layer(tmp_path: Path) -> None:
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        textwrap.dedent(
            """
            overlay:
              unit: mm
              stroke: {max: 2.5}
            prune:
              enabled: true
            """
        ),
        encoding="utf-8",
    )
    settings = load_settings(cfg, ["overlay.min_margin=12", "background.weights.luminance=0.7"])

    assert overlay_config_from(settings).unit == "mm"
    style = overlay_style_from(settings)
    assert style.stroke_max == 2.5
    assert style.stroke_min == 1.1
    assert style.min_margin == 12.0
    assert prune_options_from(settings)["enabled"] is True
    assert prune_options_from(settings)["tolerance_abs"] == 0.5
    assert background_options_from(settings)[1] == (0.6, 0.7)
    assert HARDCODED_DEFAULTS["overlay"]["stroke"]["max"] == 4.0


def test_parse_override() -> None:
    assert parse_override("overlay.show_labels=true") == (("overlay", "show_labels"), True)
    assert parse_override("background.ramp=['#000', '#fff']") == (("background", "ramp"), ["#000", "#fff"])
    with pytest.raises(ValueError):
        parse_override("overlay.show_labels")
    with pytest.raises(ValueError):
        parse_override("=3")


def test_invalid_values_raise_value_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        overlay_config_from(load_settings(overrides=["overlay.unit=cm"]))
    with pytest.raises(ValueError):
        overlay_style_from(load_settings(overrides=["overlay.min_margin=wide"]))
    with pytest.raises(ValueError):
        canvas_default_from(load_settings(overrides=["canvas.default_width=0"]))
    with pytest.raises(ValueError):
        background_options_from(load_settings(overrides=["background.ramp=gray"]))

    bad_root = tmp_path / "list.yaml"
    bad_root.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(bad_root)
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.yaml")
