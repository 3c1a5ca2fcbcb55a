from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, MutableMapping, Optional, Sequence, Tuple

import yaml

from .background import DEFAULT_RAMP, DEFAULT_WEIGHTS
from .canvas import DEFAULT_CANVAS_SIZE
from .overlay import OverlayStyle
from .prune import TOLERANCE_ABS, TOLERANCE_REL
from .types import OverlayConfig


PACKAGE_ROOT = Path(__file__).resolve().parent
DEFAULT_CONFIG_PATH = PACKAGE_ROOT / "configs" / "default.yaml"


HARDCODED_DEFAULTS: Dict[str, Any] = {
    "overlay": {
        "unit": "px",
        "lock_aspect_ratio": True,
        "transparent_background": False,
        "show_lines": True,
        "show_labels": False,
        "round_values": False,
        "precision": 2,
        "margin_ratio": 0.15,
        "min_margin": 20.0,
        "line_offset_ratio": 0.6,
        "overshoot_ratio": 0.2,
        "label_offset_ratio": 0.2,
        "stroke": {"ratio": 0.012, "min": 1.1, "max": 4.0},
        "font": {"ratio": 0.1, "min": 12.0, "max": 26.0},
        "arrow": {"length": 5.0, "half_width": 2.0},
        "labels": {"width": "width", "height": "height"},
    },
    "canvas": {
        "default_width": DEFAULT_CANVAS_SIZE[0],
        "default_height": DEFAULT_CANVAS_SIZE[1],
    },
    "background": {
        "ramp": list(DEFAULT_RAMP),
        "weights": {"distance": DEFAULT_WEIGHTS[0], "luminance": DEFAULT_WEIGHTS[1]},
    },
    "prune": {
        "enabled": False,
        "tolerance_rel": TOLERANCE_REL,
        "tolerance_abs": TOLERANCE_ABS,
        "skip_defaulted_canvas": True,
    },
    "recolor": {
        "enabled": False,
        "fill": "#3b82f6",
    },
}


def load_config(path: str) -> dict:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    return yaml.safe_load(p.read_text(encoding="utf-8"))


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key in base:
        value = base[key]
        if isinstance(value, Mapping):
            result[key] = copy.deepcopy(value)
        elif isinstance(value, list):
            result[key] = list(value)
        else:
            result[key] = value
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)  # type: ignore[arg-type]
        else:
            result[key] = value
    return result


def set_nested(config: MutableMapping[str, Any], path: Sequence[str], value: Any) -> None:
    if not path:
        return
    cursor: MutableMapping[str, Any] = config
    for key in path[:-1]:
        next_value = cursor.get(key)
        if not isinstance(next_value, MutableMapping):
            next_value = {}
            cursor[key] = next_value
        cursor = next_value
    cursor[path[-1]] = value


def parse_override(entry: str) -> Tuple[Tuple[str, ...], Any]:
    """Split ``section.key=value``; the value is read as YAML."""

    if "=" not in entry:
        raise ValueError("--opts expects 'path=value'")
    raw_path, raw_value = entry.split("=", 1)
    path = tuple(part.strip() for part in raw_path.split(".") if part.strip())
    if not path:
        raise ValueError("--opts needs a key path, e.g. overlay.min_margin=12")
    try:
        value = yaml.safe_load(raw_value)
    except yaml.YAMLError as exc:
        raise ValueError(f"--opts {raw_path}: value could not be parsed ({exc})") from exc
    return path, value


def load_settings(path: Optional[Path] = None, overrides: Iterable[str] = ()) -> Dict[str, Any]:
    """Defaults, then the YAML file at *path* (if given), then ``--opts`` overrides."""

    raw_cfg: Dict[str, Any] = {}
    if path is not None:
        loaded = load_config(str(path))
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, MutableMapping):
            raise ValueError("Config root must be a mapping")
        raw_cfg = dict(loaded)
    settings = deep_merge(HARDCODED_DEFAULTS, raw_cfg)
    for entry in overrides:
        key_path, value = parse_override(entry)
        set_nested(settings, key_path, value)
    return settings


def _section(settings: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = settings.get(name)
    if isinstance(value, Mapping):
        return value
    return HARDCODED_DEFAULTS[name]


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Config value {key} must be a number, got {value!r}") from exc


def overlay_config_from(settings: Mapping[str, Any]) -> OverlayConfig:
    section = _section(settings, "overlay")
    return OverlayConfig(
        unit=str(section.get("unit", "px")),  # type: ignore[arg-type]
        lock_aspect_ratio=bool(section.get("lock_aspect_ratio", True)),
        transparent_background=bool(section.get("transparent_background", False)),
        show_lines=bool(section.get("show_lines", True)),
        show_labels=bool(section.get("show_labels", False)),
        round_values=bool(section.get("round_values", False)),
    )


def overlay_style_from(settings: Mapping[str, Any]) -> OverlayStyle:
    section = _section(settings, "overlay")
    stroke = section.get("stroke") or {}
    font = section.get("font") or {}
    arrow = section.get("arrow") or {}
    labels = section.get("labels") or {}
    defaults = OverlayStyle()
    return OverlayStyle(
        margin_ratio=_as_float(section.get("margin_ratio", defaults.margin_ratio), "overlay.margin_ratio"),
        min_margin=_as_float(section.get("min_margin", defaults.min_margin), "overlay.min_margin"),
        line_offset_ratio=_as_float(
            section.get("line_offset_ratio", defaults.line_offset_ratio), "overlay.line_offset_ratio"
        ),
        overshoot_ratio=_as_float(section.get("overshoot_ratio", defaults.overshoot_ratio), "overlay.overshoot_ratio"),
        label_offset_ratio=_as_float(
            section.get("label_offset_ratio", defaults.label_offset_ratio), "overlay.label_offset_ratio"
        ),
        stroke_ratio=_as_float(stroke.get("ratio", defaults.stroke_ratio), "overlay.stroke.ratio"),
        stroke_min=_as_float(stroke.get("min", defaults.stroke_min), "overlay.stroke.min"),
        stroke_max=_as_float(stroke.get("max", defaults.stroke_max), "overlay.stroke.max"),
        font_ratio=_as_float(font.get("ratio", defaults.font_ratio), "overlay.font.ratio"),
        font_min=_as_float(font.get("min", defaults.font_min), "overlay.font.min"),
        font_max=_as_float(font.get("max", defaults.font_max), "overlay.font.max"),
        arrow_length=_as_float(arrow.get("length", defaults.arrow_length), "overlay.arrow.length"),
        arrow_half_width=_as_float(arrow.get("half_width", defaults.arrow_half_width), "overlay.arrow.half_width"),
        precision=int(section.get("precision", defaults.precision)),
        width_word=str(labels.get("width", defaults.width_word)),
        height_word=str(labels.get("height", defaults.height_word)),
    )


def canvas_default_from(settings: Mapping[str, Any]) -> Tuple[float, float]:
    section = _section(settings, "canvas")
    width = _as_float(section.get("default_width", DEFAULT_CANVAS_SIZE[0]), "canvas.default_width")
    height = _as_float(section.get("default_height", DEFAULT_CANVAS_SIZE[1]), "canvas.default_height")
    if width <= 0 or height <= 0:
        raise ValueError("canvas.default_width/default_height must be positive")
    return width, height


def background_options_from(settings: Mapping[str, Any]) -> Tuple[Tuple[str, ...], Tuple[float, float]]:
    section = _section(settings, "background")
    ramp = section.get("ramp") or list(DEFAULT_RAMP)
    if isinstance(ramp, str) or not isinstance(ramp, Sequence):
        raise ValueError("background.ramp must be a list of colors")
    weights = section.get("weights") or {}
    w_dist = _as_float(weights.get("distance", DEFAULT_WEIGHTS[0]), "background.weights.distance")
    w_lum = _as_float(weights.get("luminance", DEFAULT_WEIGHTS[1]), "background.weights.luminance")
    return tuple(str(c) for c in ramp), (w_dist, w_lum)


def prune_options_from(settings: Mapping[str, Any]) -> Dict[str, Any]:
    section = _section(settings, "prune")
    return {
        "enabled": bool(section.get("enabled", False)),
        "tolerance_rel": _as_float(section.get("tolerance_rel", TOLERANCE_REL), "prune.tolerance_rel"),
        "tolerance_abs": _as_float(section.get("tolerance_abs", TOLERANCE_ABS), "prune.tolerance_abs"),
        "skip_defaulted_canvas": bool(section.get("skip_defaulted_canvas", True)),
    }


def recolor_options_from(settings: Mapping[str, Any]) -> Dict[str, Any]:
    section = _section(settings, "recolor")
    return {
        "enabled": bool(section.get("enabled", False)),
        "fill": str(section.get("fill", "#3b82f6")),
    }


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "HARDCODED_DEFAULTS",
    "background_options_from",
    "canvas_default_from",
    "deep_merge",
    "load_config",
    "load_settings",
    "overlay_config_from",
    "overlay_style_from",
    "parse_override",
    "prune_options_from",
    "recolor_options_from",
    "set_nested",
]
