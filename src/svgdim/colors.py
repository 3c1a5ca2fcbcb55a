"""Color values parsed from SVG paint properties.

Accepted notations are hex (``#rgb``, ``#rgba``, ``#rrggbb``, ``#rrggbbaa``),
``rgb()``/``rgba()``, ``hsl()``/``hsla()`` and CSS named colors. Named colors
resolve through Pillow's static CSS color table. Anything else parses to
``None`` so callers can skip it without treating it as an error.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from PIL import ImageColor


_HEX_RE = re.compile(r"^#([0-9a-f]{3,4}|[0-9a-f]{6}|[0-9a-f]{8})$")
_FUNC_RE = re.compile(r"^(rgba?|hsla?)\(\s*([^()]*)\)$")
_NUMBER_RE = re.compile(r"^[-+]?(?:\d*\.\d+|\d+\.?)(?:e[-+]?\d+)?$")

# Paint keywords that never name a concrete color.
_NON_COLORS = {"none", "transparent", "currentcolor", "inherit", "initial", "unset", "context-fill", "context-stroke"}

MAX_DISTANCE = math.sqrt(3.0) * 255.0


@dataclass(frozen=True)
class Color:
    r: int
    g: int
    b: int
    alpha: Optional[float] = None

    def __post_init__(self) -> None:
        for name in ("r", "g", "b"):
            value = getattr(self, name)
            if not 0 <= value <= 255:
                raise ValueError(f"Channel {name}={value} outside [0, 255]")
        if self.alpha is not None and not 0.0 <= self.alpha <= 1.0:
            raise ValueError(f"Alpha {self.alpha} outside [0, 1]")

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def hex(self) -> str:
        return to_hex(self)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _number(token: str) -> Optional[float]:
    if not _NUMBER_RE.match(token):
        return None
    value = float(token)
    if not math.isfinite(value):
        return None
    return value


def _percent_or_number(token: str) -> Tuple[Optional[float], bool]:
    if token.endswith("%"):
        return _number(token[:-1]), True
    return _number(token), False


def _parse_alpha(token: Optional[str]) -> Optional[float]:
    if token is None:
        return None
    value, is_pct = _percent_or_number(token)
    if value is None:
        raise ValueError(f"bad alpha {token!r}")
    if is_pct:
        value /= 100.0
    return _clamp(value, 0.0, 1.0)


def _split_args(body: str) -> Tuple[List[str], Optional[str]]:
    alpha: Optional[str] = None
    if "/" in body:
        body, alpha = body.split("/", 1)
        alpha = alpha.strip()
    tokens = [tok for tok in re.split(r"[\s,]+", body.strip()) if tok]
    if alpha is None and len(tokens) == 4:
        alpha = tokens.pop()
    return tokens, alpha


def _parse_hex(digits: str) -> Color:
    if len(digits) in (3, 4):
        digits = "".join(ch * 2 for ch in digits)
    r = int(digits[0:2], 16)
    g = int(digits[2:4], 16)
    b = int(digits[4:6], 16)
    alpha = None
    if len(digits) == 8:
        alpha = int(digits[6:8], 16) / 255.0
    return Color(r, g, b, alpha)


def _parse_rgb(tokens: List[str], alpha: Optional[str]) -> Optional[Color]:
    if len(tokens) != 3:
        return None
    channels = []
    for token in tokens:
        value, is_pct = _percent_or_number(token)
        if value is None:
            return None
        if is_pct:
            value = value * 255.0 / 100.0
        channels.append(_round_half_up(_clamp(value, 0.0, 255.0)))
    return Color(channels[0], channels[1], channels[2], _parse_alpha(alpha))


def hsl_to_rgb(h: float, s: float, l: float) -> Tuple[int, int, int]:
    """Convert hue in degrees, saturation and lightness in [0, 1] to 8-bit RGB."""

    h = h % 360.0
    c = (1.0 - abs(2.0 * l - 1.0)) * s
    x = c * (1.0 - abs((h / 60.0) % 2.0 - 1.0))
    m = l - c / 2.0
    if h < 60:
        rp, gp, bp = c, x, 0.0
    elif h < 120:
        rp, gp, bp = x, c, 0.0
    elif h < 180:
        rp, gp, bp = 0.0, c, x
    elif h < 240:
        rp, gp, bp = 0.0, x, c
    elif h < 300:
        rp, gp, bp = x, 0.0, c
    else:
        rp, gp, bp = c, 0.0, x
    return (
        _round_half_up(_clamp(rp + m, 0.0, 1.0) * 255.0),
        _round_half_up(_clamp(gp + m, 0.0, 1.0) * 255.0),
        _round_half_up(_clamp(bp + m, 0.0, 1.0) * 255.0),
    )


def rgb_to_hsl(color: Color) -> Tuple[float, float, float]:
    rn, gn, bn = (channel / 255.0 for channel in color.rgb)
    hi = max(rn, gn, bn)
    lo = min(rn, gn, bn)
    delta = hi - lo
    lightness = (hi + lo) / 2.0
    if delta == 0:
        return 0.0, 0.0, lightness
    saturation = delta / (1.0 - abs(2.0 * lightness - 1.0))
    if hi == rn:
        hue = ((gn - bn) / delta) % 6.0
    elif hi == gn:
        hue = (bn - rn) / delta + 2.0
    else:
        hue = (rn - gn) / delta + 4.0
    return (hue * 60.0) % 360.0, saturation, lightness


def _parse_hsl(tokens: List[str], alpha: Optional[str]) -> Optional[Color]:
    if len(tokens) != 3:
        return None
    hue_token = tokens[0]
    if hue_token.endswith("deg"):
        hue_token = hue_token[:-3]
    hue = _number(hue_token)
    if hue is None:
        return None
    parts = []
    for token in tokens[1:]:
        value, _ = _percent_or_number(token)
        if value is None:
            return None
        parts.append(_clamp(value / 100.0, 0.0, 1.0))
    r, g, b = hsl_to_rgb(hue, parts[0], parts[1])
    return Color(r, g, b, _parse_alpha(alpha))


def _parse_named(name: str) -> Optional[Color]:
    if name not in ImageColor.colormap:
        return None
    rgb = ImageColor.getrgb(name)
    return Color(int(rgb[0]), int(rgb[1]), int(rgb[2]))


def parse_color(text: Optional[str]) -> Optional[Color]:
    """Parse a CSS/SVG color string; ``None`` for anything that is not a concrete color."""

    if text is None:
        return None
    value = text.strip().lower()
    if not value or value in _NON_COLORS or value.startswith("url("):
        return None

    hex_match = _HEX_RE.match(value)
    if hex_match:
        return _parse_hex(hex_match.group(1))

    func_match = _FUNC_RE.match(value)
    if func_match:
        name = func_match.group(1)
        tokens, alpha = _split_args(func_match.group(2))
        try:
            if name.startswith("rgb"):
                return _parse_rgb(tokens, alpha)
            return _parse_hsl(tokens, alpha)
        except ValueError:
            return None

    if value.isalpha():
        return _parse_named(value)
    return None


def to_hex(color: Color) -> str:
    text = f"#{color.r:02x}{color.g:02x}{color.b:02x}"
    if color.alpha is not None and color.alpha < 1.0:
        text += f"{_round_half_up(color.alpha * 255.0):02x}"
    return text


def _linearize(channel: int) -> float:
    c = channel / 255.0
    if c <= 0.04045:
        return c / 12.92
    return ((c + 0.055) / 1.055) ** 2.4


def luminance(color: Color) -> float:
    """Relative luminance in [0, 1] (sRGB, Rec. 709 weights)."""

    return (
        0.2126 * _linearize(color.r)
        + 0.7152 * _linearize(color.g)
        + 0.0722 * _linearize(color.b)
    )


def distance(a: Color, b: Color) -> float:
    return math.sqrt((a.r - b.r) ** 2 + (a.g - b.g) ** 2 + (a.b - b.b) ** 2)


__all__ = [
    "Color",
    "MAX_DISTANCE",
    "distance",
    "hsl_to_rgb",
    "luminance",
    "parse_color",
    "rgb_to_hsl",
    "to_hex",
]
