from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Tuple

Unit = Literal["px", "mm"]
Axis = Literal["width", "height"]

UNITS: Tuple[str, ...] = ("px", "mm")


@dataclass(frozen=True)
class Segment:
    x1: float; y1: float; x2: float; y2: float


@dataclass(frozen=True)
class CanvasMetrics:
    width: float
    height: float
    origin_x: float = 0.0
    origin_y: float = 0.0
    source: str = "attributes"
    defaulted: bool = False

    @property
    def signature(self) -> str:
        return f"{self.width:g}|{self.height:g}|{self.origin_x:g}|{self.origin_y:g}"


@dataclass(frozen=True)
class OverlayConfig:
    unit: Unit = "px"
    lock_aspect_ratio: bool = True
    transparent_background: bool = False
    show_lines: bool = True
    show_labels: bool = False
    round_values: bool = False

    def __post_init__(self) -> None:
        if self.unit not in UNITS:
            raise ValueError(f"Unsupported unit {self.unit!r}; expected one of {', '.join(UNITS)}")


@dataclass(frozen=True)
class OverlayLine:
    segment: Segment
    kind: Literal["extension", "dimension"]
    axis: Axis


@dataclass(frozen=True)
class Arrowhead:
    x: float
    y: float
    angle_deg: float
    length: float
    half_width: float


@dataclass(frozen=True)
class LabelPlacement:
    x: float
    y: float
    rotation: float
    text: str
    axis: Axis


@dataclass
class OverlayGeometry:
    width: float
    height: float
    width_text: str
    height_text: str
    margin: float
    stroke_width: float
    font_size: float
    view_box: Tuple[float, float, float, float]
    canvas_box: Tuple[float, float, float, float]
    lines: List[OverlayLine] = field(default_factory=list)
    arrowheads: List[Arrowhead] = field(default_factory=list)
    labels: List[LabelPlacement] = field(default_factory=list)
