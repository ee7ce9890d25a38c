from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Union

Point = tuple[float, float]


class CalibrationMode(str, Enum):
    AWAY_GOAL = "away-goal"
    HOME_GOAL = "home-goal"
    CENTER_CIRCLE = "center-circle"


@dataclass(frozen=True)
class FieldDimensions:
    """Pitch measurements in meters. Reference space has its origin at the top-left
    corner flag, x along the touchline and y growing downwards like image space."""

    length_m: float = 105.0
    width_m: float = 68.0
    center_circle_radius_m: float = 9.15
    goal_area_depth_m: float = 5.5
    goal_area_width_m: float = 18.32
    penalty_area_depth_m: float = 16.5
    penalty_area_width_m: float = 40.32
    penalty_spot_distance_m: float = 11.0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> "FieldDimensions":
        known = {k: float(v) for k, v in (data or {}).items() if k in cls.__dataclass_fields__}
        return cls(**known)


DEFAULT_FIELD = FieldDimensions()


@dataclass(frozen=True)
class Segment:
    start: Point
    end: Point


@dataclass(frozen=True)
class Circle:
    center: Point
    radius: float


@dataclass(frozen=True)
class Spot:
    center: Point


Marking = Union[Segment, Circle, Spot]

_GOAL_AREA_PROMPTS = [
    "Top-left corner of small goal area",
    "Top-right corner of small goal area",
    "Bottom-left corner of small goal area",
    "Bottom-right corner of small goal area",
    "Top-left corner of large goal area",
    "Top-right corner of large goal area",
    "Bottom-left corner of large goal area",
    "Bottom-right corner of large goal area",
]

_PROMPTS: dict[CalibrationMode, list[str]] = {
    CalibrationMode.AWAY_GOAL: _GOAL_AREA_PROMPTS,
    CalibrationMode.HOME_GOAL: _GOAL_AREA_PROMPTS,
    CalibrationMode.CENTER_CIRCLE: [
        "Center Spot of the pitch",
        "Top of the Center Circle (closest to a goal)",
        "Right point of the Center Circle (on halfway line)",
        "Bottom of the Center Circle (furthest from a goal)",
        "Left point of the Center Circle (on halfway line)",
        "Midpoint of the Top Touchline",
        "Midpoint of the Bottom Touchline",
    ],
}

MODE_TITLES = {
    CalibrationMode.AWAY_GOAL: "Away Team Goal Area",
    CalibrationMode.HOME_GOAL: "Home Team Goal Area",
    CalibrationMode.CENTER_CIRCLE: "Center Circle Field",
}


def parse_mode(value: CalibrationMode | str) -> CalibrationMode:
    try:
        return CalibrationMode(value)
    except ValueError as err:
        choices = ", ".join(m.value for m in CalibrationMode)
        raise ValueError(f"Unknown calibration mode '{value}', expected one of: {choices}") from err


def _box_corners(x_near: float, x_far: float, y_top: float, y_bottom: float) -> list[Point]:
    left, right = min(x_near, x_far), max(x_near, x_far)
    return [(left, y_top), (right, y_top), (left, y_bottom), (right, y_bottom)]


def _goal_boxes(mode: CalibrationMode, field: FieldDimensions) -> tuple[float, float, list[Point], list[Point]]:
    mid_y = field.width_m / 2.0
    goal_x = 0.0 if mode is CalibrationMode.AWAY_GOAL else field.length_m
    inward = 1.0 if mode is CalibrationMode.AWAY_GOAL else -1.0
    small = _box_corners(
        goal_x,
        goal_x + inward * field.goal_area_depth_m,
        mid_y - field.goal_area_width_m / 2.0,
        mid_y + field.goal_area_width_m / 2.0,
    )
    large = _box_corners(
        goal_x,
        goal_x + inward * field.penalty_area_depth_m,
        mid_y - field.penalty_area_width_m / 2.0,
        mid_y + field.penalty_area_width_m / 2.0,
    )
    return goal_x, inward, small, large


def reference_points(mode: CalibrationMode | str, field: FieldDimensions = DEFAULT_FIELD) -> list[Point]:
    """Reference-space points in the exact order the user is prompted to click them."""
    mode = parse_mode(mode)
    if mode is CalibrationMode.CENTER_CIRCLE:
        cx, cy, r = field.length_m / 2.0, field.width_m / 2.0, field.center_circle_radius_m
        return [
            (cx, cy),
            (cx, cy - r),
            (cx + r, cy),
            (cx, cy + r),
            (cx - r, cy),
            (cx, 0.0),
            (cx, field.width_m),
        ]
    _, _, small, large = _goal_boxes(mode, field)
    return small + large


def _rectangle(corners: list[Point]) -> list[Segment]:
    tl, tr, bl, br = corners
    return [Segment(tl, tr), Segment(tr, br), Segment(br, bl), Segment(bl, tl)]


def reference_markings(mode: CalibrationMode | str, field: FieldDimensions = DEFAULT_FIELD) -> list[Marking]:
    mode = parse_mode(mode)
    length, width = field.length_m, field.width_m
    if mode is CalibrationMode.CENTER_CIRCLE:
        center = (length / 2.0, width / 2.0)
        return [
            Circle(center, field.center_circle_radius_m),
            Spot(center),
            Segment((length / 2.0, 0.0), (length / 2.0, width)),
            Segment((0.0, 0.0), (length, 0.0)),
            Segment((0.0, width), (length, width)),
            Segment((0.0, 0.0), (0.0, width)),
            Segment((length, 0.0), (length, width)),
        ]
    goal_x, inward, small, large = _goal_boxes(mode, field)
    return [
        *_rectangle(small),
        *_rectangle(large),
        Spot((goal_x + inward * field.penalty_spot_distance_m, width / 2.0)),
        Segment((goal_x, 0.0), (goal_x, width)),
    ]


def calibration_prompts(mode: CalibrationMode | str) -> list[str]:
    return list(_PROMPTS[parse_mode(mode)])


def required_points(mode: CalibrationMode | str) -> int:
    return len(_PROMPTS[parse_mode(mode)])
