from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from itertools import count

import numpy as np

from ..calib.errors import CalibrationUnavailableError
from ..calib.homography import Point, apply_homography
from ..calib.session import CalibrationSession

_ids = count(1)


@dataclass(frozen=True)
class DistanceMeasurement:
    id: str
    start: Point
    end: Point
    screen_start: Point
    screen_end: Point
    distance_m: float
    timestamp: float

    @property
    def label(self) -> str:
        return f"{self.distance_m:.1f}m"

    @property
    def label_anchor(self) -> Point:
        return (
            (self.screen_start[0] + self.screen_end[0]) / 2.0,
            (self.screen_start[1] + self.screen_end[1]) / 2.0,
        )

    def to_dict(self) -> dict:
        return asdict(self)


def field_distance(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def _snapshot(session: CalibrationSession) -> tuple[np.ndarray, np.ndarray]:
    pair = session.matrices()
    if pair is None:
        raise CalibrationUnavailableError(f"Calibration is {session.state.lower()}, no homography available")
    return pair


def measure_distance(session: CalibrationSession, screen_start: Point, screen_end: Point, timestamp: float = 0.0) -> DistanceMeasurement | None:
    """Measure the real-world distance between two image-space points.

    Both ends are mapped through one snapshot of the session's matrices. Returns
    ``None`` if either end projects to infinity. Raises
    ``CalibrationUnavailableError`` when the session is not calibrated.
    """
    _, inverse = _snapshot(session)
    start = apply_homography(screen_start, inverse)
    end = apply_homography(screen_end, inverse)
    if start is None or end is None:
        return None
    return DistanceMeasurement(
        id=f"distance-{next(_ids)}",
        start=start,
        end=end,
        screen_start=(float(screen_start[0]), float(screen_start[1])),
        screen_end=(float(screen_end[0]), float(screen_end[1])),
        distance_m=field_distance(start, end),
        timestamp=float(timestamp),
    )


def local_scale(session: CalibrationSession, image_point: Point, step_m: float = 1.0) -> float | None:
    """Pixels per meter around ``image_point``, for sizing shapes in field units.

    Averages the image length of a ``step_m`` step along both reference axes.
    """
    forward, inverse = _snapshot(session)
    center = apply_homography(image_point, inverse)
    if center is None:
        return None
    origin = apply_homography(center, forward)
    along_x = apply_homography((center[0] + step_m, center[1]), forward)
    along_y = apply_homography((center[0], center[1] + step_m), forward)
    if origin is None or along_x is None or along_y is None:
        return None
    return (field_distance(origin, along_x) + field_distance(origin, along_y)) / (2.0 * step_m)


@dataclass
class DistanceTool:
    session: CalibrationSession
    measurements: list[DistanceMeasurement] = field(default_factory=list)
    visible: bool = True

    def measure(self, screen_start: Point, screen_end: Point, timestamp: float = 0.0) -> DistanceMeasurement | None:
        result = measure_distance(self.session, screen_start, screen_end, timestamp)
        if result is not None:
            self.measurements.append(result)
        return result

    def clear(self) -> None:
        self.measurements.clear()

    def latest(self, n: int = 3) -> list[DistanceMeasurement]:
        return self.measurements[-n:] if n > 0 else []
