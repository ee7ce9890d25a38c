from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np

from ..field.geometry import (
    DEFAULT_FIELD,
    CalibrationMode,
    FieldDimensions,
    calibration_prompts,
    parse_mode,
    reference_points,
    required_points,
)
from ..utils.io import read_json, write_json
from .errors import CalibrationError, CalibrationUnavailableError
from .homography import Point, apply_homography, as_matrix, estimate_homography, invert_homography, reprojection_metrics, to_flat

IDLE = "IDLE"
COLLECTING = "COLLECTING"
COMPLETE = "COMPLETE"

BUNDLE_VERSION = "v1"


@dataclass(frozen=True)
class SessionStatus:
    state: str
    mode: CalibrationMode | None = None
    count: int = 0
    required: int = 0


@dataclass
class CalibrationSession:
    """Sequences image clicks into a correspondence set and holds the resulting matrices.

    ``forward`` maps reference space (meters) to image space (pixels); ``inverse``
    maps image space back to reference space. Both exist only in ``COMPLETE``.
    """

    dimensions: FieldDimensions = DEFAULT_FIELD
    state: str = IDLE
    mode: CalibrationMode | None = None
    image_points: list[Point] = field(default_factory=list)
    forward: np.ndarray | None = None
    inverse: np.ndarray | None = None
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False, compare=False)

    @property
    def status(self) -> SessionStatus:
        with self._lock:
            required = required_points(self.mode) if self.mode is not None else 0
            return SessionStatus(self.state, self.mode, len(self.image_points), required)

    @property
    def is_complete(self) -> bool:
        return self.state == COMPLETE

    def _clear(self) -> None:
        self.image_points = []
        self.forward = None
        self.inverse = None

    def select_mode(self, mode: CalibrationMode | str) -> SessionStatus:
        with self._lock:
            self.mode = parse_mode(mode)
            self._clear()
            self.state = COLLECTING
            return self.status

    def reset(self) -> SessionStatus:
        with self._lock:
            self._clear()
            self.mode = None
            self.state = IDLE
            return self.status

    def next_prompt(self) -> str | None:
        with self._lock:
            if self.state != COLLECTING:
                return None
            return calibration_prompts(self.mode)[len(self.image_points)]

    def add_point(self, x: float, y: float) -> SessionStatus:
        """Append one image-space click.

        Estimation runs as soon as the mode's point count is reached. A degenerate
        point set is discarded and the ``CalibrationError`` is re-raised so the caller
        can prompt for a retry; the session stays in ``COLLECTING``.
        """
        with self._lock:
            if self.state != COLLECTING:
                raise CalibrationError(f"Cannot add points while session is {self.state}")
            self.image_points.append((float(x), float(y)))
            if len(self.image_points) < required_points(self.mode):
                return self.status
            try:
                forward = estimate_homography(reference_points(self.mode, self.dimensions), self.image_points)
                inverse = invert_homography(forward)
            except CalibrationError:
                self._clear()
                raise
            self.forward = forward
            self.inverse = inverse
            self.state = COMPLETE
            return self.status

    def undo_point(self) -> SessionStatus:
        with self._lock:
            if self.state == COLLECTING and self.image_points:
                self.image_points.pop()
            return self.status

    def matrices(self) -> tuple[np.ndarray, np.ndarray] | None:
        with self._lock:
            if self.state != COMPLETE:
                return None
            return self.forward.copy(), self.inverse.copy()

    def _require(self, which: str) -> np.ndarray:
        if self.state != COMPLETE:
            raise CalibrationUnavailableError(f"Calibration is {self.state.lower()}, no homography available")
        return self.forward if which == "forward" else self.inverse

    def to_image_space(self, point) -> Point | None:
        with self._lock:
            return apply_homography(point, self._require("forward"))

    def to_reference_space(self, point) -> Point | None:
        with self._lock:
            return apply_homography(point, self._require("inverse"))

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            self._require("forward")
            return {
                "version": BUNDLE_VERSION,
                "mode": self.mode.value,
                "field": self.dimensions.to_dict(),
                "image_points": [list(p) for p in self.image_points],
                "reference_points": [list(p) for p in reference_points(self.mode, self.dimensions)],
                "forward": to_flat(self.forward),
                "inverse": to_flat(self.inverse),
            }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CalibrationSession":
        """Restore a completed session. Matrices are taken as stored; when only the
        clicks are present they are re-estimated."""
        session = cls(dimensions=FieldDimensions.from_dict(data.get("field")))
        session.select_mode(data["mode"])
        if data.get("forward") is not None:
            forward = as_matrix(data["forward"])
            inverse = as_matrix(data["inverse"]) if data.get("inverse") is not None else invert_homography(forward)
            session.image_points = [(float(x), float(y)) for x, y in data.get("image_points", [])]
            session.forward = forward
            session.inverse = inverse
            session.state = COMPLETE
            return session
        for x, y in data.get("image_points", []):
            session.add_point(x, y)
        return session


def save_calibration(session: CalibrationSession, path: str | Path, extra: dict[str, Any] | None = None) -> None:
    payload = session.to_dict()
    if extra:
        payload.update(extra)
    write_json(path, payload)


def load_calibration(path: str | Path) -> CalibrationSession:
    return CalibrationSession.from_dict(read_json(path))


def calibration_metrics(session: CalibrationSession) -> list[dict[str, Any]]:
    """Reprojection error of the clicked points, in image pixels and in field meters."""
    pair = session.matrices()
    if pair is None or not session.image_points:
        return []
    forward, inverse = pair
    ref = reference_points(session.mode, session.dimensions)
    return [
        {"direction": "reference->image (px)", **reprojection_metrics(forward, ref, session.image_points)},
        {"direction": "image->reference (m)", **reprojection_metrics(inverse, session.image_points, ref)},
    ]
