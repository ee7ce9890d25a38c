from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

import cv2
import numpy as np

from ..calib.homography import Point, as_matrix
from ..calib.session import CalibrationSession
from ..field.geometry import Circle, Marking, Segment, Spot, reference_markings
from ..utils.config import DEFAULT_OVERLAY


@dataclass
class ProjectedShape:
    kind: str
    points: list[Point]
    closed: bool = False


def _project(h: np.ndarray, pts: list[Point]) -> tuple[np.ndarray, np.ndarray]:
    hom = np.hstack([np.asarray(pts, dtype=np.float64), np.ones((len(pts), 1))]) @ h.T
    return hom[:, :2], hom[:, 2]


def _visible(w: np.ndarray, reference_w: float) -> np.ndarray:
    # points behind the camera flip the sign of w
    return (np.abs(w) >= 1e-10) & (np.sign(w) == np.sign(reference_w))


def _anchor(markings: list[Marking]) -> Point:
    pts = []
    for marking in markings:
        if isinstance(marking, Segment):
            pts.extend([marking.start, marking.end])
        else:
            pts.append(marking.center)
    cx, cy = np.mean(np.asarray(pts, dtype=np.float64), axis=0)
    return float(cx), float(cy)


def project_markings(markings: Iterable[Marking], h, circle_segments: int = 64) -> list[ProjectedShape]:
    """Project reference-space markings into image space.

    Segments with an endpoint at infinity (or behind the camera) are dropped, circles
    keep only their visible vertices. "In front of the camera" is judged against the
    centroid of the markings, which lies inside the calibrated region.
    """
    markings = list(markings)
    if not markings:
        return []
    m = as_matrix(h)
    _, anchor_w = _project(m, [_anchor(markings)])
    ref_w = float(anchor_w[0])
    shapes: list[ProjectedShape] = []
    for marking in markings:
        if isinstance(marking, Segment):
            xy, w = _project(m, [marking.start, marking.end])
            if _visible(w, ref_w).all():
                pts = xy / w[:, None]
                shapes.append(ProjectedShape("segment", [tuple(map(float, p)) for p in pts]))
        elif isinstance(marking, Circle):
            cx, cy = marking.center
            ring = [
                (cx + marking.radius * math.cos(2 * math.pi * i / circle_segments), cy + marking.radius * math.sin(2 * math.pi * i / circle_segments))
                for i in range(circle_segments)
            ]
            xy, w = _project(m, ring)
            keep = _visible(w, ref_w)
            if keep.sum() >= 2:
                pts = xy[keep] / w[keep, None]
                shapes.append(ProjectedShape("circle", [tuple(map(float, p)) for p in pts], closed=bool(keep.all())))
        elif isinstance(marking, Spot):
            xy, w = _project(m, [marking.center])
            if _visible(w, ref_w).all():
                shapes.append(ProjectedShape("spot", [tuple(map(float, xy[0] / w[0]))]))
    return shapes


def _clip_edge(p: np.ndarray, q: np.ndarray, lo: np.ndarray, hi: np.ndarray) -> tuple[np.ndarray, np.ndarray] | None:
    # Liang-Barsky against the box [lo, hi]
    t0, t1 = 0.0, 1.0
    d = q - p
    for axis in range(2):
        for step, room in ((-d[axis], p[axis] - lo[axis]), (d[axis], hi[axis] - p[axis])):
            if step == 0.0:
                if room < 0.0:
                    return None
                continue
            t = room / step
            if step < 0.0:
                t0 = max(t0, t)
            else:
                t1 = min(t1, t)
            if t0 > t1:
                return None
    return p + t0 * d, p + t1 * d


def _pixel(p: np.ndarray) -> tuple[int, int]:
    return int(round(float(p[0]))), int(round(float(p[1])))


def draw_shapes(frame_bgr: np.ndarray, shapes: list[ProjectedShape], settings: dict | None = None) -> np.ndarray:
    """Draw projected shapes. Edges are clipped to the frame padded by its own size on
    every side, so vertices projected near the horizon never reach the integer cast."""
    cfg = {**DEFAULT_OVERLAY, **(settings or {})}
    color = tuple(int(c) for c in cfg["color"])
    thickness = int(cfg["thickness"])
    out = frame_bgr.copy()
    h, w = out.shape[:2]
    lo = np.array([-w, -h], dtype=np.float64)
    hi = np.array([2 * w, 2 * h], dtype=np.float64)
    for shape in shapes:
        pts = np.asarray(shape.points, dtype=np.float64).reshape(-1, 2)
        if shape.kind == "spot":
            if np.all((pts[0] >= lo) & (pts[0] <= hi)):
                cv2.circle(out, _pixel(pts[0]), int(cfg["spot_radius_px"]), color, -1)
            continue
        edges = list(zip(pts[:-1], pts[1:]))
        if shape.closed and len(pts) > 2:
            edges.append((pts[-1], pts[0]))
        for p, q in edges:
            clipped = _clip_edge(p, q, lo, hi)
            if clipped is not None:
                cv2.line(out, _pixel(clipped[0]), _pixel(clipped[1]), color, thickness, lineType=cv2.LINE_AA)
    return out


def draw_field_overlay(frame_bgr: np.ndarray, session: CalibrationSession, settings: dict | None = None) -> np.ndarray:
    """Draw the mode's field markings over a frame. Without a completed calibration the
    frame is returned unchanged."""
    pair = session.matrices()
    if pair is None:
        return frame_bgr.copy()
    forward, _ = pair
    cfg = {**DEFAULT_OVERLAY, **(settings or {})}
    markings = reference_markings(session.mode, session.dimensions)
    shapes = project_markings(markings, forward, circle_segments=int(cfg["circle_segments"]))
    return draw_shapes(frame_bgr, shapes, cfg)
