from __future__ import annotations

from typing import Sequence

import numpy as np

from .errors import InsufficientPointsError, NonInvertibleError, SingularSystemError
from .solver import solve_linear_system

Point = tuple[float, float]

MIN_CORRESPONDENCES = 4
INFINITY_TOLERANCE = 1e-10
DETERMINANT_TOLERANCE = 1e-10
# in conditioned units, where the mean distance to the centroid is sqrt(2)
DUPLICATE_TOLERANCE = 1e-6


def as_matrix(h) -> np.ndarray:
    """Coerce a 3x3 array, nested list or flat ``[h0..h8]`` sequence to a 3x3 float matrix.

    A flat sequence of 8 coefficients is completed with ``h8 = 1``.
    """
    arr = np.asarray(h, dtype=np.float64)
    if arr.shape == (3, 3):
        return arr.copy()
    flat = arr.ravel()
    if flat.size == 8:
        flat = np.append(flat, 1.0)
    if flat.size != 9:
        raise ValueError(f"Homography needs 9 coefficients, got shape {arr.shape}")
    return flat.reshape(3, 3)


def to_flat(h) -> list[float]:
    return [float(v) for v in as_matrix(h).ravel()]


def _hadamard_ratio(m: np.ndarray) -> float:
    # |det| / product of row norms: 0 for singular, 1 for orthogonal rows, scale-free
    norms = np.linalg.norm(m, axis=1)
    if np.any(norms == 0.0):
        return 0.0
    return abs(float(np.linalg.det(m))) / float(np.prod(norms))


def _condition(points: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    centroid = points.mean(axis=0)
    shifted = points - centroid
    mean_dist = float(np.sqrt((shifted**2).sum(axis=1)).mean())
    if mean_dist < INFINITY_TOLERANCE:
        raise SingularSystemError("All points coincide")
    scale = np.sqrt(2.0) / mean_dist
    t = np.array(
        [[scale, 0.0, -scale * centroid[0]], [0.0, scale, -scale * centroid[1]], [0.0, 0.0, 1.0]],
        dtype=np.float64,
    )
    return t, shifted * scale


def _reject_duplicates(points: np.ndarray, which: str) -> None:
    diffs = points[:, None, :] - points[None, :, :]
    dist = np.sqrt((diffs**2).sum(axis=2))
    np.fill_diagonal(dist, np.inf)
    i, j = np.unravel_index(int(np.argmin(dist)), dist.shape)
    if dist[i, j] < DUPLICATE_TOLERANCE:
        raise SingularSystemError(f"Duplicate {which} points at positions {min(i, j)} and {max(i, j)}")


def estimate_homography(reference_points: Sequence[Sequence[float]], image_points: Sequence[Sequence[float]]) -> np.ndarray:
    """Estimate the 3x3 homography mapping ``reference_points`` onto ``image_points``.

    Both point sets are conditioned (centroid at the origin, mean distance sqrt(2))
    before the DLT rows are built with ``h8`` fixed to 1. The returned matrix is
    always scaled so that ``h[2, 2] == 1``.

    Raises ``InsufficientPointsError`` below four correspondences and
    ``SingularSystemError`` for degenerate configurations. Duplicated points in
    either set are rejected before solving, whatever the point count.
    """
    if len(reference_points) != len(image_points):
        raise ValueError(f"Point count mismatch: {len(reference_points)} reference vs {len(image_points)} image")
    if len(reference_points) < MIN_CORRESPONDENCES:
        raise InsufficientPointsError(f"Need at least {MIN_CORRESPONDENCES} correspondences, got {len(reference_points)}")

    src = np.asarray(reference_points, dtype=np.float64).reshape(-1, 2)
    dst = np.asarray(image_points, dtype=np.float64).reshape(-1, 2)
    src_t, src_n = _condition(src)
    dst_t, dst_n = _condition(dst)
    _reject_duplicates(src_n, "reference")
    _reject_duplicates(dst_n, "image")

    rows = []
    for (x, y), (u, v) in zip(src_n, dst_n):
        rows.append([x, y, 1.0, 0.0, 0.0, 0.0, -x * u, -y * u, u])
        rows.append([0.0, 0.0, 0.0, x, y, 1.0, -x * v, -y * v, v])
    coeffs = solve_linear_system(rows)

    h_n = np.append(coeffs, 1.0).reshape(3, 3)
    if _hadamard_ratio(h_n) <= DETERMINANT_TOLERANCE:
        raise SingularSystemError("Estimated homography is degenerate")

    h = np.linalg.inv(dst_t) @ h_n @ src_t
    if abs(h[2, 2]) < INFINITY_TOLERANCE:
        raise SingularSystemError("Estimated homography sends the reference origin to infinity")
    return h / h[2, 2]


def invert_homography(h) -> np.ndarray:
    """Closed-form inverse via the adjugate divided by the determinant."""
    m = as_matrix(h)
    if _hadamard_ratio(m) <= DETERMINANT_TOLERANCE:
        raise NonInvertibleError("Homography is singular (points are degenerate, e.g. collinear)")
    (a, b, c), (d, e, f), (g, k, i) = m
    adj = np.array(
        [
            [e * i - f * k, c * k - b * i, b * f - c * e],
            [f * g - d * i, a * i - c * g, c * d - a * f],
            [d * k - e * g, b * g - a * k, a * e - b * d],
        ],
        dtype=np.float64,
    )
    det = a * (e * i - f * k) - b * (d * i - f * g) + c * (d * k - e * g)
    return adj / det


def apply_homography(point: Sequence[float], h) -> Point | None:
    """Map one point through ``h``; ``None`` means the point lands at infinity."""
    m = as_matrix(h)
    x, y = float(point[0]), float(point[1])
    w = m[2, 0] * x + m[2, 1] * y + m[2, 2]
    if abs(w) < INFINITY_TOLERANCE:
        return None
    return (
        float((m[0, 0] * x + m[0, 1] * y + m[0, 2]) / w),
        float((m[1, 0] * x + m[1, 1] * y + m[1, 2]) / w),
    )


def apply_homography_many(points, h) -> tuple[np.ndarray, np.ndarray]:
    """Vectorised ``apply_homography``.

    Returns ``(projected, finite)``: an ``(N, 2)`` array and a boolean mask. Rows
    whose homogeneous denominator vanishes are NaN and flagged ``False`` in the mask.
    """
    m = as_matrix(h)
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    hom = np.hstack([pts, np.ones((pts.shape[0], 1))]) @ m.T
    w = hom[:, 2]
    finite = np.abs(w) >= INFINITY_TOLERANCE
    out = np.full((pts.shape[0], 2), np.nan, dtype=np.float64)
    out[finite] = hom[finite, :2] / w[finite, None]
    return out, finite


def reprojection_errors(h, src_points, dst_points) -> np.ndarray:
    src = np.asarray(src_points, dtype=np.float64).reshape(-1, 2)
    dst = np.asarray(dst_points, dtype=np.float64).reshape(-1, 2)
    n = min(src.shape[0], dst.shape[0])
    pred, finite = apply_homography_many(src[:n], h)
    errs = np.full(n, np.inf, dtype=np.float64)
    errs[finite] = np.linalg.norm(pred[finite] - dst[:n][finite], axis=1)
    return errs


def reprojection_metrics(h, src_points, dst_points) -> dict[str, float | int]:
    errs = reprojection_errors(h, src_points, dst_points)
    if errs.size == 0:
        return {"count": 0}
    return {
        "count": int(errs.size),
        "avg_px": float(np.mean(errs)),
        "median_px": float(np.median(errs)),
        "p95_px": float(np.percentile(errs, 95)),
        "max_px": float(np.max(errs)),
    }
