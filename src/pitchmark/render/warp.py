from __future__ import annotations

import cv2
import numpy as np

from ..calib.homography import as_matrix
from ..field.geometry import DEFAULT_FIELD, FieldDimensions


def field_canvas_size(field: FieldDimensions, px_per_meter: float) -> tuple[int, int]:
    return int(round(field.length_m * px_per_meter)), int(round(field.width_m * px_per_meter))


def warp_to_field(frame, inverse_h, field: FieldDimensions = DEFAULT_FIELD, px_per_meter: float = 10.0):
    """Rectify a frame onto a top-down canvas of the pitch.

    ``inverse_h`` maps image pixels to reference meters; it is composed with a
    meters-to-canvas scale before warping.
    """
    if px_per_meter <= 0:
        raise ValueError(f"px_per_meter must be positive, got {px_per_meter}")
    scale = np.diag([px_per_meter, px_per_meter, 1.0])
    width, height = field_canvas_size(field, px_per_meter)
    return cv2.warpPerspective(frame, scale @ as_matrix(inverse_h), (width, height))
