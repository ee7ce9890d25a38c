import numpy as np
import pytest

from pitchmark.calib.session import CalibrationSession
from pitchmark.field.geometry import CalibrationMode, reference_points

# reference meters -> image pixels, with a mild perspective tilt
PERSPECTIVE_H = np.array(
    [
        [12.0, -2.0, 100.0],
        [0.5, 6.0, 80.0],
        [0.0005, 0.004, 1.0],
    ]
)


def project(h, pts):
    pts = np.asarray(pts, dtype=np.float64).reshape(-1, 2)
    hom = np.hstack([pts, np.ones((pts.shape[0], 1))]) @ np.asarray(h, dtype=np.float64).T
    return hom[:, :2] / hom[:, 2:3]


@pytest.fixture
def perspective_h():
    return PERSPECTIVE_H.copy()


@pytest.fixture
def calibrated_session():
    session = CalibrationSession()
    session.select_mode(CalibrationMode.CENTER_CIRCLE)
    for x, y in project(PERSPECTIVE_H, reference_points(CalibrationMode.CENTER_CIRCLE)):
        session.add_point(x, y)
    return session
