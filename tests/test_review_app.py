import cv2
import numpy as np

from pitchmark.calib.session import CalibrationSession
from pitchmark.ui.review_app import FrameReader, draw_points, overlay_for_frame, parse_args, resolve_selected_image


def test_draw_points_changes_pixels():
    frame = np.zeros((80, 120, 3), dtype=np.uint8)

    out = draw_points(frame, [[10, 10], [40, 12], [45, 30]], label="clicks")

    assert out.shape == frame.shape
    assert np.count_nonzero(out != frame) > 0


def test_draw_points_accepts_empty_list():
    frame = np.zeros((10, 10, 3), dtype=np.uint8)

    assert np.array_equal(draw_points(frame, []), frame)


def test_overlay_for_frame_without_calibration_only_draws_clicks():
    frame = np.zeros((200, 200, 3), dtype=np.uint8)
    session = CalibrationSession()
    session.select_mode("center-circle")
    session.add_point(50.0, 60.0)

    out = overlay_for_frame(frame, session, show_overlay=True, show_points=False)
    assert np.array_equal(out, frame)

    out = overlay_for_frame(frame, session, show_overlay=True, show_points=True)
    assert np.count_nonzero(out) > 0


def test_overlay_for_frame_with_calibration(calibrated_session):
    frame = np.zeros((900, 1600, 3), dtype=np.uint8)

    out = overlay_for_frame(frame, calibrated_session, show_points=False)

    assert np.count_nonzero(out) > 0


def test_resolve_selected_image_handles_missing_top_down():
    annotated = np.zeros((20, 30, 3), dtype=np.uint8)

    assert resolve_selected_image("top-down", annotated, None) is None
    assert resolve_selected_image("annotated frame", annotated, None) is annotated


def test_parse_args_requires_calibration():
    args = parse_args(["--video", "m.mp4", "--calib", "c.json", "--frame", "12"])

    assert args.frame == 12
    assert args.config is None


class _FakeCapture:
    def __init__(self, *_args):
        self.reads = 0
        self._pos = 0

    def isOpened(self):
        return True

    def get(self, prop):
        return 5 if prop == cv2.CAP_PROP_FRAME_COUNT else 0

    def set(self, prop, value):
        self._pos = int(value)
        return True

    def read(self):
        self.reads += 1
        return True, np.full((4, 4, 3), self._pos, dtype=np.uint8)

    def release(self):
        return None


def test_frame_reader_clamps_and_caches(monkeypatch):
    monkeypatch.setattr("cv2.VideoCapture", _FakeCapture)
    reader = FrameReader("match.mp4", cache_size=2)

    assert reader.read_frame(99)[0, 0, 0] == 4
    reader.read_frame(1)
    reader.read_frame(4)
    assert reader.cap.reads == 2

    reader.read_frame(2)
    reader.read_frame(1)
    assert reader.cap.reads == 4
    assert list(reader._cache) == [2, 1]
    assert not hasattr(reader, "fps")
