import numpy as np
import pytest

from pitchmark.calib.errors import CalibrationUnavailableError
from pitchmark.calib.session import CalibrationSession
from pitchmark.field.geometry import CalibrationMode, reference_points
from pitchmark.measure.distance import DistanceTool, field_distance, local_scale, measure_distance

from conftest import project

SCALE_H = np.array([[10.0, 0.0, 50.0], [0.0, 10.0, 40.0], [0.0, 0.0, 1.0]])


@pytest.fixture
def scaled_session():
    session = CalibrationSession()
    session.select_mode(CalibrationMode.CENTER_CIRCLE)
    for x, y in project(SCALE_H, reference_points(CalibrationMode.CENTER_CIRCLE)):
        session.add_point(x, y)
    return session


def test_field_distance():
    assert field_distance((0.0, 0.0), (3.0, 4.0)) == pytest.approx(5.0)


def test_measure_distance_in_meters(scaled_session):
    start = scaled_session.to_image_space((10.0, 10.0))
    end = scaled_session.to_image_space((13.0, 14.0))

    result = measure_distance(scaled_session, start, end, timestamp=12.5)

    assert result.distance_m == pytest.approx(5.0)
    assert result.label == "5.0m"
    assert result.start == pytest.approx((10.0, 10.0))
    assert result.timestamp == 12.5
    assert result.label_anchor == pytest.approx(((start[0] + end[0]) / 2, (start[1] + end[1]) / 2))


def test_measure_distance_uses_perspective(calibrated_session):
    start = calibrated_session.to_image_space((0.0, 34.0))
    end = calibrated_session.to_image_space((105.0, 34.0))

    result = measure_distance(calibrated_session, start, end)

    assert result.distance_m == pytest.approx(105.0, rel=1e-6)


def test_measure_requires_calibration():
    session = CalibrationSession()
    session.select_mode(CalibrationMode.CENTER_CIRCLE)

    with pytest.raises(CalibrationUnavailableError):
        measure_distance(session, (0.0, 0.0), (10.0, 10.0))


def test_local_scale_matches_pixels_per_meter(scaled_session):
    assert local_scale(scaled_session, (300.0, 200.0)) == pytest.approx(10.0)


def test_distance_tool_keeps_history(scaled_session):
    tool = DistanceTool(scaled_session)
    for i in range(5):
        tool.measure((50.0, 40.0), (50.0 + 10.0 * (i + 1), 40.0), timestamp=float(i))

    latest = tool.latest(3)
    assert [m.distance_m for m in latest] == pytest.approx([3.0, 4.0, 5.0])
    assert len({m.id for m in tool.measurements}) == 5

    tool.clear()
    assert tool.measurements == []
    assert tool.latest() == []


def test_distance_tool_stops_after_session_reset(scaled_session):
    tool = DistanceTool(scaled_session)
    scaled_session.reset()

    with pytest.raises(CalibrationUnavailableError):
        tool.measure((0.0, 0.0), (1.0, 1.0))


def test_measure_and_scale_survive_reset_after_snapshot(scaled_session, monkeypatch):
    start = scaled_session.to_image_space((10.0, 10.0))
    end = scaled_session.to_image_space((13.0, 14.0))
    matrices = scaled_session.matrices

    def snapshot_then_reset():
        pair = matrices()
        scaled_session.reset()
        return pair

    monkeypatch.setattr(scaled_session, "matrices", snapshot_then_reset)
    assert measure_distance(scaled_session, start, end).distance_m == pytest.approx(5.0)

    scaled_session.select_mode(CalibrationMode.CENTER_CIRCLE)
    for x, y in project(SCALE_H, reference_points(CalibrationMode.CENTER_CIRCLE)):
        scaled_session.add_point(x, y)
    assert local_scale(scaled_session, (300.0, 200.0)) == pytest.approx(10.0)
