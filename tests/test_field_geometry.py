import pytest

from pitchmark.field.geometry import (
    CalibrationMode,
    Circle,
    FieldDimensions,
    Segment,
    Spot,
    calibration_prompts,
    parse_mode,
    reference_markings,
    reference_points,
    required_points,
)


def test_center_circle_reference_points_match_prompt_order():
    pts = reference_points(CalibrationMode.CENTER_CIRCLE)

    assert pts == [
        pytest.approx((52.5, 34.0)),
        pytest.approx((52.5, 24.85)),
        pytest.approx((61.65, 34.0)),
        pytest.approx((52.5, 43.15)),
        pytest.approx((43.35, 34.0)),
        pytest.approx((52.5, 0.0)),
        pytest.approx((52.5, 68.0)),
    ]
    assert len(pts) == len(calibration_prompts(CalibrationMode.CENTER_CIRCLE))


def test_required_points_per_mode():
    assert required_points("away-goal") == 8
    assert required_points("home-goal") == 8
    assert required_points(CalibrationMode.CENTER_CIRCLE) == 7


def test_away_goal_points_are_small_box_then_large_box():
    pts = reference_points(CalibrationMode.AWAY_GOAL)

    assert pts[:4] == [
        pytest.approx((0.0, 24.84)),
        pytest.approx((5.5, 24.84)),
        pytest.approx((0.0, 43.16)),
        pytest.approx((5.5, 43.16)),
    ]
    assert pts[4:] == [
        pytest.approx((0.0, 13.84)),
        pytest.approx((16.5, 13.84)),
        pytest.approx((0.0, 54.16)),
        pytest.approx((16.5, 54.16)),
    ]


def test_home_goal_points_mirror_the_away_goal():
    pts = reference_points(CalibrationMode.HOME_GOAL)

    assert pts[0] == pytest.approx((99.5, 24.84))
    assert pts[1] == pytest.approx((105.0, 24.84))
    assert pts[5] == pytest.approx((105.0, 13.84))
    assert pts[6] == pytest.approx((88.5, 54.16))


def test_prompts_and_points_have_equal_length_for_every_mode():
    for mode in CalibrationMode:
        assert len(reference_points(mode)) == len(calibration_prompts(mode)) == required_points(mode)


def test_center_circle_markings_include_circle_and_halfway_line():
    markings = reference_markings(CalibrationMode.CENTER_CIRCLE)

    circles = [m for m in markings if isinstance(m, Circle)]
    assert circles == [Circle((52.5, 34.0), 9.15)]
    assert Segment((52.5, 0.0), (52.5, 68.0)) in markings
    assert Spot((52.5, 34.0)) in markings


def test_goal_markings_include_penalty_spot_and_goal_line():
    away = reference_markings(CalibrationMode.AWAY_GOAL)
    home = reference_markings(CalibrationMode.HOME_GOAL)

    assert Spot((11.0, 34.0)) in away
    assert Segment((0.0, 0.0), (0.0, 68.0)) in away
    assert Spot((94.0, 34.0)) in home
    assert sum(isinstance(m, Segment) for m in home) == 9


def test_custom_field_dimensions_scale_reference_points():
    small = FieldDimensions(length_m=90.0, width_m=60.0)

    pts = reference_points(CalibrationMode.CENTER_CIRCLE, small)

    assert pts[0] == pytest.approx((45.0, 30.0))
    assert pts[-1] == pytest.approx((45.0, 60.0))


def test_field_dimensions_from_dict_ignores_unknown_keys():
    dims = FieldDimensions.from_dict({"length_m": 100, "colour": "green"})

    assert dims.length_m == 100.0
    assert dims.width_m == 68.0


def test_parse_mode_rejects_unknown_names():
    with pytest.raises(ValueError, match="expected one of"):
        parse_mode("corner-flag")
