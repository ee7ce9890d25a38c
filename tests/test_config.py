import json

import pytest

from pitchmark.utils.config import calibration_points, field_from_config, load_config, overlay_settings
from pitchmark.utils.io import parse_point, read_json, write_json


def test_load_config_reads_yaml_and_json(tmp_path):
    yml = tmp_path / "cfg.yml"
    yml.write_text("calibration:\n  mode: away-goal\n", encoding="utf-8")
    js = tmp_path / "cfg.json"
    js.write_text(json.dumps({"field": {"length_m": 100}}), encoding="utf-8")

    assert load_config(yml) == {"calibration": {"mode": "away-goal"}}
    assert load_config(js)["field"]["length_m"] == 100


def test_empty_yaml_is_empty_config(tmp_path):
    yml = tmp_path / "empty.yaml"
    yml.write_text("", encoding="utf-8")

    assert load_config(yml) == {}


def test_overlay_settings_fill_defaults():
    settings = overlay_settings({"overlay": {"color": [0, 0, 255], "circle_segments": 2}})

    assert settings["color"] == (0, 0, 255)
    assert settings["thickness"] == 2
    assert settings["circle_segments"] == 8


def test_field_and_points_from_config():
    cfg = {"field": {"width_m": 64}, "calibration": {"image_points": [[1, 2], [3.5, 4]]}}

    assert field_from_config(cfg).width_m == 64.0
    assert field_from_config({}).length_m == 105.0
    assert calibration_points(cfg) == [(1.0, 2.0), (3.5, 4.0)]
    assert calibration_points({}) == []


def test_write_json_creates_parent_dirs(tmp_path):
    path = tmp_path / "nested" / "out.json"

    write_json(path, {"a": 1})

    assert read_json(path) == {"a": 1}


def test_parse_point():
    assert parse_point("10,20.5") == (10.0, 20.5)
    assert parse_point(" 3 , 4 ") == (3.0, 4.0)
    with pytest.raises(ValueError):
        parse_point("1,2,3")
