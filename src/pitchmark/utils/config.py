from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from ..field.geometry import FieldDimensions

DEFAULT_OVERLAY = {
    "color": [255, 255, 255],
    "thickness": 2,
    "circle_segments": 64,
    "spot_radius_px": 3,
}


def load_config(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(text) or {}
    return json.loads(text)


def field_from_config(cfg: dict[str, Any]) -> FieldDimensions:
    return FieldDimensions.from_dict(cfg.get("field"))


def overlay_settings(cfg: dict[str, Any]) -> dict[str, Any]:
    settings = dict(DEFAULT_OVERLAY)
    settings.update(cfg.get("overlay") or {})
    settings["color"] = tuple(int(c) for c in settings["color"])
    settings["thickness"] = int(settings["thickness"])
    settings["circle_segments"] = max(8, int(settings["circle_segments"]))
    settings["spot_radius_px"] = int(settings["spot_radius_px"])
    return settings


def calibration_points(cfg: dict[str, Any]) -> list[tuple[float, float]]:
    pts = (cfg.get("calibration") or {}).get("image_points") or []
    return [(float(x), float(y)) for x, y in pts]
