from __future__ import annotations

import argparse
from collections import OrderedDict
from pathlib import Path

import cv2
import numpy as np

from pitchmark.calib.session import CalibrationSession, calibration_metrics, load_calibration
from pitchmark.render.overlay import draw_field_overlay
from pitchmark.render.warp import warp_to_field
from pitchmark.utils.config import load_config, overlay_settings

VIEW_NAMES = ["annotated frame", "top-down"]


class FrameReader:
    def __init__(self, video_path: str | Path, cache_size: int = 8):
        self.video_path = str(video_path)
        self.cache_size = cache_size
        self.cap = cv2.VideoCapture(self.video_path)
        if not self.cap.isOpened():
            raise RuntimeError(f"Unable to open video: {video_path}")
        self.frame_count = int(self.cap.get(cv2.CAP_PROP_FRAME_COUNT))
        self._cache: OrderedDict[int, np.ndarray] = OrderedDict()

    def read_frame(self, frame_idx: int) -> np.ndarray:
        idx = int(np.clip(frame_idx, 0, max(self.frame_count - 1, 0)))
        if idx in self._cache:
            self._cache.move_to_end(idx)
            return self._cache[idx].copy()
        self.cap.set(cv2.CAP_PROP_POS_FRAMES, idx)
        ok, frame = self.cap.read()
        if not ok or frame is None:
            raise RuntimeError(f"Unable to read frame {idx}")
        self._cache[idx] = frame
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)
        return frame.copy()

    def close(self) -> None:
        self.cap.release()


def draw_points(img: np.ndarray, pts: list[list[float]] | np.ndarray, label: str | None = None) -> np.ndarray:
    out = img.copy()
    arr = np.array(pts, dtype=np.float32).reshape(-1, 2) if len(pts) else np.empty((0, 2), dtype=np.float32)
    for i, (x, y) in enumerate(arr):
        cv2.circle(out, (int(round(x)), int(round(y))), 4, (0, 255, 255), -1)
        point_label = f"{label}:{i + 1}" if label else str(i + 1)
        cv2.putText(out, point_label, (int(round(x)) + 5, int(round(y)) - 5), cv2.FONT_HERSHEY_SIMPLEX, 0.4, (0, 255, 255), 1)
    return out


def overlay_for_frame(frame: np.ndarray, session: CalibrationSession, show_overlay: bool = True, show_points: bool = True, settings: dict | None = None) -> np.ndarray:
    out = draw_field_overlay(frame, session, settings) if show_overlay else frame.copy()
    if show_points:
        out = draw_points(out, session.image_points)
    return out


def resolve_selected_image(selected_view: str, annotated: np.ndarray, top_down: np.ndarray | None) -> np.ndarray | None:
    if selected_view == "top-down":
        return top_down
    return annotated


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser()
    p.add_argument("--video", required=True)
    p.add_argument("--calib", required=True)
    p.add_argument("--config")
    p.add_argument("--frame", type=int, default=0)
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    import streamlit as st

    args = parse_args(argv)
    cfg = load_config(args.config) if args.config else {}
    settings = overlay_settings(cfg)
    px_per_meter = float((cfg.get("warp") or {}).get("px_per_meter", 10.0))
    session = load_calibration(args.calib)

    if "reader" not in st.session_state:
        st.session_state["reader"] = FrameReader(args.video)
    reader: FrameReader = st.session_state["reader"]

    st.title("Pitchmark Calibration Review")
    st.sidebar.header("Controls")
    last = max(reader.frame_count - 1, 0)
    frame_idx = st.sidebar.slider("Frame", min_value=0, max_value=last, value=int(np.clip(args.frame, 0, last)))
    selected_view = st.sidebar.selectbox("Select view", VIEW_NAMES)
    show_overlay = st.sidebar.checkbox("show_overlay", value=True)
    show_points = st.sidebar.checkbox("show_calib_points", value=True)
    show_metrics = st.sidebar.checkbox("show_metrics", value=True)

    frame = reader.read_frame(frame_idx)
    annotated = overlay_for_frame(frame, session, show_overlay, show_points, settings)
    pair = session.matrices()
    top_down = warp_to_field(frame, pair[1], session.dimensions, px_per_meter) if pair else None
    selected = resolve_selected_image(selected_view, annotated, top_down)

    if selected is None:
        st.info("Selected view unavailable, calibration is not complete.")
    else:
        st.image(cv2.cvtColor(selected, cv2.COLOR_BGR2RGB), channels="RGB", use_container_width=True)

    if show_metrics:
        st.subheader("Reprojection error of calibration clicks")
        metrics = calibration_metrics(session)
        if metrics:
            st.table(metrics)
        else:
            st.info("No metrics available (calibration incomplete).")

    with st.expander("Resolved calibration"):
        st.json(session.to_dict() if session.is_complete else {"state": session.state})


if __name__ == "__main__":
    main()
