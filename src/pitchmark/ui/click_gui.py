from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np

from pitchmark.calib.errors import CalibrationError
from pitchmark.calib.frames import read_frame
from pitchmark.calib.session import CalibrationSession, save_calibration
from pitchmark.field.geometry import DEFAULT_FIELD, CalibrationMode, FieldDimensions, parse_mode
from pitchmark.render.overlay import draw_field_overlay

MODE_ORDER = [CalibrationMode.CENTER_CIRCLE, CalibrationMode.AWAY_GOAL, CalibrationMode.HOME_GOAL]
WINDOW = "pitchmark calibration"


def _draw_clicks(img: np.ndarray, points: list[tuple[float, float]]) -> np.ndarray:
    out = img.copy()
    for idx, (x, y) in enumerate(points, start=1):
        pt = (int(round(x)), int(round(y)))
        cv2.circle(out, pt, 5, (0, 255, 255), -1)
        cv2.putText(out, str(idx), (pt[0] + 6, pt[1] - 6), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 255, 255), 1)
    return out


def _next_mode(mode: CalibrationMode) -> CalibrationMode:
    return MODE_ORDER[(MODE_ORDER.index(mode) + 1) % len(MODE_ORDER)]


def _announce(session: CalibrationSession) -> None:
    status = session.status
    prompt = session.next_prompt()
    if prompt:
        print(f"[pitchmark] click: step {status.count + 1}/{status.required} -> {prompt}")
    elif session.is_complete:
        print("[pitchmark] click: calibration complete, press q to save")


def render_click_view(frame: np.ndarray, session: CalibrationSession, overlay: dict | None = None) -> np.ndarray:
    display = draw_field_overlay(frame, session, overlay)
    display = _draw_clicks(display, session.image_points)
    status = session.status
    mode = status.mode.value if status.mode else "none"
    text = f"mode={mode} points={status.count}/{status.required} state={status.state}"
    cv2.putText(display, text, (12, 22), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 220, 0), 2)
    prompt = session.next_prompt()
    if prompt:
        cv2.putText(display, prompt, (12, 46), cv2.FONT_HERSHEY_SIMPLEX, 0.55, (255, 255, 255), 1)
    return display


def run_click_calibration(
    video: str,
    out_json: str | Path,
    mode: CalibrationMode | str = CalibrationMode.CENTER_CIRCLE,
    frame_idx: int = 0,
    field: FieldDimensions = DEFAULT_FIELD,
    overlay: dict | None = None,
) -> CalibrationSession:
    frame = read_frame(video, frame_idx)
    session = CalibrationSession(dimensions=field)
    session.select_mode(parse_mode(mode))

    print("[pitchmark] click: left-click the prompted pitch point on the frame.")
    print("[pitchmark] click: keys -> u(undo point), c(clear), m(next mode), q(save+quit), esc(cancel)")
    _announce(session)

    def on_click(event, mx, my, flags, param):
        if event != cv2.EVENT_LBUTTONDOWN or session.is_complete:
            return
        try:
            session.add_point(float(mx), float(my))
        except CalibrationError as exc:
            print(f"[pitchmark] click: calibration failed ({exc}), please retry with clearer points")
        _announce(session)

    cv2.namedWindow(WINDOW, cv2.WINDOW_NORMAL)
    cv2.setMouseCallback(WINDOW, on_click)

    while True:
        cv2.imshow(WINDOW, render_click_view(frame, session, overlay))
        key = cv2.waitKey(20) & 0xFF
        if key == ord("u"):
            if session.is_complete:
                print("[pitchmark] click: calibration already complete, press c to start over")
            else:
                session.undo_point()
                _announce(session)
        elif key == ord("c"):
            session.select_mode(session.mode)
            _announce(session)
        elif key == ord("m"):
            session.select_mode(_next_mode(session.mode))
            print(f"[pitchmark] click: switched mode -> {session.mode.value}")
            _announce(session)
        elif key == ord("q"):
            if session.is_complete:
                save_calibration(session, out_json, {"video": str(video), "frame_idx": int(frame_idx)})
                print(f"[pitchmark] click: saved calibration -> {out_json}")
                break
            print("[pitchmark] click: calibration incomplete, keep clicking or press esc to cancel")
        elif key == 27:
            cv2.destroyAllWindows()
            raise RuntimeError("Calibration cancelled by user")

    cv2.destroyAllWindows()
    return session
