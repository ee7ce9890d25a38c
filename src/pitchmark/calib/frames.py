from __future__ import annotations

from pathlib import Path

import cv2


def read_frame(video_path: str | Path, frame_idx: int = 0):
    cap = cv2.VideoCapture(str(video_path))
    cap.set(cv2.CAP_PROP_POS_FRAMES, frame_idx)
    ok, frame = cap.read()
    cap.release()
    if not ok or frame is None:
        raise RuntimeError(f"Unable to read frame {frame_idx} from {video_path}")
    return frame


def write_frame(path: str | Path, frame) -> str:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(out), frame):
        raise RuntimeError(f"Unable to write image {out}")
    return str(out)
