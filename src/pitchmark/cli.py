from __future__ import annotations

import argparse
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path
from time import monotonic

from .utils.config import calibration_points, field_from_config, load_config, overlay_settings
from .utils.io import ensure_dir, parse_point

_STARTED = monotonic()


def _log(message: str) -> None:
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
    print(f"[{stamp} +{monotonic() - _STARTED:7.2f}s] {message}", flush=True)


def _format_metrics(metrics: list[dict]) -> str:
    parts = []
    for row in metrics:
        if not row.get("count"):
            continue
        parts.append(f"{row['direction']}: avg={row['avg_px']:.3f} max={row['max_px']:.3f}")
    return "; ".join(parts) or "n/a"


def _resolve_mode(args, cfg: dict) -> str:
    mode = getattr(args, "mode", None) or (cfg.get("calibration") or {}).get("mode")
    if not mode:
        raise ValueError("Calibration mode missing: pass --mode or set calibration.mode in the config")
    return mode


def _optional_config(path: str | None) -> dict:
    return load_config(path) if path else {}


def cmd_calibrate(args):
    from .calib.errors import InsufficientPointsError
    from .calib.session import CalibrationSession, calibration_metrics, save_calibration

    cfg = load_config(args.config)
    mode = _resolve_mode(args, cfg)
    points = calibration_points(cfg)
    _log(f"[pitchmark] calibrate: mode={mode} points={len(points)}")

    session = CalibrationSession(dimensions=field_from_config(cfg))
    status = session.select_mode(mode)
    if len(points) != status.required:
        raise InsufficientPointsError(f"Mode {mode} needs {status.required} image points, config has {len(points)}")
    for x, y in points:
        session.add_point(x, y)

    metrics = calibration_metrics(session)
    out = Path(args.out)
    save_calibration(session, out, {"metrics": metrics})
    _log(f"[pitchmark] calibrate: reprojection {_format_metrics(metrics)}")
    _log(f"[pitchmark] calibrate: complete -> {out}")
    return session


def cmd_overlay(args):
    from .calib.frames import read_frame, write_frame
    from .calib.session import load_calibration
    from .render.overlay import draw_field_overlay

    cfg = _optional_config(args.config)
    session = load_calibration(args.calib)
    frame = read_frame(args.video, args.frame)
    out = write_frame(args.out, draw_field_overlay(frame, session, overlay_settings(cfg)))
    _log(f"[pitchmark] overlay: complete -> {out}")


def cmd_warp(args):
    from .calib.errors import CalibrationUnavailableError
    from .calib.frames import read_frame, write_frame
    from .calib.session import load_calibration
    from .render.warp import warp_to_field

    cfg = _optional_config(args.config)
    px_per_meter = args.px_per_meter or float((cfg.get("warp") or {}).get("px_per_meter", 10.0))
    session = load_calibration(args.calib)
    frame = read_frame(args.video, args.frame)
    pair = session.matrices()
    if pair is None:
        raise CalibrationUnavailableError(f"{args.calib} does not hold a completed calibration")
    _, inverse = pair
    out = write_frame(args.out, warp_to_field(frame, inverse, session.dimensions, px_per_meter))
    _log(f"[pitchmark] warp: complete -> {out}")


def cmd_measure(args):
    from .calib.session import load_calibration
    from .measure.distance import measure_distance

    session = load_calibration(args.calib)
    result = measure_distance(session, parse_point(args.start), parse_point(args.end))
    if result is None:
        _log("[pitchmark] measure: a point lies at infinity, no distance")
        return None
    _log(
        f"[pitchmark] measure: {result.label} "
        f"field=({result.start[0]:.2f},{result.start[1]:.2f})->({result.end[0]:.2f},{result.end[1]:.2f})"
    )
    return result


def cmd_click(args):
    from .ui.click_gui import run_click_calibration

    cfg = _optional_config(args.config)
    ensure_dir(Path(args.out).parent)
    run_click_calibration(
        args.video,
        args.out,
        mode=args.mode or (cfg.get("calibration") or {}).get("mode", "center-circle"),
        frame_idx=args.frame,
        field=field_from_config(cfg),
        overlay=overlay_settings(cfg),
    )
    _log("[pitchmark] click: complete")


def cmd_review(args):
    app_path = Path(__file__).resolve().parent / "ui" / "review_app.py"
    cmd = [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(app_path),
        "--server.port",
        str(args.port),
        "--server.address",
        args.host,
        "--server.headless",
        "false" if args.browser else "true",
        "--",
        "--video",
        args.video,
        "--calib",
        args.calib,
        "--frame",
        str(args.frame),
    ]
    if args.config:
        cmd.extend(["--config", args.config])
    subprocess.run(cmd, check=True)


def build_parser():
    modes = ["away-goal", "home-goal", "center-circle"]
    p = argparse.ArgumentParser(prog="pitchmark")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("calibrate")
    s.add_argument("--config", required=True)
    s.add_argument("--out", required=True)
    s.add_argument("--mode", choices=modes)
    s.set_defaults(func=cmd_calibrate)

    s = sub.add_parser("overlay")
    s.add_argument("--video", required=True)
    s.add_argument("--calib", required=True)
    s.add_argument("--out", required=True)
    s.add_argument("--config")
    s.add_argument("--frame", type=int, default=0)
    s.set_defaults(func=cmd_overlay)

    s = sub.add_parser("warp")
    s.add_argument("--video", required=True)
    s.add_argument("--calib", required=True)
    s.add_argument("--out", required=True)
    s.add_argument("--config")
    s.add_argument("--frame", type=int, default=0)
    s.add_argument("--px-per-meter", dest="px_per_meter", type=float)
    s.set_defaults(func=cmd_warp)

    s = sub.add_parser("measure")
    s.add_argument("--calib", required=True)
    s.add_argument("--start", required=True)
    s.add_argument("--end", required=True)
    s.set_defaults(func=cmd_measure)

    s = sub.add_parser("click")
    s.add_argument("--video", required=True)
    s.add_argument("--out", required=True)
    s.add_argument("--config")
    s.add_argument("--mode", choices=modes)
    s.add_argument("--frame", type=int, default=0)
    s.set_defaults(func=cmd_click)

    s = sub.add_parser("review")
    s.add_argument("--video", required=True)
    s.add_argument("--calib", required=True)
    s.add_argument("--config")
    s.add_argument("--frame", type=int, default=0)
    s.add_argument("--port", type=int, default=8501)
    s.add_argument("--host", default="127.0.0.1")
    s.add_argument("--browser", dest="browser", action="store_true")
    s.add_argument("--no-browser", dest="browser", action="store_false")
    s.set_defaults(browser=True)
    s.set_defaults(func=cmd_review)
    return p


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args)
    except Exception as exc:
        print(f"[pitchmark] error: {exc}", file=sys.stderr, flush=True)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
