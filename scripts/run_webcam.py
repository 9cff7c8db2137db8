#!/usr/bin/env python
from __future__ import annotations

import argparse
import os
import sys

import cv2

# Add project root to sys.path for "smilecam" package
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from smilecam.config import load_config  # noqa: E402
from smilecam.errors import ConfigError  # noqa: E402
from smilecam.session import SessionState, build_session  # noqa: E402
from smilecam.utils.image import blank_frame  # noqa: E402


WINDOW_NAME = "Smile Detector"


def _status_bar(frame, text: str):
    cv2.rectangle(frame, (0, 0), (frame.shape[1], 28), (0, 0, 0), -1)
    # Hershey fonts are ASCII only
    ascii_text = text.encode("ascii", "ignore").decode().strip()
    cv2.putText(frame, ascii_text, (8, 20), cv2.FONT_HERSHEY_SIMPLEX, 0.55, (255, 255, 255), 1, cv2.LINE_AA)
    return frame


def main() -> None:
    ap = argparse.ArgumentParser(description="Smile detector in an OpenCV window (s: start, x: stop, q: quit)")
    ap.add_argument("--config", help="JSON config file")
    ap.add_argument("--camera", type=int, help="Camera index (overrides config)")
    ap.add_argument("--no-debug-overlay", action="store_true", help="Hide landmark dots and mouth outline")
    args = ap.parse_args()

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        raise SystemExit(f"Invalid config: {e}")
    if args.camera is not None:
        cfg.camera.index = args.camera
    if args.no_debug_overlay:
        cfg.presenter.debug_overlay = False

    session = build_session(cfg)
    session.start()
    idle = blank_frame(cfg.camera.width, cfg.camera.height)

    try:
        while True:
            out = session.step()
            if out is None:
                out = idle.copy()
            cv2.imshow(WINDOW_NAME, _status_bar(out, session.status.message))

            key = cv2.waitKey(1 if session.state is SessionState.ACTIVE else 50) & 0xFF
            if key == ord("q"):
                break
            if key == ord("s"):
                session.start()
            elif key == ord("x"):
                session.stop()
            # Window closed with the title bar button
            if cv2.getWindowProperty(WINDOW_NAME, cv2.WND_PROP_VISIBLE) < 1:
                break
    finally:
        session.stop()
        cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
