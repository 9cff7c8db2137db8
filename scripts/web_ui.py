#!/usr/bin/env python
from __future__ import annotations

import argparse
import os
import sys

# Add project root to sys.path for "smilecam" package
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from smilecam.config import load_config  # noqa: E402
from smilecam.errors import ConfigError  # noqa: E402
from smilecam.runner import SessionWorker  # noqa: E402
from smilecam.session import build_session  # noqa: E402
from smilecam.utils.logging import setup_logger  # noqa: E402
from smilecam.web.app import create_app  # noqa: E402


logger = setup_logger()


def main() -> None:
    ap = argparse.ArgumentParser(description="Serve the smile detector in the browser")
    ap.add_argument("--config", help="JSON config file (see DESIGN.md for keys)")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=int(os.environ.get("PORT", 8000)))
    ap.add_argument("--autostart", action="store_true", help="Start the camera immediately")
    args = ap.parse_args()

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        raise SystemExit(f"Invalid config: {e}")

    controller = build_session(cfg)
    worker = SessionWorker(controller)
    worker.start()
    if args.autostart:
        controller.start()

    app = create_app(controller, worker)
    logger.info(f"Serving on http://{args.host}:{args.port}")
    try:
        # Run without reloader: the worker thread and camera must stay single
        app.run(host=args.host, port=args.port, debug=False, threaded=True, use_reloader=False)
    finally:
        controller.stop()
        worker.shutdown()


if __name__ == "__main__":
    main()
