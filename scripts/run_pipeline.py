#!/usr/bin/env python
from __future__ import annotations

import argparse
import os
import sys

# Add project root to sys.path for "smilecam" package
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from smilecam.config import load_config  # noqa: E402
from smilecam.errors import SmileCamError  # noqa: E402
from smilecam.pipeline import replay_video  # noqa: E402


def main() -> None:
    ap = argparse.ArgumentParser(description="Replay a recorded video through the smile detector")
    ap.add_argument("--input", required=True, help="Input video file (e.g., data/clip.mp4)")
    ap.add_argument("--out", required=True, help="Output directory for annotated.mp4 and reactions.json")
    ap.add_argument("--config", help="JSON config file")
    ap.add_argument("--cooldown", type=float, help="Reaction cooldown in seconds (overrides config)")
    ap.add_argument("--no-video", action="store_true", help="Only write reactions.json")
    args = ap.parse_args()

    try:
        cfg = load_config(args.config)
        if args.cooldown is not None:
            cfg.throttle.cooldown_s = args.cooldown
        result = replay_video(args.input, args.out, config=cfg, write_video=not args.no_video)
    except SmileCamError as e:
        raise SystemExit(f"Replay failed: {e}")
    print(f"{len(result['reactions'])} reactions in {result['frames']} frames → {os.path.join(args.out, 'reactions.json')}")


if __name__ == "__main__":
    main()
