from __future__ import annotations

import random
from pathlib import Path
from typing import Callable, Dict, List, Optional

import cv2
from tqdm import tqdm

from smilecam.config import AppConfig
from smilecam.detectors.camera import VideoFileCamera
from smilecam.errors import DeviceUnavailable
from smilecam.reaction.presenter import ReactionEvent
from smilecam.reaction.timers import ManualClock
from smilecam.session import LandmarkSource, SessionState, build_session
from smilecam.utils.fs import ensure_dir, write_json
from smilecam.utils.logging import setup_logger


logger = setup_logger()

DEFAULT_FPS = 30.0


def replay_video(
    input_path: str | Path,
    output_dir: str | Path,
    config: Optional[AppConfig] = None,
    landmark_source: Optional[LandmarkSource] = None,
    rng: Optional[random.Random] = None,
    write_video: bool = True,
    progress_cb: Optional[Callable[[int, int], None]] = None,
) -> Dict:
    """
    Run a recorded video through the live session pipeline.

    Time is driven by frame timestamps (1/fps per frame), so throttling and
    overlay lifetimes match what a live run at that frame rate would show.
    Writes annotated.mp4 (optional) and reactions.json under `output_dir`.
    """
    config = config or AppConfig()
    out_root = ensure_dir(output_dir)
    clock = ManualClock()
    events: List[ReactionEvent] = []
    session = build_session(
        config,
        camera=VideoFileCamera(input_path),
        landmark_source=landmark_source,
        clock=clock,
        rng=rng,
        on_reaction=events.append,
    )
    # End of file shows up as a failed read; stop right away
    session.max_read_failures = 1
    if not session.start():
        raise DeviceUnavailable(session.status.message)

    stream = session.stream
    fps = (stream.fps if stream is not None else 0.0) or DEFAULT_FPS
    total = stream.frame_count if stream is not None else 0
    video_path = out_root / "annotated.mp4"
    writer = None
    frames = 0

    try:
        with tqdm(total=total or None, desc="Replaying frames") as bar:
            while session.state is SessionState.ACTIVE:
                out = session.step()
                if out is None:
                    continue
                if write_video and writer is None:
                    h, w = out.shape[:2]
                    writer = cv2.VideoWriter(str(video_path), cv2.VideoWriter_fourcc(*"mp4v"), fps, (w, h))
                if writer is not None:
                    writer.write(out)
                frames += 1
                bar.update(1)
                if progress_cb:
                    progress_cb(frames, total)
                clock.advance(1.0 / fps)
    finally:
        if writer is not None:
            writer.release()
        session.stop()

    result = {
        "input": str(input_path),
        "frames": frames,
        "fps": round(float(fps), 3),
        "frames_analysed": session.frames_processed,
        "reactions": [
            {
                "glyph": e.glyph,
                "time": round(e.created_at, 3),
                "frame": int(round(e.created_at * fps)),
                "x": round(e.position.x, 1),
                "y": round(e.position.y, 1),
            }
            for e in events
        ],
        "params": {
            "classifier": config.to_dict()["classifier"],
            "cooldown_s": config.throttle.cooldown_s,
        },
        "video": str(video_path) if writer is not None else None,
    }
    write_json(out_root / "reactions.json", result)
    logger.info(f"Replayed {frames} frames → {len(events)} reactions.")
    return result
