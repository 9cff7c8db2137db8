from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from smilecam.config import CameraConfig
from smilecam.errors import DeviceUnavailable, PermissionDenied
from smilecam.utils.image import mirror
from smilecam.utils.logging import setup_logger


logger = setup_logger()


class CameraStream:
    """An open capture. `stop()` releases it and is safe to call more than once."""

    def __init__(self, capture: cv2.VideoCapture, source: str, mirrored: bool = False) -> None:
        self._cap: Optional[cv2.VideoCapture] = capture
        self.source = source
        self.mirrored = mirrored

    @property
    def active(self) -> bool:
        return self._cap is not None

    @property
    def fps(self) -> float:
        if self._cap is None:
            return 0.0
        return float(self._cap.get(cv2.CAP_PROP_FPS) or 0.0)

    @property
    def frame_count(self) -> int:
        if self._cap is None:
            return 0
        return max(0, int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0))

    def read(self) -> Optional[np.ndarray]:
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        return mirror(frame) if self.mirrored else frame

    def stop(self) -> None:
        cap, self._cap = self._cap, None
        if cap is not None:
            cap.release()
            logger.info(f"Released camera {self.source}")


def _check_device_permissions(index: int) -> None:
    # Only Linux exposes capture devices as files we can inspect up front
    if not sys.platform.startswith("linux"):
        return
    dev = Path(f"/dev/video{index}")
    if dev.exists() and not os.access(dev, os.R_OK | os.W_OK):
        raise PermissionDenied(f"no read/write access to {dev}")


class OpenCVCamera:
    """Camera resource backed by cv2.VideoCapture (device index or stream URL)."""

    def __init__(self, config: Optional[CameraConfig] = None) -> None:
        self.config = config or CameraConfig()

    def _open(self, constraints: CameraConfig) -> tuple[cv2.VideoCapture, str]:
        if constraints.url:
            return cv2.VideoCapture(constraints.url), constraints.url
        _check_device_permissions(constraints.index)
        return cv2.VideoCapture(constraints.index), f"#{constraints.index}"

    def acquire(self, constraints: Optional[CameraConfig] = None) -> CameraStream:
        c = constraints or self.config
        cap, source = self._open(c)
        if not cap.isOpened():
            cap.release()
            raise DeviceUnavailable(f"could not open camera {source}")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, c.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, c.height)
        # Probe one frame; some backends open fine but never deliver
        ok, _ = cap.read()
        if not ok:
            cap.release()
            raise DeviceUnavailable(f"camera {source} delivered no frames")
        logger.info(f"Acquired camera {source} ({c.width}x{c.height}, facing={c.facing_mode})")
        return CameraStream(cap, source, mirrored=c.facing_mode == "user")

    def release(self, stream: Optional[CameraStream]) -> None:
        if stream is not None:
            stream.stop()


class VideoFileCamera:
    """Plays a recorded video through the same camera interface (for replay)."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def acquire(self, constraints: Optional[CameraConfig] = None) -> CameraStream:
        if not self.path.exists():
            raise DeviceUnavailable(f"video not found: {self.path}")
        cap = cv2.VideoCapture(str(self.path))
        if not cap.isOpened():
            cap.release()
            raise DeviceUnavailable(f"could not open video {self.path}")
        logger.info(f"Opened video {self.path}")
        return CameraStream(cap, str(self.path), mirrored=False)

    def release(self, stream: Optional[CameraStream]) -> None:
        if stream is not None:
            stream.stop()
