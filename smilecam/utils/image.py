from __future__ import annotations

from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import Image


JPEG_QUALITY = 80


def frame_size(frame: np.ndarray) -> Tuple[int, int]:
    """Return (width, height) of an HWC frame."""
    h, w = frame.shape[:2]
    return int(w), int(h)


def to_pixel(x: float, y: float, width: int, height: int) -> Tuple[int, int]:
    # Normalized [0,1] coordinates -> integer pixel coordinates
    return int(round(x * width)), int(round(y * height))


def bgr_to_pil(frame_bgr: np.ndarray) -> Image.Image:
    rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
    return Image.fromarray(rgb)


def pil_to_bgr(pil_img: Image.Image) -> np.ndarray:
    rgb = np.array(pil_img.convert("RGB"), dtype=np.uint8)
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)


def mirror(frame_bgr: np.ndarray) -> np.ndarray:
    return cv2.flip(frame_bgr, 1)


def encode_jpeg(frame_bgr: np.ndarray, quality: int = JPEG_QUALITY) -> Optional[bytes]:
    ok, buf = cv2.imencode(".jpg", frame_bgr, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        return None
    return buf.tobytes()


def blank_frame(width: int, height: int) -> np.ndarray:
    return np.zeros((height, width, 3), dtype=np.uint8)
