from __future__ import annotations

import threading
from typing import Iterator, Optional, Tuple

from smilecam.session import SessionController
from smilecam.utils.image import encode_jpeg
from smilecam.utils.logging import setup_logger


logger = setup_logger()


class SessionWorker(threading.Thread):
    """Background frame loop: the only thread that calls controller.step()."""

    def __init__(self, controller: SessionController, idle_interval: float = 0.05, jpeg_quality: int = 80) -> None:
        super().__init__(name="smilecam-frames", daemon=True)
        self.controller = controller
        self.idle_interval = idle_interval
        self.jpeg_quality = jpeg_quality
        self._halt = threading.Event()
        self._cond = threading.Condition()
        self._jpeg: Optional[bytes] = None
        self._seq = 0

    def run(self) -> None:
        logger.info("Frame worker started")
        while not self._halt.is_set():
            try:
                out = self.controller.step()
            except Exception:
                logger.exception("Frame loop failed; stopping session")
                self.controller.stop("Error: frame processing failed")
                out = None
            if out is None:
                self._publish(None)
                self._halt.wait(self.idle_interval)
                continue
            self._publish(encode_jpeg(out, self.jpeg_quality))
        logger.info("Frame worker stopped")

    def _publish(self, jpeg: Optional[bytes]) -> None:
        with self._cond:
            if jpeg is None and self._jpeg is None:
                return
            self._jpeg = jpeg
            self._seq += 1
            self._cond.notify_all()

    def latest(self) -> Tuple[int, Optional[bytes]]:
        with self._cond:
            return self._seq, self._jpeg

    def wait_for_frame(self, after_seq: int, timeout: float = 1.0) -> Tuple[int, Optional[bytes]]:
        with self._cond:
            self._cond.wait_for(lambda: self._seq != after_seq or self._halt.is_set(), timeout=timeout)
            return self._seq, self._jpeg

    def mjpeg(self) -> Iterator[bytes]:
        """multipart/x-mixed-replace body parts, one per composited frame."""
        seq = -1
        while not self._halt.is_set():
            new_seq, jpeg = self.wait_for_frame(seq)
            if new_seq == seq or jpeg is None:
                seq = new_seq
                continue
            seq = new_seq
            yield b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + jpeg + b"\r\n"

    def shutdown(self, timeout: float = 2.0) -> None:
        self._halt.set()
        with self._cond:
            self._cond.notify_all()
        if self.is_alive():
            self.join(timeout)
