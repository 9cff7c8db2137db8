from __future__ import annotations

import random
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol

import numpy as np

from smilecam.config import AppConfig, CameraConfig
from smilecam.detectors.camera import CameraStream, OpenCVCamera
from smilecam.detectors.landmark_source import FaceMeshLandmarkSource
from smilecam.errors import CameraError, InvalidLandmarks, LandmarkSourceError
from smilecam.landmarks.schema import FaceMeshIndex, LandmarkSet
from smilecam.quality.smile import SmileClassifier
from smilecam.reaction.presenter import Position, ReactionEvent, ReactionPresenter
from smilecam.reaction.throttle import ReactionThrottle
from smilecam.reaction.timers import Clock, TimerRegistry
from smilecam.utils.image import frame_size
from smilecam.utils.logging import setup_logger
from smilecam.viz.debug_overlay import draw_debug_overlay
from smilecam.viz.surface import PresentationSurface


logger = setup_logger()


STATUS_READY = "Click Start to begin"
STATUS_REQUESTING = "Requesting camera access..."
STATUS_ACTIVE = "Camera active - Smile for the camera! 😊"
STATUS_SMILE = "Smile detected! 😄"
STATUS_STOPPED = "Camera stopped"
STATUS_STREAM_ENDED = "Camera stream ended"


class Camera(Protocol):
    def acquire(self, constraints: Optional[CameraConfig] = None) -> CameraStream: ...

    def release(self, stream: Optional[CameraStream]) -> None: ...


class LandmarkSource(Protocol):
    def load(self) -> None: ...

    def detect(self, frame_bgr: np.ndarray) -> Optional[LandmarkSet]: ...


class SessionState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    ACTIVE = "active"


class StatusChannel:
    """Human-readable status line. Advisory only."""

    def __init__(self, initial: str = STATUS_READY) -> None:
        self.message = initial
        self._subscribers: List[Callable[[str], None]] = []

    def subscribe(self, callback: Callable[[str], None]) -> None:
        self._subscribers.append(callback)

    def publish(self, message: str) -> None:
        if message != self.message:
            logger.info(f"Status: {message}")
        self.message = message
        for cb in list(self._subscribers):
            cb(message)


class SessionController:
    """
    Owns the camera/detector lifecycle and routes each detection through
    classifier -> throttle -> presenter.

    States: IDLE -> REQUESTING -> ACTIVE -> IDLE. While ACTIVE the session can be
    suspended (host hidden): frames keep flowing for display but are not analysed.
    Host threads call start/stop/set_hidden; a single frame thread calls step().
    """

    def __init__(
        self,
        camera: Camera,
        landmark_source: LandmarkSource,
        classifier: SmileClassifier,
        throttle: ReactionThrottle,
        presenter: ReactionPresenter,
        config: Optional[AppConfig] = None,
        clock: Clock = time.monotonic,
        status: Optional[StatusChannel] = None,
        on_reaction: Optional[Callable[[ReactionEvent], None]] = None,
        max_read_failures: int = 5,
    ) -> None:
        self.camera = camera
        self.landmark_source = landmark_source
        self.classifier = classifier
        self.throttle = throttle
        self.presenter = presenter
        self.surface: PresentationSurface = presenter.surface
        self.config = config or AppConfig()
        self.clock = clock
        self.status = status or StatusChannel()
        self.on_reaction = on_reaction
        self.max_read_failures = max_read_failures

        self.state = SessionState.IDLE
        self._hidden = False
        self._stream: Optional[CameraStream] = None
        self._epoch = 0
        self._lock = threading.RLock()
        self._detect_lock = threading.Lock()
        # Capture reads and releases never overlap
        self._io_lock = threading.Lock()
        self._read_failures = 0
        self._bad_frames = 0

        self.frames_processed = 0
        self.frames_dropped = 0
        self.reactions = 0

    # ---------- lifecycle ----------
    @property
    def suspended(self) -> bool:
        return self.state is SessionState.ACTIVE and self._hidden

    @property
    def stream(self) -> Optional[CameraStream]:
        return self._stream

    def start(self) -> bool:
        """Acquire the camera. Returns True if this call activated the session."""
        with self._lock:
            if self.state is not SessionState.IDLE:
                return False
            self.state = SessionState.REQUESTING
        self.status.publish(STATUS_REQUESTING)

        try:
            self.landmark_source.load()
            stream = self.camera.acquire(self.config.camera)
        except CameraError as e:
            logger.warning(f"Camera acquisition failed: {e}")
            self._to_idle()
            self.status.publish(e.status_message)
            return False
        except LandmarkSourceError as e:
            logger.warning(f"Landmark source unavailable: {e}")
            self._to_idle()
            self.status.publish(f"Error: {e}")
            return False
        except Exception as e:
            logger.exception(f"Unexpected failure while starting the session: {e}")
            self._to_idle()
            self.status.publish(f"Error: Could not start camera ({e})")
            return False

        with self._lock:
            if self.state is not SessionState.REQUESTING:
                # stop() arrived while the camera was being acquired
                self.camera.release(stream)
                return False
            self._stream = stream
            self._epoch += 1
            self._read_failures = 0
            self._bad_frames = 0
            self.state = SessionState.ACTIVE
        self.status.publish(STATUS_ACTIVE)
        return True

    def stop(self, message: str = STATUS_STOPPED) -> bool:
        """Release the camera and clear the overlay. Returns False if already idle."""
        with self._lock:
            if self.state is SessionState.IDLE:
                return False
            stream = self._to_idle()
            self.presenter.clear()
        if stream is not None:
            with self._io_lock:
                self.camera.release(stream)
        self.status.publish(message)
        return True

    def _to_idle(self) -> Optional[CameraStream]:
        with self._lock:
            stream, self._stream = self._stream, None
            self.state = SessionState.IDLE
            # In-flight detections from the old epoch become no-ops
            self._epoch += 1
            return stream

    def set_hidden(self, hidden: bool) -> None:
        with self._lock:
            if hidden == self._hidden:
                return
            self._hidden = hidden
            if self.state is SessionState.ACTIVE:
                logger.info("Detection paused (host hidden)" if hidden else "Detection resumed")

    # ---------- per frame ----------
    def process_frame(self, frame: np.ndarray) -> bool:
        """Run detection and reactions for one frame. False if the frame was skipped."""
        with self._lock:
            if self.state is not SessionState.ACTIVE or self._hidden:
                return False
            epoch = self._epoch

        if not self._detect_lock.acquire(blocking=False):
            self.frames_dropped += 1
            return False
        try:
            landmarks = self.landmark_source.detect(frame)
        except Exception as e:
            logger.warning(f"Landmark detection failed, skipping frame: {e}")
            with self._lock:
                self.surface.clear_raster()
            return False
        finally:
            self._detect_lock.release()

        with self._lock:
            if epoch != self._epoch or self.state is not SessionState.ACTIVE or self._hidden:
                return False
            self.frames_processed += 1
            w, h = frame_size(frame)
            self._handle_landmarks(landmarks, w, h)
        return True

    def _handle_landmarks(self, landmarks: Optional[LandmarkSet], width: int, height: int) -> None:
        self.surface.clear_raster()
        if landmarks is None:
            return
        if self.config.presenter.debug_overlay:
            draw_debug_overlay(self.surface, landmarks, width, height)

        try:
            smiling = self.classifier.classify(landmarks)
            nose = landmarks.require(FaceMeshIndex.NOSE_TIP) if smiling else None
        except InvalidLandmarks as e:
            # Not smiling; warn once per run of bad frames
            if self._bad_frames == 0:
                logger.warning(f"Skipping classification: {e}")
            self._bad_frames += 1
            return
        self._bad_frames = 0

        if nose is not None:
            self._on_smile(Position(nose.x * width, nose.y * height))

    def _on_smile(self, position: Position) -> None:
        if not self.throttle.should_fire(self.clock()):
            return
        handle = self.presenter.present(position)
        self.reactions += 1
        self.status.publish(STATUS_SMILE)
        if self.on_reaction is not None:
            self.on_reaction(handle.event)

    def tick(self) -> int:
        with self._lock:
            return self.presenter.timers.run_due(self.clock())

    def step(self) -> Optional[np.ndarray]:
        """Read, analyse and composite one frame. None when there is nothing to show."""
        with self._lock:
            stream = self._stream if self.state is SessionState.ACTIVE else None
        if stream is None:
            self.tick()
            return None

        with self._io_lock:
            frame = stream.read()
        if frame is None:
            self._read_failures += 1
            if self._read_failures >= self.max_read_failures:
                logger.warning(f"No frames from {stream.source} after {self._read_failures} reads")
                self.stop(STATUS_STREAM_ENDED)
            return None
        self._read_failures = 0

        self.process_frame(frame)
        with self._lock:
            self.presenter.timers.run_due(self.clock())
            if self.state is not SessionState.ACTIVE:
                return None
            return self.surface.compose(frame, self.clock())

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "state": self.state.value,
                "suspended": self.suspended,
                "status": self.status.message,
                "frames_processed": self.frames_processed,
                "frames_dropped": self.frames_dropped,
                "reactions": self.reactions,
            }


def build_session(
    config: Optional[AppConfig] = None,
    camera: Optional[Camera] = None,
    landmark_source: Optional[LandmarkSource] = None,
    clock: Clock = time.monotonic,
    rng: Optional[random.Random] = None,
    on_reaction: Optional[Callable[[ReactionEvent], None]] = None,
) -> SessionController:
    """Wire a SessionController from config, defaulting to OpenCV + MediaPipe."""
    config = config or AppConfig()
    surface = PresentationSurface(glyph_size=config.presenter.glyph_size, font_path=config.presenter.font_path)
    presenter = ReactionPresenter(surface, TimerRegistry(clock), config.presenter, rng=rng)
    return SessionController(
        camera=camera or OpenCVCamera(config.camera),
        landmark_source=landmark_source or FaceMeshLandmarkSource(config.landmarks),
        classifier=SmileClassifier(config.classifier),
        throttle=ReactionThrottle(config.throttle),
        presenter=presenter,
        config=config,
        clock=clock,
        on_reaction=on_reaction,
    )
