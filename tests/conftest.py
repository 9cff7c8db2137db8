from __future__ import annotations

import random
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import pytest

from smilecam.config import AppConfig
from smilecam.errors import CameraError
from smilecam.landmarks.schema import FACE_MESH_REFINED_POINTS, FaceMeshIndex, LandmarkPoint, LandmarkSet
from smilecam.reaction.timers import ManualClock
from smilecam.session import SessionController, build_session


SMILE_POINTS: Dict[int, Tuple[float, float]] = {
    FaceMeshIndex.NOSE_TIP: (0.50, 0.45),
    FaceMeshIndex.LEFT_MOUTH_CORNER: (0.30, 0.53),
    FaceMeshIndex.RIGHT_MOUTH_CORNER: (0.70, 0.53),
    FaceMeshIndex.UPPER_LIP: (0.50, 0.55),
    FaceMeshIndex.LOWER_LIP: (0.50, 0.58),
}

NEUTRAL_POINTS: Dict[int, Tuple[float, float]] = {
    FaceMeshIndex.NOSE_TIP: (0.50, 0.45),
    FaceMeshIndex.LEFT_MOUTH_CORNER: (0.35, 0.60),
    FaceMeshIndex.RIGHT_MOUTH_CORNER: (0.65, 0.60),
    FaceMeshIndex.UPPER_LIP: (0.50, 0.57),
    FaceMeshIndex.LOWER_LIP: (0.50, 0.62),
}


def make_landmarks(points: Dict[int, Tuple[float, float]], size: int = FACE_MESH_REFINED_POINTS) -> LandmarkSet:
    pts = [LandmarkPoint(0.5, 0.5, 0.0) for _ in range(size)]
    for idx, (x, y) in points.items():
        if int(idx) < size:
            pts[int(idx)] = LandmarkPoint(x, y, 0.0)
    return LandmarkSet(pts)


class FakeStream:
    def __init__(self, width: int = 640, height: int = 480, frames: Optional[int] = None) -> None:
        self.source = "fake"
        self.width = width
        self.height = height
        self.frames_left = frames
        self.reads = 0
        self.stopped = False
        self.fps = 30.0
        self.frame_count = frames or 0

    @property
    def active(self) -> bool:
        return not self.stopped

    def read(self):
        if self.stopped:
            return None
        if self.frames_left is not None:
            if self.frames_left <= 0:
                return None
            self.frames_left -= 1
        self.reads += 1
        return np.full((self.height, self.width, 3), 40, dtype=np.uint8)

    def stop(self) -> None:
        self.stopped = True


class FakeCamera:
    def __init__(self, error: Optional[CameraError] = None, frames: Optional[int] = None) -> None:
        self.error = error
        self.frames = frames
        self.acquired: List[FakeStream] = []
        self.released: List[FakeStream] = []

    def acquire(self, constraints=None) -> FakeStream:
        if self.error is not None:
            raise self.error
        w = constraints.width if constraints is not None else 640
        h = constraints.height if constraints is not None else 480
        stream = FakeStream(w, h, frames=self.frames)
        self.acquired.append(stream)
        return stream

    def release(self, stream) -> None:
        if stream is not None:
            stream.stop()
            self.released.append(stream)


class FakeLandmarkSource:
    def __init__(self, landmarks: Optional[LandmarkSet] = None) -> None:
        self.landmarks = landmarks
        self.loads = 0
        self.calls = 0
        self.on_detect: Optional[Callable[[], None]] = None
        self.error: Optional[Exception] = None

    def load(self) -> None:
        self.loads += 1

    def detect(self, frame):
        self.calls += 1
        if self.on_detect is not None:
            self.on_detect()
        if self.error is not None:
            raise self.error
        return self.landmarks


@pytest.fixture
def landmarks_factory():
    return make_landmarks


@pytest.fixture
def smile_landmarks() -> LandmarkSet:
    return make_landmarks(SMILE_POINTS)


@pytest.fixture
def neutral_landmarks() -> LandmarkSet:
    return make_landmarks(NEUTRAL_POINTS)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=100.0)


@pytest.fixture
def camera() -> FakeCamera:
    return FakeCamera()


@pytest.fixture
def source(smile_landmarks) -> FakeLandmarkSource:
    return FakeLandmarkSource(smile_landmarks)


@pytest.fixture
def session(camera, source, clock) -> SessionController:
    return build_session(AppConfig(), camera=camera, landmark_source=source, clock=clock, rng=random.Random(7))
