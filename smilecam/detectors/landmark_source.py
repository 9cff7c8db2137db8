from __future__ import annotations

from typing import Any, Optional

import cv2
import numpy as np

from smilecam.config import LandmarkSourceConfig
from smilecam.errors import LandmarkSourceError
from smilecam.landmarks.schema import LandmarkPoint, LandmarkSet, expected_point_count, validate_schema
from smilecam.utils.logging import setup_logger


logger = setup_logger()


def landmarks_from_mediapipe(face_landmarks: Any) -> LandmarkSet:
    """Convert a mediapipe NormalizedLandmarkList to a LandmarkSet."""
    return LandmarkSet(LandmarkPoint(float(p.x), float(p.y), float(p.z)) for p in face_landmarks.landmark)


class FaceMeshLandmarkSource:
    """MediaPipe Face Mesh, first face only. The model is loaded on first use."""

    def __init__(self, config: Optional[LandmarkSourceConfig] = None) -> None:
        self.config = config or LandmarkSourceConfig()
        validate_schema(expected_point_count(self.config.refine_landmarks))
        self._mesh = None

    @property
    def loaded(self) -> bool:
        return self._mesh is not None

    def load(self) -> None:
        if self._mesh is not None:
            return
        try:
            import mediapipe as mp
        except ImportError as e:
            raise LandmarkSourceError("mediapipe is not installed (pip install smilecam[mediapipe])") from e

        c = self.config
        self._mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=c.max_faces,
            refine_landmarks=c.refine_landmarks,
            min_detection_confidence=c.min_detection_confidence,
            min_tracking_confidence=c.min_tracking_confidence,
        )
        logger.info(
            f"Loaded MediaPipe FaceMesh (max_faces={c.max_faces}, refine={c.refine_landmarks}, "
            f"det={c.min_detection_confidence}, track={c.min_tracking_confidence})"
        )

    def detect(self, frame_bgr: np.ndarray) -> Optional[LandmarkSet]:
        if self._mesh is None:
            self.load()
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        results = self._mesh.process(rgb)
        if not results.multi_face_landmarks:
            return None
        return landmarks_from_mediapipe(results.multi_face_landmarks[0])

    def close(self) -> None:
        mesh, self._mesh = self._mesh, None
        if mesh is not None:
            mesh.close()
