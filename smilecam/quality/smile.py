from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from smilecam.config import ClassifierConfig
from smilecam.landmarks.schema import FaceMeshIndex, LandmarkSet


@dataclass(frozen=True)
class MouthMetrics:
    width: float
    height: float
    center_y: float
    left_lift: float
    right_lift: float
    aspect_ratio: float


class SmileClassifier:
    """
    Geometric smile test on Face Mesh mouth landmarks:
      - both mouth corners sit above the lip midline (y grows downward)
      - the mouth is much wider than it is open
    """

    def __init__(self, config: Optional[ClassifierConfig] = None) -> None:
        self.config = config or ClassifierConfig()

    def measure(self, landmarks: LandmarkSet) -> MouthMetrics:
        """Raises InvalidLandmarks when a mouth point is missing."""
        left = landmarks.require(FaceMeshIndex.LEFT_MOUTH_CORNER)
        right = landmarks.require(FaceMeshIndex.RIGHT_MOUTH_CORNER)
        upper = landmarks.require(FaceMeshIndex.UPPER_LIP)
        lower = landmarks.require(FaceMeshIndex.LOWER_LIP)

        width = abs(right.x - left.x)
        height = abs(lower.y - upper.y)
        center_y = (upper.y + lower.y) / 2.0
        # Closed lips: any width counts as wide
        aspect = width / height if height > 0 else math.inf
        return MouthMetrics(
            width=width,
            height=height,
            center_y=center_y,
            left_lift=center_y - left.y,
            right_lift=center_y - right.y,
            aspect_ratio=aspect,
        )

    def is_smile(self, m: MouthMetrics) -> bool:
        t = self.config.corner_lift_threshold
        return m.left_lift > t and m.right_lift > t and m.aspect_ratio > self.config.aspect_ratio_threshold

    def classify(self, landmarks: LandmarkSet) -> bool:
        return self.is_smile(self.measure(landmarks))
