from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Iterator, Optional, Sequence, Tuple

import numpy as np

from smilecam.errors import ConfigError, InvalidLandmarks


FACE_MESH_POINTS = 468
FACE_MESH_REFINED_POINTS = 478  # + iris landmarks


class FaceMeshIndex(IntEnum):
    """Face Mesh landmark indices the app reads, by anatomical name."""

    NOSE_TIP = 1
    UPPER_LIP = 13
    LOWER_LIP = 14
    LEFT_MOUTH_CORNER = 61
    RIGHT_MOUTH_CORNER = 291


KEY_POINTS: Tuple[FaceMeshIndex, ...] = (
    FaceMeshIndex.NOSE_TIP,
    FaceMeshIndex.LEFT_MOUTH_CORNER,
    FaceMeshIndex.RIGHT_MOUTH_CORNER,
    FaceMeshIndex.UPPER_LIP,
    FaceMeshIndex.LOWER_LIP,
)

# Lower lip contour, corner to corner
MOUTH_OUTLINE: Tuple[int, ...] = (61, 84, 17, 314, 405, 320, 307, 375, 321, 308, 324, 318)


def expected_point_count(refine_landmarks: bool) -> int:
    return FACE_MESH_REFINED_POINTS if refine_landmarks else FACE_MESH_POINTS


def validate_schema(point_count: int) -> None:
    """Raise ConfigError if any consulted index does not fit in `point_count` points."""
    needed = [int(i) for i in FaceMeshIndex] + list(MOUTH_OUTLINE)
    too_big = sorted({i for i in needed if i >= point_count})
    if too_big:
        raise ConfigError(f"landmark schema needs indices {too_big} but model yields {point_count} points")


@dataclass(frozen=True)
class LandmarkPoint:
    x: float
    y: float
    z: Optional[float] = None


class LandmarkSet(Sequence[LandmarkPoint]):
    """Immutable per-frame landmark points in the model's index order."""

    __slots__ = ("_points",)

    def __init__(self, points: Iterable[LandmarkPoint]) -> None:
        self._points: Tuple[LandmarkPoint, ...] = tuple(points)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "LandmarkSet":
        # (N, 2) or (N, 3) normalized coordinates
        a = np.asarray(arr, dtype=np.float64)
        if a.ndim != 2 or a.shape[1] not in (2, 3):
            raise ValueError(f"expected (N, 2) or (N, 3) array, got {a.shape}")
        if a.shape[1] == 3:
            return cls(LandmarkPoint(float(x), float(y), float(z)) for x, y, z in a)
        return cls(LandmarkPoint(float(x), float(y)) for x, y in a)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[LandmarkPoint]:
        return iter(self._points)

    def __getitem__(self, index):  # type: ignore[override]
        return self._points[index]

    def get(self, index: int) -> Optional[LandmarkPoint]:
        if 0 <= int(index) < len(self._points):
            return self._points[int(index)]
        return None

    def require(self, index: int) -> LandmarkPoint:
        p = self.get(index)
        if p is None:
            raise InvalidLandmarks(int(index), len(self._points))
        return p

    def __repr__(self) -> str:
        return f"LandmarkSet({len(self._points)} points)"
