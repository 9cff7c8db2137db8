import numpy as np
import pytest

from smilecam.errors import ConfigError, InvalidLandmarks
from smilecam.landmarks.schema import (
    FACE_MESH_POINTS,
    FACE_MESH_REFINED_POINTS,
    FaceMeshIndex,
    LandmarkPoint,
    LandmarkSet,
    expected_point_count,
    validate_schema,
)


def test_named_indices_match_face_mesh():
    assert FaceMeshIndex.NOSE_TIP == 1
    assert FaceMeshIndex.LEFT_MOUTH_CORNER == 61
    assert FaceMeshIndex.RIGHT_MOUTH_CORNER == 291
    assert FaceMeshIndex.UPPER_LIP == 13
    assert FaceMeshIndex.LOWER_LIP == 14


def test_schema_validation():
    validate_schema(FACE_MESH_POINTS)
    validate_schema(FACE_MESH_REFINED_POINTS)
    with pytest.raises(ConfigError):
        validate_schema(300)
    assert expected_point_count(True) == 478
    assert expected_point_count(False) == 468


def test_from_array():
    arr = np.array([[0.1, 0.2, 0.0], [0.3, 0.4, -0.1]])
    lm = LandmarkSet.from_array(arr)
    assert len(lm) == 2
    assert lm[1] == LandmarkPoint(0.3, 0.4, -0.1)
    flat = LandmarkSet.from_array(arr[:, :2])
    assert flat[0].z is None
    with pytest.raises(ValueError):
        LandmarkSet.from_array(np.zeros((3, 4)))


def test_require_and_get():
    lm = LandmarkSet([LandmarkPoint(0.0, 0.0)] * 5)
    assert lm.get(FaceMeshIndex.NOSE_TIP) is not None
    assert lm.get(FaceMeshIndex.UPPER_LIP) is None
    assert lm.get(-1) is None
    with pytest.raises(InvalidLandmarks):
        lm.require(FaceMeshIndex.UPPER_LIP)


def test_landmark_set_is_immutable():
    lm = LandmarkSet([LandmarkPoint(0.0, 0.0)])
    with pytest.raises(TypeError):
        lm[0] = LandmarkPoint(1.0, 1.0)
