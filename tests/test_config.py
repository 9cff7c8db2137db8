import json

import pytest

from smilecam.config import DEFAULT_GLYPHS, AppConfig, load_config
from smilecam.errors import ConfigError


def _write(tmp_path, data):
    p = tmp_path / "config.json"
    p.write_text(json.dumps(data), encoding="utf-8")
    return p


def test_defaults():
    cfg = load_config()
    assert cfg.classifier.corner_lift_threshold == 0.005
    assert cfg.classifier.aspect_ratio_threshold == 2.5
    assert cfg.throttle.cooldown_s == 1.0
    assert cfg.presenter.glyph_ttl_s == 2.0
    assert cfg.presenter.highlight_ttl_s == 0.5
    assert cfg.presenter.glyphs == DEFAULT_GLYPHS
    assert (cfg.camera.width, cfg.camera.height, cfg.camera.facing_mode) == (640, 480, "user")
    lm = cfg.landmarks
    assert (lm.max_faces, lm.refine_landmarks) == (1, True)
    assert (lm.min_detection_confidence, lm.min_tracking_confidence) == (0.5, 0.5)


def test_file_overrides_defaults(tmp_path):
    p = _write(tmp_path, {
        "classifier": {"aspect_ratio_threshold": "3.0"},
        "throttle": {"cooldown_s": 2},
        "presenter": {"glyphs": ["A", "B"], "glyph_offset": [0, -10]},
    })
    cfg = load_config(p)
    assert cfg.classifier.aspect_ratio_threshold == 3.0
    assert cfg.classifier.corner_lift_threshold == 0.005
    assert cfg.throttle.cooldown_s == 2.0
    assert cfg.presenter.glyphs == ["A", "B"]
    assert cfg.presenter.glyph_offset == (0, -10)


def test_unknown_keys_are_ignored(tmp_path):
    p = _write(tmp_path, {"camera": {"zoom": 3, "index": 2}, "extras": {}})
    cfg = load_config(p)
    assert cfg.camera.index == 2
    assert not hasattr(cfg.camera, "zoom")


@pytest.mark.parametrize("data", [
    {"presenter": {"glyphs": []}},
    {"throttle": {"cooldown_s": -1}},
    {"landmarks": {"min_detection_confidence": 1.5}},
    {"camera": {"facing_mode": "sideways"}},
    {"camera": {"width": "wide"}},
    {"classifier": {"aspect_ratio_threshold": 0}},
    {"camera": []},
])
def test_invalid_values_raise(tmp_path, data):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, data))


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.json")


def test_malformed_json_raises(tmp_path):
    p = tmp_path / "bad.json"
    p.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(p)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SMILECAM_CAMERA_INDEX", "3")
    monkeypatch.setenv("SMILECAM_CAMERA_URL", "rtsp://cam.local/stream")
    cfg = load_config()
    assert cfg.camera.index == 3
    assert cfg.camera.url == "rtsp://cam.local/stream"


def test_bad_env_value(monkeypatch):
    monkeypatch.setenv("SMILECAM_CAMERA_INDEX", "front")
    with pytest.raises(ConfigError):
        load_config()


def test_to_dict_roundtrips_sections():
    d = AppConfig().to_dict()
    assert set(d) == {"camera", "landmarks", "classifier", "throttle", "presenter"}
