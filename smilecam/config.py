from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from smilecam.errors import ConfigError
from smilecam.landmarks.schema import expected_point_count, validate_schema
from smilecam.utils.fs import read_json
from smilecam.utils.logging import setup_logger


logger = setup_logger()


DEFAULT_GLYPHS: List[str] = ["😊", "😄", "😃", "🙂", "😁", "🤗", "😍", "🥰"]


@dataclass
class CameraConfig:
    index: int = 0
    url: str = ""  # stream URL or video path; overrides index when set
    width: int = 640
    height: int = 480
    facing_mode: str = "user"  # "user" mirrors frames


@dataclass
class LandmarkSourceConfig:
    max_faces: int = 1
    refine_landmarks: bool = True
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5


@dataclass
class ClassifierConfig:
    corner_lift_threshold: float = 0.005
    aspect_ratio_threshold: float = 2.5


@dataclass
class ThrottleConfig:
    cooldown_s: float = 1.0


@dataclass
class PresenterConfig:
    glyphs: List[str] = field(default_factory=lambda: list(DEFAULT_GLYPHS))
    glyph_ttl_s: float = 2.0
    highlight_ttl_s: float = 0.5
    glyph_offset: Tuple[int, int] = (-25, -50)
    glyph_size: int = 48
    font_path: Optional[str] = None
    debug_overlay: bool = True


@dataclass
class AppConfig:
    camera: CameraConfig = field(default_factory=CameraConfig)
    landmarks: LandmarkSourceConfig = field(default_factory=LandmarkSourceConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    presenter: PresenterConfig = field(default_factory=PresenterConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_SECTIONS = {
    "camera": CameraConfig,
    "landmarks": LandmarkSourceConfig,
    "classifier": ClassifierConfig,
    "throttle": ThrottleConfig,
    "presenter": PresenterConfig,
}


def _merge_section(current: Any, data: Dict[str, Any], section: str) -> Any:
    if not isinstance(data, dict):
        raise ConfigError(f"section '{section}' must be an object")
    names = {f.name for f in fields(current)}
    unknown = sorted(set(data) - names)
    if unknown:
        logger.warning(f"Ignoring unknown keys in '{section}': {', '.join(unknown)}")
    return replace(current, **{k: v for k, v in data.items() if k in names})


def _coerce(cfg: AppConfig) -> AppConfig:
    try:
        cam = cfg.camera
        cam.index = int(cam.index)
        cam.url = str(cam.url or "")
        cam.width = int(cam.width)
        cam.height = int(cam.height)
        cam.facing_mode = str(cam.facing_mode)

        lm = cfg.landmarks
        lm.max_faces = int(lm.max_faces)
        lm.refine_landmarks = bool(lm.refine_landmarks)
        lm.min_detection_confidence = float(lm.min_detection_confidence)
        lm.min_tracking_confidence = float(lm.min_tracking_confidence)

        cl = cfg.classifier
        cl.corner_lift_threshold = float(cl.corner_lift_threshold)
        cl.aspect_ratio_threshold = float(cl.aspect_ratio_threshold)

        cfg.throttle.cooldown_s = float(cfg.throttle.cooldown_s)

        pr = cfg.presenter
        pr.glyphs = [str(g) for g in pr.glyphs]
        pr.glyph_ttl_s = float(pr.glyph_ttl_s)
        pr.highlight_ttl_s = float(pr.highlight_ttl_s)
        pr.glyph_offset = tuple(int(v) for v in pr.glyph_offset)  # type: ignore[assignment]
        pr.glyph_size = int(pr.glyph_size)
        pr.font_path = str(pr.font_path) if pr.font_path else None
        pr.debug_overlay = bool(pr.debug_overlay)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid config value: {e}") from e
    return cfg


def validate_config(cfg: AppConfig) -> AppConfig:
    if cfg.camera.width <= 0 or cfg.camera.height <= 0:
        raise ConfigError("camera width/height must be positive")
    if cfg.camera.facing_mode not in ("user", "environment"):
        raise ConfigError(f"unknown facing_mode: {cfg.camera.facing_mode}")
    if cfg.landmarks.max_faces < 1:
        raise ConfigError("landmarks.max_faces must be >= 1")
    for name in ("min_detection_confidence", "min_tracking_confidence"):
        v = getattr(cfg.landmarks, name)
        if not 0.0 <= v <= 1.0:
            raise ConfigError(f"landmarks.{name} must be within [0, 1], got {v}")
    if cfg.classifier.corner_lift_threshold < 0:
        raise ConfigError("classifier.corner_lift_threshold must be >= 0")
    if cfg.classifier.aspect_ratio_threshold <= 0:
        raise ConfigError("classifier.aspect_ratio_threshold must be > 0")
    if cfg.throttle.cooldown_s < 0:
        raise ConfigError("throttle.cooldown_s must be >= 0")
    if not cfg.presenter.glyphs:
        raise ConfigError("presenter.glyphs must not be empty")
    if cfg.presenter.glyph_ttl_s <= 0 or cfg.presenter.highlight_ttl_s <= 0:
        raise ConfigError("presenter TTLs must be > 0")
    if len(cfg.presenter.glyph_offset) != 2:
        raise ConfigError("presenter.glyph_offset must be [dx, dy]")
    validate_schema(expected_point_count(cfg.landmarks.refine_landmarks))
    return cfg


def _apply_env(cfg: AppConfig) -> None:
    idx = os.environ.get("SMILECAM_CAMERA_INDEX")
    if idx:
        try:
            cfg.camera.index = int(idx)
        except ValueError as e:
            raise ConfigError(f"SMILECAM_CAMERA_INDEX must be an integer, got {idx!r}") from e
    url = os.environ.get("SMILECAM_CAMERA_URL")
    if url:
        cfg.camera.url = url


def load_config(path: Optional[str | Path] = None) -> AppConfig:
    """Defaults, then the JSON file at `path` (if any), then environment overrides."""
    cfg = AppConfig()
    if path is not None:
        p = Path(path)
        if not p.exists():
            raise ConfigError(f"config file not found: {p}")
        try:
            data = read_json(p, default={})
        except ValueError as e:
            raise ConfigError(f"failed to parse {p}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{p} must contain a JSON object")
        for key, value in data.items():
            if key not in _SECTIONS:
                logger.warning(f"Ignoring unknown config section '{key}'")
                continue
            setattr(cfg, key, _merge_section(getattr(cfg, key), value, key))
        logger.info(f"Loaded config from {p}")
    _apply_env(cfg)
    return validate_config(_coerce(cfg))
