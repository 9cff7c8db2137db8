from __future__ import annotations

from smilecam.landmarks.schema import KEY_POINTS, MOUTH_OUTLINE, LandmarkSet
from smilecam.utils.image import to_pixel
from smilecam.viz.surface import PresentationSurface


KEY_POINT_COLOR = (0, 255, 0)  # BGR
MOUTH_COLOR = (0, 0, 255)


def draw_debug_overlay(surface: PresentationSurface, landmarks: LandmarkSet, width: int, height: int) -> None:
    """Replace the raster layer with key-point dots and the mouth outline."""
    surface.clear_raster()
    for idx in KEY_POINTS:
        p = landmarks.get(idx)
        if p is None:
            continue
        surface.draw_circle(to_pixel(p.x, p.y, width, height), 3, KEY_POINT_COLOR, alpha=0.5)

    pts = []
    for idx in MOUTH_OUTLINE:
        p = landmarks.get(idx)
        if p is not None:
            pts.append(to_pixel(p.x, p.y, width, height))
    surface.draw_polyline(pts, MOUTH_COLOR, thickness=2, alpha=0.8, closed=True)
