from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple, Union

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from smilecam.utils.image import bgr_to_pil, pil_to_bgr
from smilecam.utils.logging import setup_logger


logger = setup_logger()

HIGHLIGHT_CLASS = "smile-detected"

Color = Tuple[int, int, int]  # BGR


@dataclass(frozen=True)
class Circle:
    center: Tuple[int, int]
    radius: int
    color: Color
    alpha: float = 1.0


@dataclass(frozen=True)
class Polyline:
    points: Tuple[Tuple[int, int], ...]
    color: Color
    thickness: int = 2
    alpha: float = 1.0
    closed: bool = True


Primitive = Union[Circle, Polyline]


@dataclass(frozen=True)
class GlyphNode:
    glyph: str
    left: int
    top: int
    created_at: float
    ttl: float


class PresentationSurface:
    """
    The video surface plus what sits on top of it:
      - glyph nodes (added/removed by the presenter)
      - CSS-style classes on the video element (e.g. the smile highlight)
      - a raster layer of drawing primitives, replaced every frame
    `compose()` flattens all of it onto a camera frame.
    """

    def __init__(self, glyph_size: int = 48, font_path: Optional[str] = None, rise_px: int = 40) -> None:
        self.glyph_size = int(glyph_size)
        self.font_path = font_path
        self.rise_px = int(rise_px)
        self._nodes: Dict[int, GlyphNode] = {}
        self._ids = itertools.count(1)
        self._classes: Set[str] = set()
        self._raster: List[Primitive] = []
        self._font = None

    # ---------- nodes ----------
    def add_node(self, node: GlyphNode) -> int:
        node_id = next(self._ids)
        self._nodes[node_id] = node
        return node_id

    def remove_node(self, node_id: int) -> bool:
        """Remove a node; False if it was already gone."""
        return self._nodes.pop(node_id, None) is not None

    def has_node(self, node_id: int) -> bool:
        return node_id in self._nodes

    @property
    def nodes(self) -> List[GlyphNode]:
        return list(self._nodes.values())

    # ---------- classes ----------
    def add_class(self, name: str) -> None:
        self._classes.add(name)

    def remove_class(self, name: str) -> None:
        self._classes.discard(name)

    def has_class(self, name: str) -> bool:
        return name in self._classes

    # ---------- raster ----------
    def clear_raster(self) -> None:
        self._raster = []

    def draw_circle(self, center: Tuple[int, int], radius: int, color: Color, alpha: float = 1.0) -> None:
        self._raster.append(Circle((int(center[0]), int(center[1])), int(radius), color, float(alpha)))

    def draw_polyline(
        self,
        points: Sequence[Tuple[int, int]],
        color: Color,
        thickness: int = 2,
        alpha: float = 1.0,
        closed: bool = True,
    ) -> None:
        if len(points) < 2:
            return
        pts = tuple((int(x), int(y)) for x, y in points)
        self._raster.append(Polyline(pts, color, int(thickness), float(alpha), closed))

    @property
    def raster(self) -> List[Primitive]:
        return list(self._raster)

    def clear(self) -> None:
        self._nodes.clear()
        self._classes.clear()
        self._raster = []

    # ---------- rendering ----------
    def _load_font(self):
        if self._font is not None:
            return self._font
        if self.font_path:
            try:
                self._font = ImageFont.truetype(self.font_path, self.glyph_size)
                return self._font
            except OSError as e:
                logger.warning(f"Failed to load font {self.font_path} ({e}). Using Pillow default font.")
        self._font = ImageFont.load_default(size=self.glyph_size)
        return self._font

    def _draw_raster(self, out: np.ndarray) -> None:
        for prim in self._raster:
            layer = out.copy()
            if isinstance(prim, Circle):
                cv2.circle(layer, prim.center, prim.radius, prim.color, -1, lineType=cv2.LINE_AA)
            else:
                pts = np.array(prim.points, dtype=np.int32).reshape(-1, 1, 2)
                cv2.polylines(layer, [pts], prim.closed, prim.color, prim.thickness, lineType=cv2.LINE_AA)
            a = max(0.0, min(1.0, prim.alpha))
            cv2.addWeighted(layer, a, out, 1.0 - a, 0, dst=out)

    def _draw_highlight(self, out: np.ndarray) -> None:
        h, w = out.shape[:2]
        glow = out.copy()
        # Gold border, wide and soft, then a crisp inner line
        cv2.rectangle(glow, (0, 0), (w - 1, h - 1), (0, 215, 255), 24)
        cv2.addWeighted(glow, 0.45, out, 0.55, 0, dst=out)
        cv2.rectangle(out, (0, 0), (w - 1, h - 1), (0, 215, 255), 4)

    def _draw_glyphs(self, out: np.ndarray, now: float) -> np.ndarray:
        pil = bgr_to_pil(out).convert("RGBA")
        font = self._load_font()
        for node in self._nodes.values():
            progress = 0.0
            if node.ttl > 0:
                progress = max(0.0, min(1.0, (now - node.created_at) / node.ttl))
            alpha = int(255 * (1.0 - progress * progress))
            if alpha <= 0:
                continue
            layer = Image.new("RGBA", pil.size, (0, 0, 0, 0))
            draw = ImageDraw.Draw(layer)
            y = node.top - int(self.rise_px * progress)
            draw.text((node.left, y), node.glyph, font=font, fill=(255, 215, 0, 255), embedded_color=True)
            if alpha < 255:
                # Fade the whole layer so color glyphs fade too
                a = layer.getchannel("A").point(lambda v: v * alpha // 255)
                layer.putalpha(a)
            pil.alpha_composite(layer)
        return pil_to_bgr(pil)

    def compose(self, frame: np.ndarray, now: float) -> np.ndarray:
        """Return a copy of `frame` with highlight, raster and glyphs drawn on it."""
        out = frame.copy()
        if self.has_class(HIGHLIGHT_CLASS):
            self._draw_highlight(out)
        if self._raster:
            self._draw_raster(out)
        if self._nodes:
            out = self._draw_glyphs(out, now)
        return out
