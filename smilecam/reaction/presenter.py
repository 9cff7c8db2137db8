from __future__ import annotations

import random
from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence

from smilecam.config import PresenterConfig
from smilecam.reaction.timers import TimerRegistry
from smilecam.utils.logging import setup_logger
from smilecam.viz.surface import HIGHLIGHT_CLASS, GlyphNode, PresentationSurface


logger = setup_logger()


class Position(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class ReactionEvent:
    glyph: str
    position: Position
    created_at: float
    ttl: float


class ReactionHandle:
    def __init__(self, event: ReactionEvent, surface: PresentationSurface, node_id: int) -> None:
        self.event = event
        self.node_id = node_id
        self._surface = surface

    @property
    def alive(self) -> bool:
        return self._surface.has_node(self.node_id)

    def remove(self) -> None:
        # Safe to call after the timer (or a clear) already removed the node
        self._surface.remove_node(self.node_id)


class ReactionPresenter:
    """Shows a random glyph above an anchor point and flashes the video highlight."""

    def __init__(
        self,
        surface: PresentationSurface,
        timers: TimerRegistry,
        config: Optional[PresenterConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.surface = surface
        self.timers = timers
        self.config = config or PresenterConfig()
        self.rng = rng or random.Random()
        self._highlights = 0

    def present(self, position: Position, glyph_pool: Optional[Sequence[str]] = None) -> ReactionHandle:
        pool = list(glyph_pool if glyph_pool is not None else self.config.glyphs)
        if not pool:
            raise ValueError("glyph pool is empty")
        glyph = self.rng.choice(pool)
        now = self.timers.clock()
        ttl = self.config.glyph_ttl_s
        event = ReactionEvent(glyph=glyph, position=Position(*position), created_at=now, ttl=ttl)

        dx, dy = self.config.glyph_offset
        node = GlyphNode(
            glyph=glyph,
            left=int(position[0] + dx),
            top=int(position[1] + dy),
            created_at=now,
            ttl=ttl,
        )
        handle = ReactionHandle(event, self.surface, self.surface.add_node(node))
        self.timers.schedule(ttl, handle.remove, name=f"glyph-{handle.node_id}")

        self._highlights += 1
        self.surface.add_class(HIGHLIGHT_CLASS)
        self.timers.schedule(self.config.highlight_ttl_s, self._end_highlight, name="highlight")
        logger.debug(f"Reaction {glyph} at ({position[0]:.0f}, {position[1]:.0f})")
        return handle

    def _end_highlight(self) -> None:
        # Only the last overlapping highlight takes the class off
        self._highlights = max(0, self._highlights - 1)
        if self._highlights == 0:
            self.surface.remove_class(HIGHLIGHT_CLASS)

    def clear(self) -> None:
        self.timers.clear()
        self._highlights = 0
        self.surface.clear()
