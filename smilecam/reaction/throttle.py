from __future__ import annotations

from typing import Optional

from smilecam.config import ThrottleConfig
from smilecam.utils.logging import setup_logger


logger = setup_logger()


class ReactionThrottle:
    """Debounce: fire at most once per cooldown, measured from the last fire."""

    def __init__(self, config: Optional[ThrottleConfig] = None) -> None:
        self.cooldown_s = (config or ThrottleConfig()).cooldown_s
        self.last_fired: Optional[float] = None

    def should_fire(self, now: float) -> bool:
        last = self.last_fired
        if last is not None:
            if now < last:
                logger.debug(f"Clock went backwards ({now:.3f} < {last:.3f}); holding cooldown")
                return False
            if now - last <= self.cooldown_s:
                return False
        self.last_fired = now
        return True

    def reset(self) -> None:
        self.last_fired = None
