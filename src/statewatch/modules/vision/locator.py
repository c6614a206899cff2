"""
Locator strategies.

``TemplateLocator`` searches live frames; ``ReplayLocator`` answers from
recorded history. The strategy is chosen once when the application is
built, never per call.
"""
from __future__ import annotations

import time
from typing import Callable, Optional

from ...core.logger import logger
from ..mock.replay import MockReplayEngine
from ..ui.types import Match, Region, SearchConfig
from .template import TemplateHit, match_template
from .utils import ImageLike, crop, load_image, resolve_template_path


class TemplateLocator:
    """Template matching over frames returned by ``capture``.

    The search repeats until a template is found or ``search_duration``
    elapses; a duration of 0 means a single attempt.
    """

    def __init__(
        self,
        capture: Callable[[], ImageLike],
        *,
        image_path: str = ".",
        poll_interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.capture = capture
        self.image_path = image_path
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep
        self.logger = logger.bind(module="TemplateLocator")

    def _search_once(self, config: SearchConfig) -> Optional[Match]:
        frame = load_image(self.capture())
        box = config.region.as_tuple() if config.region else None
        roi, ox, oy = crop(frame, box)
        if roi.size == 0:
            return None

        best: Optional[TemplateHit] = None
        for name in config.templates:
            path = resolve_template_path(name, self.image_path)
            hit = match_template(roi, path, threshold=config.similarity)
            if hit and (best is None or hit.score > best.score):
                best = hit
        if best is None:
            return None
        return Match(
            region=Region(ox + best.x, oy + best.y, best.w, best.h),
            score=best.score,
            anchor_id=config.anchor_id,
        )

    def locate(self, config: SearchConfig) -> Optional[Match]:
        if not config.templates:
            self.logger.warning(f"Anchor {config.anchor_id} has no templates")
            return None
        deadline = self._clock() + max(0.0, config.search_duration)
        while True:
            match = self._search_once(config)
            if match is not None:
                return match
            if self._clock() + self.poll_interval > deadline:
                return None
            self._sleep(self.poll_interval)


class ReplayLocator:
    def __init__(self, engine: MockReplayEngine) -> None:
        self.engine = engine

    def locate(self, config: SearchConfig) -> Optional[Match]:
        return self.engine.try_replay(config.anchor_id)


__all__ = ["TemplateLocator", "ReplayLocator"]
