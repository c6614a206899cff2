from __future__ import annotations

import asyncio
from typing import Dict, Optional

from ...core.config import settings
from ...core.exceptions import ConfigurationError
from ...core.logger import logger
from ...core.thread_pool import run_in_io
from .registry import AnchorRegistry
from .resolver import DynamicRegionResolver
from .types import Locator, Match, SearchConfig


class AnchorFinder:
    """Single entry point for locating anchors.

    Every find refreshes derived regions first, runs the locator on the I/O
    thread with a timeout and records successful matches in the registry.
    """

    def __init__(
        self,
        registry: AnchorRegistry,
        resolver: DynamicRegionResolver,
        locator: Locator,
        *,
        default_similarity: Optional[float] = None,
        default_search_duration: Optional[float] = None,
        timeout_margin: Optional[float] = None,
        warn_threshold: Optional[int] = None,
    ) -> None:
        self.registry = registry
        self.resolver = resolver
        self.locator = locator
        self.default_similarity = default_similarity or settings.default_similarity
        self.default_search_duration = (
            settings.search_duration if default_search_duration is None else default_search_duration
        )
        self.timeout_margin = settings.locate_timeout_margin if timeout_margin is None else timeout_margin
        self.warn_threshold = settings.not_found_warn_threshold if warn_threshold is None else warn_threshold
        self._misses: Dict[str, int] = {}
        self.logger = logger.bind(module="AnchorFinder")

    def search_config(
        self,
        anchor_id: str,
        *,
        search_duration: Optional[float] = None,
        similarity: Optional[float] = None,
    ) -> SearchConfig:
        anchor = self.registry.get(anchor_id)
        if anchor is None:
            raise ConfigurationError(f"Unknown anchor: {anchor_id}")
        region = self.resolver.resolve(anchor_id)
        return SearchConfig(
            anchor_id=anchor_id,
            region=region,
            similarity=similarity or anchor.similarity or self.default_similarity,
            search_duration=self.default_search_duration if search_duration is None else search_duration,
            templates=tuple(anchor.templates),
        )

    def misses(self, anchor_id: str) -> int:
        return self._misses.get(anchor_id, 0)

    def _record_miss(self, anchor_id: str) -> None:
        count = self._misses.get(anchor_id, 0) + 1
        self._misses[anchor_id] = count
        # threshold <= 0 warns on every miss
        if self.warn_threshold <= 0 or (count >= self.warn_threshold and count % self.warn_threshold == 0):
            self.logger.warning(f"{anchor_id} not found {count} times in a row")
        else:
            self.logger.debug(f"{anchor_id} not found ({count})")

    async def find(
        self,
        anchor_id: str,
        *,
        search_duration: Optional[float] = None,
        similarity: Optional[float] = None,
    ) -> Optional[Match]:
        config = self.search_config(anchor_id, search_duration=search_duration, similarity=similarity)
        anchor = self.registry.get(anchor_id)
        if anchor.dependency is not None and config.region is None:
            # not searchable until its target has been found
            self.logger.debug(f"{anchor_id} skipped: search region not resolved yet")
            return None

        timeout = config.search_duration + self.timeout_margin
        try:
            match = await run_in_io(self.locator.locate, config, timeout=timeout)
        except asyncio.TimeoutError:
            self.logger.warning(f"Locating {anchor_id} exceeded {timeout:.1f}s, treated as not found")
            match = None

        if match is None:
            self._record_miss(anchor_id)
            return None

        self._misses.pop(anchor_id, None)
        self.registry.record_match(anchor_id, match)
        return match


__all__ = ["AnchorFinder"]
