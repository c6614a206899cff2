from __future__ import annotations

from typing import Optional

from ...core.exceptions import InvalidRegionError
from ...core.logger import logger
from .registry import AnchorRegistry
from .types import Region


class DynamicRegionResolver:
    """Derives search regions from the last match of another anchor.

    Resolution only asks whether the anchor needs a region and whether its
    target has a match. It never asks whether the anchor itself was ever
    found, otherwise a dependent anchor could never become searchable.
    """

    def __init__(self, registry: AnchorRegistry) -> None:
        self.registry = registry
        self.logger = logger.bind(module="DynamicRegionResolver")

    def resolve(self, anchor_id: str) -> Optional[Region]:
        """Refresh the derived region of ``anchor_id``.

        Returns the anchor's current search region afterwards (None when it is
        still unresolved).
        """
        anchor = self.registry.get(anchor_id)
        if anchor is None:
            return None

        # fixed anchors resolve at most once
        if anchor.is_fixed and self.registry.is_resolved(anchor_id):
            return self.registry.get_search_region(anchor_id)

        dep = anchor.dependency
        if dep is None:
            return self.registry.get_search_region(anchor_id)

        target_match = self.registry.last_match(dep.target_anchor_id)
        if target_match is None:
            self.logger.debug(
                f"Region of {anchor_id} deferred: {dep.target_state_id}.{dep.target_anchor_id} has no match yet"
            )
            return self.registry.get_search_region(anchor_id)

        adj = dep.adjustment
        base = target_match.region
        try:
            derived = base.adjust(adj.dx, adj.dy, adj.dw, adj.dh)
        except InvalidRegionError as e:
            self.logger.warning(f"Derived region for {anchor_id} rejected: {e}")
            return self.registry.get_search_region(anchor_id)

        self.registry.set_resolved_region(anchor_id, derived)
        self.logger.debug(f"Resolved {anchor_id} from {dep.target_anchor_id} {base.as_tuple()} -> {derived.as_tuple()}")
        return derived

    def resolve_all(self) -> int:
        """Resolve every anchor with a dependency. Returns how many have a region."""
        count = 0
        for anchor in self.registry.all():
            if anchor.dependency is not None and self.resolve(anchor.id) is not None:
                count += 1
        return count


__all__ = ["DynamicRegionResolver"]
