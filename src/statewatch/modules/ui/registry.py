from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

from ...core.config import settings
from ...core.constants import StateMatchMode
from ...core.exceptions import ConfigurationError
from ...core.logger import logger
from .types import Match, Region, RegionDependency


@dataclass
class AnchorSpec:
    id: str
    owner_state_id: str
    templates: List[str] = field(default_factory=list)
    static_region: Optional[Region] = None
    dependency: Optional[RegionDependency] = None
    is_fixed: bool = False
    similarity: Optional[float] = None

    def __post_init__(self) -> None:
        if self.static_region is not None and self.dependency is not None:
            raise ConfigurationError(
                f"Anchor {self.id!r} declares both a static region and a region dependency"
            )


@dataclass
class StateSpec:
    id: str
    name: str = ""
    required_anchor_ids: List[str] = field(default_factory=list)
    is_initial: bool = False
    match_mode: Optional[StateMatchMode] = None  # None -> settings.state_match_mode

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.id


class AnchorRegistry:
    """Current search region and recent matches of every anchor.

    Matches are written by successful locates only, derived regions by the
    resolver only. Not thread safe: owned by the scheduler's worker.
    """

    def __init__(self, history_size: Optional[int] = None) -> None:
        self.history_size = history_size or settings.match_history_size
        self._anchors: Dict[str, AnchorSpec] = {}
        self._matches: Dict[str, Deque[Match]] = {}
        self._resolved: Dict[str, Region] = {}
        self.logger = logger.bind(module="AnchorRegistry")

    def register(self, anchor: AnchorSpec) -> None:
        self._anchors[anchor.id] = anchor
        self._matches[anchor.id] = deque(maxlen=self.history_size)

    def get(self, anchor_id: str) -> Optional[AnchorSpec]:
        return self._anchors.get(anchor_id)

    def all(self) -> List[AnchorSpec]:
        return list(self._anchors.values())

    def ids(self) -> List[str]:
        return list(self._anchors.keys())

    def for_state(self, state_id: str) -> List[AnchorSpec]:
        return [a for a in self._anchors.values() if a.owner_state_id == state_id]

    def record_match(self, anchor_id: str, match: Match) -> None:
        history = self._matches.get(anchor_id)
        if history is None:
            self.logger.warning(f"Ignoring match for unknown anchor: {anchor_id}")
            return
        # deque(maxlen) drops the oldest entry
        history.append(match)

    def last_match(self, anchor_id: str) -> Optional[Match]:
        history = self._matches.get(anchor_id)
        if not history:
            return None
        return history[-1]

    def last_matches(self, anchor_id: str) -> List[Match]:
        return list(self._matches.get(anchor_id, ()))

    def get_search_region(self, anchor_id: str) -> Optional[Region]:
        anchor = self._anchors.get(anchor_id)
        if anchor is None:
            return None
        if anchor.static_region is not None:
            return anchor.static_region
        return self._resolved.get(anchor_id)

    def has_defined_region(self, anchor_id: str) -> bool:
        return self.get_search_region(anchor_id) is not None

    def is_resolved(self, anchor_id: str) -> bool:
        return anchor_id in self._resolved

    def set_resolved_region(self, anchor_id: str, region: Region) -> None:
        if anchor_id not in self._anchors:
            raise ConfigurationError(f"Unknown anchor: {anchor_id}")
        self._resolved[anchor_id] = region

    def reset(self) -> None:
        """Forget all matches and derived regions (explicit reset)."""
        for history in self._matches.values():
            history.clear()
        self._resolved.clear()


__all__ = [
    "AnchorSpec",
    "StateSpec",
    "AnchorRegistry",
]
