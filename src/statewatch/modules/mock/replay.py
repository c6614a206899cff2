"""
Replay of recorded find results.

Each anchor owns an ``ActionHistory`` of recorded ``ActionRecord`` values
loaded once at startup. A replayed find picks one successful record at
random; the per-anchor probability decides whether the find succeeds at all.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from ...core.constants import MAX_PROBABILITY, MIN_PROBABILITY
from ...core.exceptions import ConfigurationError
from ...core.logger import logger
from ..ui.types import Match


@dataclass(frozen=True)
class ActionRecord:
    succeeded: bool
    match: Optional[Match] = None
    duration: float = 0.0


@dataclass
class ActionHistory:
    records: List[ActionRecord] = field(default_factory=list)

    def add(self, *records: ActionRecord) -> None:
        self.records.extend(records)

    def successful(self) -> List[ActionRecord]:
        return [r for r in self.records if r.succeeded and r.match is not None]

    def success_rate(self) -> float:
        if not self.records:
            return 0.0
        return len(self.successful()) / len(self.records)

    def __len__(self) -> int:
        return len(self.records)


class MockReplayEngine:
    def __init__(
        self,
        histories: Optional[Mapping[str, ActionHistory]] = None,
        *,
        probabilities: Optional[Mapping[str, int]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._histories: Dict[str, ActionHistory] = dict(histories or {})
        self._probabilities: Dict[str, int] = {}
        self._rng = rng or random.Random()
        self.logger = logger.bind(module="MockReplayEngine")
        for anchor_id, value in (probabilities or {}).items():
            self.set_probability(anchor_id, value)

    def set_history(self, anchor_id: str, history: ActionHistory) -> None:
        self._histories[anchor_id] = history

    def history(self, anchor_id: str) -> Optional[ActionHistory]:
        return self._histories.get(anchor_id)

    def set_probability(self, anchor_id: str, percent: int) -> None:
        if not MIN_PROBABILITY <= percent <= MAX_PROBABILITY:
            raise ConfigurationError(f"Match probability for {anchor_id} must be 0-100, got {percent}")
        self._probabilities[anchor_id] = int(percent)

    def set_probabilities(self, percent: int, anchor_ids: Iterable[str]) -> None:
        for anchor_id in anchor_ids:
            self.set_probability(anchor_id, percent)

    def find_probability(self, anchor_id: str) -> float:
        """Chance (0..1) that a replayed find for ``anchor_id`` succeeds."""
        if anchor_id in self._probabilities:
            return self._probabilities[anchor_id] / MAX_PROBABILITY
        history = self._histories.get(anchor_id)
        return history.success_rate() if history else 0.0

    def try_replay(self, anchor_id: str) -> Optional[Match]:
        history = self._histories.get(anchor_id)
        if not history:
            self.logger.debug(f"{anchor_id} has no recorded history")
            return None

        successes = history.successful()
        if not successes:
            self.logger.debug(f"{anchor_id} has no successful records")
            return None

        probability = self.find_probability(anchor_id)
        if probability < 1.0 and self._rng.random() >= probability:
            return None

        record = self._rng.choice(successes)
        match = record.match
        if match.anchor_id != anchor_id:
            match = Match(region=match.region, score=match.score, anchor_id=anchor_id)
        self.logger.debug(f"Replayed {anchor_id} at {match.region.as_tuple()}")
        return match


__all__ = ["ActionRecord", "ActionHistory", "MockReplayEngine"]
