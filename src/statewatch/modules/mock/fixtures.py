"""
Recorded replay fixtures stored as JSON.

Format::

    {
      "anchors": {
        "ClaudePrompt": {
          "probability": 100,
          "records": [
            {"succeeded": true, "match": {"x": 100, "y": 600, "w": 150, "h": 30, "score": 0.92}},
            {"succeeded": false}
          ]
        }
      }
    }
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from ...core.exceptions import ConfigurationError
from ...core.logger import logger
from ..ui.types import Match, Region
from .replay import ActionHistory, ActionRecord


class MatchFixture(BaseModel):
    x: int
    y: int
    w: int = Field(gt=0)
    h: int = Field(gt=0)
    score: float = Field(default=1.0, ge=0.0, le=1.0)


class RecordFixture(BaseModel):
    succeeded: bool
    match: Optional[MatchFixture] = None
    duration: float = 0.0


class AnchorFixture(BaseModel):
    probability: Optional[int] = Field(default=None, ge=0, le=100)
    records: List[RecordFixture] = Field(default_factory=list)


class FixtureFile(BaseModel):
    anchors: Dict[str, AnchorFixture] = Field(default_factory=dict)


def _to_history(anchor_id: str, fixture: AnchorFixture) -> ActionHistory:
    history = ActionHistory()
    for rec in fixture.records:
        match = None
        if rec.match is not None:
            m = rec.match
            match = Match(region=Region(m.x, m.y, m.w, m.h), score=m.score, anchor_id=anchor_id)
        history.add(ActionRecord(succeeded=rec.succeeded, match=match, duration=rec.duration))
    return history


def parse_fixtures(raw: str) -> Tuple[Dict[str, ActionHistory], Dict[str, int]]:
    try:
        data = FixtureFile.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid replay fixtures: {e}") from e

    histories: Dict[str, ActionHistory] = {}
    probabilities: Dict[str, int] = {}
    for anchor_id, fixture in data.anchors.items():
        histories[anchor_id] = _to_history(anchor_id, fixture)
        if fixture.probability is not None:
            probabilities[anchor_id] = fixture.probability
    return histories, probabilities


def load_fixtures(path: str | Path) -> Tuple[Dict[str, ActionHistory], Dict[str, int]]:
    """Load per-anchor histories and probabilities from a JSON file."""
    p = Path(path)
    if not p.is_file():
        raise ConfigurationError(f"Replay fixtures not found: {p}")
    histories, probabilities = parse_fixtures(p.read_text(encoding="utf-8"))
    logger.info(f"Loaded replay fixtures for {len(histories)} anchors from {p}")
    return histories, probabilities


__all__ = ["FixtureFile", "parse_fixtures", "load_fixtures"]
