from __future__ import annotations

from typing import Dict

from ...core.constants import ICON_ANCHOR, PROMPT_ANCHOR
from ..ui.types import Match, Region
from .replay import ActionHistory, ActionRecord


def _found(anchor_id: str, x: int, y: int, w: int, h: int, score: float, duration: float) -> ActionRecord:
    return ActionRecord(
        succeeded=True,
        match=Match(region=Region(x, y, w, h), score=score, anchor_id=anchor_id),
        duration=duration,
    )


def build_default_histories() -> Dict[str, ActionHistory]:
    """Recorded finds for the prompt and working icon."""
    prompt = ActionHistory()
    prompt.add(
        _found(PROMPT_ANCHOR, 100, 600, 150, 30, 0.92, 0.25),
        _found(PROMPT_ANCHOR, 95, 595, 155, 35, 0.89, 0.18),
        ActionRecord(succeeded=False, duration=2.0),
    )

    # 图标位于提示符右下方，与依赖区域 (dx=3, dy=10) 对齐
    icon = ActionHistory()
    icon.add(
        _found(ICON_ANCHOR, 103, 610, 25, 25, 0.88, 0.15),
        _found(ICON_ANCHOR, 103, 610, 25, 25, 0.91, 0.35),
        _found(ICON_ANCHOR, 108, 615, 24, 24, 0.93, 0.22),
        ActionRecord(succeeded=False, duration=2.0),
    )

    return {PROMPT_ANCHOR: prompt, ICON_ANCHOR: icon}


__all__ = ["build_default_histories"]
