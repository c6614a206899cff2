from __future__ import annotations

from ...core.constants import (
    CONTINUE_COMMAND,
    ICON_ANCHOR,
    PROMPT_ANCHOR,
    PROMPT_STATE,
    WORKING_STATE,
    ActionKind,
)
from .graph import Act, Locate, StateGraph, TransitionSpec
from .registry import AnchorRegistry, AnchorSpec, StateSpec
from .types import Adjustment, Region, RegionDependency

# 图标搜索区域 = 提示符匹配区域 + 偏移
ICON_ADJUSTMENT = Adjustment(dx=3, dy=10, dw=30, dh=55)


def register_default_anchors(registry: AnchorRegistry, *, screen_width: int, screen_height: int) -> None:
    """注册提示符与工作图标两个锚点。"""
    # 提示符：屏幕左下四分之一
    registry.register(
        AnchorSpec(
            id=PROMPT_ANCHOR,
            owner_state_id=PROMPT_STATE,
            templates=["prompt/windows", "prompt/ffmpeg"],
            static_region=Region.from_screen_percentage(screen_width, screen_height, 0.0, 0.5, 0.5, 0.5),
            is_fixed=True,
        )
    )

    # 工作图标：依赖提示符最近一次匹配
    registry.register(
        AnchorSpec(
            id=ICON_ANCHOR,
            owner_state_id=WORKING_STATE,
            templates=[f"working/claude-icon-{i}" for i in range(1, 5)]
            + [f"working/claude-icon-{i}-80" for i in range(1, 5)],
            dependency=RegionDependency(PROMPT_STATE, PROMPT_ANCHOR, ICON_ADJUSTMENT),
            is_fixed=True,
        )
    )


def build_default_graph() -> StateGraph:
    """构建默认状态跳转图。"""
    graph = StateGraph()
    graph.register_state(StateSpec(id=PROMPT_STATE, required_anchor_ids=[PROMPT_ANCHOR], is_initial=True))
    graph.register_state(StateSpec(id=WORKING_STATE, required_anchor_ids=[ICON_ANCHOR]))

    # 提示符 -> 工作中：定位提示符，点击，输入 continue；提示符保持可见
    graph.add_transition(
        TransitionSpec(
            from_state_id=PROMPT_STATE,
            to_state_id=WORKING_STATE,
            steps=(
                Locate(PROMPT_ANCHOR),
                Act(ActionKind.CLICK),
                Act(ActionKind.TYPE, CONTINUE_COMMAND),
            ),
            stays_visible=True,
        )
    )

    return graph


__all__ = ["ICON_ADJUSTMENT", "register_default_anchors", "build_default_graph"]
