"""
执行器：对外暴露统一的 act(kind, target) 方法

- RecordingActuator：回放模式使用，只记录动作
- PyAutoGUIActuator：真实输入（需要 live 依赖）

target 可以是 Region（作用于中心点）、Location 或字符串（输入文本）。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, List, Tuple

from ...core.constants import ActionKind
from ...core.exceptions import ActionFailedError
from ...core.logger import logger
from ..ui.types import ActionTarget, Location, Region


def _point(target: ActionTarget) -> Location:
    if isinstance(target, Region):
        return target.center
    if isinstance(target, Location):
        return target
    raise ActionFailedError(f"动作目标不是坐标: {target!r}")


@dataclass
class RecordingActuator:
    fail_on: FrozenSet[ActionKind] = frozenset()
    actions: List[Tuple[ActionKind, ActionTarget]] = field(default_factory=list)

    def act(self, kind: ActionKind, target: ActionTarget) -> None:
        if kind in self.fail_on:
            raise ActionFailedError(f"模拟动作失败: {kind.value}")
        if kind is ActionKind.TYPE and not isinstance(target, str):
            raise ActionFailedError("TYPE 动作需要文本目标")
        self.actions.append((kind, target))
        logger.debug(f"[mock] {kind.value} -> {target!r}")


class PyAutoGUIActuator:
    def __init__(self, *, move_duration: float = 0.0) -> None:
        import pyautogui  # type: ignore

        self._gui = pyautogui
        self.move_duration = move_duration
        self.logger = logger.bind(module="PyAutoGUIActuator")

    def act(self, kind: ActionKind, target: ActionTarget) -> None:
        try:
            if kind is ActionKind.CLICK:
                p = _point(target)
                self._gui.click(p.x, p.y)
            elif kind is ActionKind.MOVE:
                p = _point(target)
                self._gui.moveTo(p.x, p.y, duration=self.move_duration)
            elif kind is ActionKind.TYPE:
                if not isinstance(target, str):
                    raise ActionFailedError("TYPE 动作需要文本目标")
                self._gui.write(target)
            elif kind is ActionKind.HIGHLIGHT:
                # 无覆盖层，仅记录高亮区域
                self.logger.info(f"highlight {target!r}")
            else:
                raise ActionFailedError(f"未知动作: {kind}")
        except ActionFailedError:
            raise
        except Exception as e:
            raise ActionFailedError(f"{kind.value} 失败: {e}") from e


__all__ = ["RecordingActuator", "PyAutoGUIActuator"]
