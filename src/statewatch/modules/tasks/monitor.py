"""
提示符监控任务

每个周期：
1. 查找提示符并点击
2. 在提示符派生的区域内查找工作图标（图标超时）
3. 找到则高亮；找不到说明工作已结束，移除 Working 状态并通过转换重新进入
"""
from __future__ import annotations

from typing import Callable, Optional

from ...core.config import settings
from ...core.constants import ICON_ANCHOR, PROMPT_ANCHOR, WORKING_STATE, ActionKind
from ...core.exceptions import ActionFailedError
from ...core.logger import logger
from ...core.thread_pool import run_in_io
from ..ui.context import ActiveStateSet
from ..ui.finder import AnchorFinder
from ..ui.manager import StateManager
from ..ui.types import Actuator, ActionTarget


class PromptMonitor:
    """提示符 / 工作图标监控"""

    def __init__(
        self,
        finder: AnchorFinder,
        actuator: Actuator,
        manager: StateManager,
        context: ActiveStateSet,
        *,
        prompt_anchor: str = PROMPT_ANCHOR,
        icon_anchor: str = ICON_ANCHOR,
        working_state: str = WORKING_STATE,
        icon_timeout: Optional[float] = None,
        highlight: Optional[bool] = None,
        action_timeout: Optional[float] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.finder = finder
        self.actuator = actuator
        self.manager = manager
        self.context = context
        self.prompt_anchor = prompt_anchor
        self.icon_anchor = icon_anchor
        self.working_state = working_state
        self.icon_timeout = settings.monitoring_icon_timeout if icon_timeout is None else icon_timeout
        self.highlight = settings.monitoring_highlight if highlight is None else highlight
        self.action_timeout = action_timeout
        self.should_stop = should_stop
        self.logger = logger.bind(module="PromptMonitor")

    async def __call__(self) -> None:
        await self.run_once()

    def _stopping(self) -> bool:
        if self.should_stop is not None and self.should_stop():
            self.logger.info("收到停止请求，结束本次监控")
            return True
        return False

    async def _act(self, kind: ActionKind, target: ActionTarget) -> None:
        await run_in_io(self.actuator.act, kind, target, timeout=self.action_timeout)

    async def _highlight(self, target: ActionTarget) -> None:
        if not self.highlight:
            return
        try:
            await self._act(ActionKind.HIGHLIGHT, target)
        except ActionFailedError as e:
            self.logger.debug(f"高亮失败: {e}")

    async def run_once(self) -> bool:
        """执行一次监控，返回工作图标是否可见"""
        prompt = await self.finder.find(self.prompt_anchor)
        if prompt is None:
            self.logger.debug("未找到提示符")
            return False
        if self._stopping():
            return False

        try:
            await self._act(ActionKind.CLICK, prompt.region)
        except ActionFailedError as e:
            self.logger.warning(f"点击提示符失败: {e}")
            return False
        if self._stopping():
            return False

        return await self._check_icon()

    async def _check_icon(self) -> bool:
        search_region = self.finder.search_config(self.icon_anchor).region
        if search_region is not None:
            await self._highlight(search_region)

        icon = await self.finder.find(self.icon_anchor, search_duration=self.icon_timeout)
        if icon is not None:
            self.logger.debug(f"工作图标可见: {icon.region}")
            await self._highlight(icon.region)
            return True

        if self._stopping():
            return False
        self.logger.info(f"工作图标消失，移除 {self.working_state} 状态并重新进入")
        self.context.discard(self.working_state)
        if await self.manager.ensure_state(
            self.working_state, self.context, should_stop=self.should_stop
        ):
            self.logger.info(f"已重新进入 {self.working_state}")
        else:
            self.logger.warning(f"重新进入 {self.working_state} 失败")
        return False


__all__ = ["PromptMonitor"]
