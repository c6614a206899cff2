"""
状态感知调度器

每个周期先校验所需状态（必要时通过状态转换重建），再执行监控任务。
同一时刻只有一个周期在运行：上一周期超时则下一周期顺延，不会并发。
"""
from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Union

from ...core.config import Settings, settings
from ...core.constants import SchedulerState
from ...core.exceptions import ConfigurationError, SchedulerError
from ...core.logger import logger
from ..ui.context import ActiveStateSet
from ..ui.manager import StateManager

Callback = Callable[[], Union[None, Awaitable[Any]]]


@dataclass(frozen=True)
class SchedulerConfig:
    """调度配置"""

    initial_delay: float = 5.0
    check_interval: float = 2.0
    max_iterations: Optional[int] = None
    total_duration: Optional[float] = None
    required_state_ids: Tuple[str, ...] = ()
    rebuild_on_mismatch: bool = True
    skip_if_states_missing: bool = False
    stop_grace_period: float = 5.0

    def __post_init__(self) -> None:
        # 去重并保持顺序
        object.__setattr__(self, "required_state_ids", tuple(dict.fromkeys(self.required_state_ids)))
        if self.check_interval <= 0:
            raise ConfigurationError(f"check_interval 必须大于 0: {self.check_interval}")
        if self.initial_delay < 0:
            raise ConfigurationError(f"initial_delay 不能为负: {self.initial_delay}")
        if self.max_iterations is not None and self.max_iterations < 1:
            raise ConfigurationError(f"max_iterations 必须至少为 1: {self.max_iterations}")
        if self.total_duration is not None and self.total_duration <= 0:
            raise ConfigurationError(f"total_duration 必须大于 0: {self.total_duration}")
        if self.stop_grace_period < 0:
            raise ConfigurationError(f"stop_grace_period 不能为负: {self.stop_grace_period}")

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None) -> "SchedulerConfig":
        cfg = cfg or settings
        return cls(
            initial_delay=cfg.monitoring_initial_delay,
            check_interval=cfg.monitoring_check_interval,
            max_iterations=cfg.monitoring_max_iterations,
            total_duration=cfg.monitoring_total_duration,
            required_state_ids=tuple(cfg.required_state_list),
            rebuild_on_mismatch=cfg.monitoring_rebuild_on_mismatch,
            skip_if_states_missing=cfg.monitoring_skip_if_states_missing,
            stop_grace_period=cfg.stop_grace_period,
        )


async def _call(fn: Callback) -> None:
    result = fn()
    if inspect.isawaitable(result):
        await result


class StateAwareScheduler:
    """状态感知调度器"""

    def __init__(
        self,
        manager: StateManager,
        context: ActiveStateSet,
        task: Callback,
        config: Optional[SchedulerConfig] = None,
        *,
        on_shutdown: Optional[Callback] = None,
    ) -> None:
        self.manager = manager
        self.context = context
        self.task = task
        self.config = config or SchedulerConfig()
        self.on_shutdown = on_shutdown
        self.logger = logger.bind(module="StateAwareScheduler")

        self.iterations = 0  # 已执行的周期数
        self.task_runs = 0  # 监控任务执行次数
        self.started_at: Optional[float] = None
        self.stopped_at: Optional[float] = None

        self._state = SchedulerState.IDLE
        self._stop_event = asyncio.Event()
        self._stopped = asyncio.Event()
        self._loop_task: Optional[asyncio.Task] = None
        self._deadline_handle: Optional[asyncio.TimerHandle] = None
        self._deadline_stop: Optional[asyncio.Future] = None
        self._finalized = False

    @property
    def state(self) -> SchedulerState:
        return self._state

    def is_running(self) -> bool:
        return self._state in (SchedulerState.SCHEDULED, SchedulerState.VERIFYING, SchedulerState.RUNNING)

    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    async def start(self) -> None:
        """启动调度器"""
        if self._state is SchedulerState.STOPPED:
            raise SchedulerError("调度器已停止，不能重新启动")
        if self._state is not SchedulerState.IDLE:
            self.logger.warning("调度器已在运行")
            return

        try:
            loop = asyncio.get_running_loop()
            self._loop_task = loop.create_task(self._run_loop())
            if self.config.total_duration is not None:
                self._deadline_handle = loop.call_later(self.config.total_duration, self._on_deadline)
        except Exception as e:
            raise SchedulerError(f"无法启动调度器: {e}") from e

        self.started_at = loop.time()
        self._state = SchedulerState.SCHEDULED
        self.logger.info(
            f"调度器已启动: 初始延迟={self.config.initial_delay}s, 间隔={self.config.check_interval}s, "
            f"最大周期={self.config.max_iterations}, 总时长={self.config.total_duration}, "
            f"所需状态={list(self.config.required_state_ids)}"
        )

    async def stop(self) -> None:
        """停止调度器：等待当前周期结束，超出宽限期则强制取消，最后执行清理动作"""
        if self._state is SchedulerState.STOPPED:
            return

        self.logger.info("停止调度器...")
        self._stop_event.set()
        self._state = SchedulerState.STOPPING
        self._cancel_deadline()

        task = self._loop_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            try:
                await asyncio.wait_for(asyncio.shield(task), self.config.stop_grace_period)
            except asyncio.TimeoutError:
                self.logger.warning(f"当前周期未在 {self.config.stop_grace_period}s 内结束，强制取消")
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        await self._finalize()

    async def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """等待调度器进入 STOPPED，超时返回 False"""
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False

    def _on_deadline(self) -> None:
        self._deadline_handle = None
        self.logger.info(f"已达到总时长 {self.config.total_duration}s")
        self._deadline_stop = asyncio.ensure_future(self.stop())

    def _cancel_deadline(self) -> None:
        if self._deadline_handle is not None:
            self._deadline_handle.cancel()
            self._deadline_handle = None

    async def _sleep(self, delay: float) -> bool:
        """等待 delay 秒；期间收到停止请求返回 False"""
        if self._stop_event.is_set():
            return False
        if delay <= 0:
            return True
        try:
            await asyncio.wait_for(self._stop_event.wait(), delay)
            return False
        except asyncio.TimeoutError:
            return True

    def _bounds_reached(self) -> bool:
        limit = self.config.max_iterations
        return limit is not None and self.iterations >= limit

    async def _run_loop(self) -> None:
        """主循环"""
        loop = asyncio.get_running_loop()
        next_due = loop.time() + self.config.initial_delay
        try:
            while True:
                if not await self._sleep(next_due - loop.time()):
                    # stop() 负责收尾
                    return
                if self._bounds_reached():
                    self.logger.info(f"已完成 {self.iterations} 个周期，达到上限")
                    break
                await self._tick()
                self.iterations += 1
                next_due += self.config.check_interval
                now = loop.time()
                if now > next_due:
                    # 周期超时：下一周期立即执行
                    next_due = now
        except Exception as e:
            self.logger.opt(exception=e).error(f"调度循环异常: {e}")

        self._stop_event.set()
        await self._finalize()

    async def _tick(self) -> None:
        """单个周期：校验状态 -> 执行监控任务"""
        try:
            self._state = SchedulerState.VERIFYING
            if not await self._verify_states():
                return
            if self._stop_event.is_set():
                return
            self._state = SchedulerState.RUNNING
            self.task_runs += 1
            await _call(self.task)
        except Exception as e:
            self.logger.opt(exception=e).error(f"监控周期异常: {e}")
        finally:
            if not self._stop_event.is_set():
                self._state = SchedulerState.SCHEDULED

    async def _verify_states(self) -> bool:
        """返回本周期是否执行监控任务"""
        missing = self.context.missing(self.config.required_state_ids)
        if not missing:
            return True

        self.logger.info(f"缺少所需状态: {missing}, 当前活动状态: {list(self.context)}")
        rebuilt = False
        if self.config.rebuild_on_mismatch:
            rebuilt = await self.manager.rebuild(missing, self.context, should_stop=self.stop_requested)
            if rebuilt:
                self.logger.info(f"状态已重建: {list(self.context)}")
        if rebuilt:
            return True

        if self.config.skip_if_states_missing:
            self.logger.info("所需状态缺失，跳过本周期")
            return False
        self.logger.warning(f"所需状态缺失 {self.context.missing(self.config.required_state_ids)}，仍执行监控任务")
        return True

    async def _finalize(self) -> None:
        if self._finalized:
            await self._stopped.wait()
            return
        self._finalized = True
        self._state = SchedulerState.STOPPING
        self._cancel_deadline()
        try:
            if self.on_shutdown is not None:
                await _call(self.on_shutdown)
        except Exception as e:
            self.logger.opt(exception=e).error(f"清理动作失败: {e}")
        finally:
            self._state = SchedulerState.STOPPED
            self.stopped_at = asyncio.get_running_loop().time()
            self._stopped.set()
            self.logger.info(f"调度器已停止: 周期={self.iterations}, 任务执行={self.task_runs}")


__all__ = ["SchedulerConfig", "StateAwareScheduler"]
