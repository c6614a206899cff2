"""
主程序入口

启动流程：校验当前活动状态 -> 启动调度器 -> 等待结束（次数 / 总时长 / Ctrl+C）。
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from .core.config import Settings, settings
from .core.constants import ActionKind
from .core.exceptions import ActionFailedError
from .core.logger import logger
from .core.thread_pool import run_in_cleanup, shutdown_pools
from .modules.input import PyAutoGUIActuator, RecordingActuator
from .modules.mock import MockReplayEngine, build_default_histories, load_fixtures
from .modules.tasks import PromptMonitor, SchedulerConfig, StateAwareScheduler
from .modules.ui import (
    ActiveStateSet,
    Actuator,
    AnchorFinder,
    AnchorRegistry,
    DynamicRegionResolver,
    Location,
    Locator,
    StateDetector,
    StateGraph,
    StateManager,
    TransitionExecutor,
)
from .modules.ui.default_graph import build_default_graph, register_default_anchors
from .modules.vision import ReplayLocator, TemplateLocator
from .modules.vision.capture import ScreenCapture
from .modules.vision.utils import ImageLike


@dataclass
class Application:
    """装配好的运行时对象"""

    settings: Settings
    registry: AnchorRegistry
    graph: StateGraph
    context: ActiveStateSet
    finder: AnchorFinder
    actuator: Actuator
    detector: StateDetector
    manager: StateManager
    monitor: PromptMonitor
    scheduler: StateAwareScheduler


def build_locator(
    cfg: Settings,
    *,
    capture: Optional[Callable[[], ImageLike]] = None,
    engine: Optional[MockReplayEngine] = None,
) -> Locator:
    """按运行模式选择定位策略（只在启动时决定一次）"""
    if cfg.mock_mode:
        if engine is None:
            if cfg.fixtures_path:
                histories, probabilities = load_fixtures(cfg.fixtures_path)
            else:
                histories, probabilities = build_default_histories(), {}
            probabilities.update(cfg.mock_probabilities)
            engine = MockReplayEngine(histories, probabilities=probabilities)
        logger.info("回放模式：使用录制的查找结果")
        return ReplayLocator(engine)

    logger.info(f"实时模式：模板目录 {cfg.image_path}")
    return TemplateLocator(capture or ScreenCapture(), image_path=cfg.image_path)


def build_actuator(cfg: Settings) -> Actuator:
    if cfg.mock_mode:
        return RecordingActuator()
    return PyAutoGUIActuator()


def _park_pointer(actuator: Actuator, point: Location, timeout: float) -> Callable[[], object]:
    """停止时把指针移到空闲位置（在清理线程执行，不受卡住的定位影响）"""

    async def park() -> None:
        try:
            await run_in_cleanup(actuator.act, ActionKind.MOVE, point, timeout=timeout)
            logger.info(f"指针已移至 ({point.x}, {point.y})")
        except (ActionFailedError, asyncio.TimeoutError) as e:
            logger.warning(f"移动指针失败: {e}")

    return park


def build_app(
    cfg: Optional[Settings] = None,
    *,
    locator: Optional[Locator] = None,
    actuator: Optional[Actuator] = None,
) -> Application:
    """装配注册表、状态图、执行器与调度器"""
    cfg = cfg or settings

    registry = AnchorRegistry(cfg.match_history_size)
    register_default_anchors(registry, screen_width=cfg.screen_width, screen_height=cfg.screen_height)
    graph = build_default_graph()
    graph.validate(registry)

    locator = locator or build_locator(cfg)
    actuator = actuator or build_actuator(cfg)

    context = ActiveStateSet()
    finder = AnchorFinder(
        registry,
        DynamicRegionResolver(registry),
        locator,
        default_similarity=cfg.default_similarity,
        default_search_duration=cfg.search_duration,
        timeout_margin=cfg.locate_timeout_margin,
        warn_threshold=cfg.not_found_warn_threshold,
    )
    executor = TransitionExecutor(finder, actuator)
    detector = StateDetector(graph, registry, finder)
    manager = StateManager(graph, detector, executor)
    monitor = PromptMonitor(
        finder,
        actuator,
        manager,
        context,
        icon_timeout=cfg.monitoring_icon_timeout,
        highlight=cfg.monitoring_highlight,
    )

    x, y = cfg.neutral_point
    scheduler = StateAwareScheduler(
        manager,
        context,
        monitor,
        SchedulerConfig.from_settings(cfg),
        on_shutdown=_park_pointer(actuator, Location(x, y), cfg.stop_grace_period),
    )
    # 监控任务在安全点检查停止请求
    monitor.should_stop = scheduler.stop_requested

    return Application(
        settings=cfg,
        registry=registry,
        graph=graph,
        context=context,
        finder=finder,
        actuator=actuator,
        detector=detector,
        manager=manager,
        monitor=monitor,
        scheduler=scheduler,
    )


async def run(app: Application) -> None:
    """启动校验并运行调度器，直到其停止"""
    logger.info("应用启动中...")
    await app.detector.verify_active_states(app.context)
    await app.scheduler.start()
    try:
        await app.scheduler.wait_stopped()
    finally:
        # Ctrl+C / 取消时同样执行停止与清理
        await app.scheduler.stop()
        logger.info("应用关闭完成")


def main() -> None:
    app = build_app()
    try:
        asyncio.run(run(app))
    except KeyboardInterrupt:
        logger.info("收到中断信号")
    finally:
        shutdown_pools()


if __name__ == "__main__":
    main()
