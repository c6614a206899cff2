import asyncio
import threading
import time

import pytest

from statewatch.core.config import Settings
from statewatch.core.constants import ActionKind, ICON_ANCHOR, PROMPT_ANCHOR, PROMPT_STATE, WORKING_STATE, SchedulerState
from statewatch.core.exceptions import ConfigurationError, SchedulerError
from statewatch.core.thread_pool import shutdown_pools
from statewatch.main import build_app
from statewatch.modules.input.actuator import RecordingActuator
from statewatch.modules.tasks.scheduler import SchedulerConfig, StateAwareScheduler
from statewatch.modules.ui.context import ActiveStateSet
from statewatch.modules.ui.types import Location, Match, Region


class _DummyManager:
    def __init__(self, rebuild_result=False, add_on_rebuild=False):
        self.rebuild_result = rebuild_result
        self.add_on_rebuild = add_on_rebuild
        self.rebuild_calls = []

    async def rebuild(self, missing, context, *, should_stop=None):
        self.rebuild_calls.append(list(missing))
        if self.add_on_rebuild:
            for state_id in missing:
                context.add(state_id)
        return self.rebuild_result


class _Counter:
    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1


@pytest.fixture(autouse=True)
def _reset_pools():
    yield
    shutdown_pools()


def _config(**overrides):
    values = dict(
        initial_delay=0.05,
        check_interval=0.05,
        required_state_ids=("Prompt",),
        stop_grace_period=0.5,
    )
    values.update(overrides)
    return SchedulerConfig(**values)


def _scheduler(task, config, *, manager=None, context=None, on_shutdown=None):
    return StateAwareScheduler(
        manager or _DummyManager(),
        context if context is not None else ActiveStateSet(["Prompt"]),
        task,
        config,
        on_shutdown=on_shutdown,
    )


@pytest.mark.asyncio
async def test_max_iterations_bounds_runs_and_stop_time():
    task = _Counter()
    shutdown = _Counter()
    scheduler = _scheduler(task, _config(max_iterations=2), on_shutdown=shutdown)

    await scheduler.start()
    assert await scheduler.wait_stopped(2.0)

    assert task.calls == 2
    assert scheduler.iterations == 2
    assert shutdown.calls == 1
    assert scheduler.state is SchedulerState.STOPPED
    # initial delay + 2 intervals
    assert scheduler.stopped_at - scheduler.started_at >= 0.15 - 0.01


@pytest.mark.asyncio
async def test_total_duration_stops_scheduler():
    task = _Counter()
    shutdown = _Counter()
    scheduler = _scheduler(task, _config(initial_delay=0.0, total_duration=0.2), on_shutdown=shutdown)

    await scheduler.start()
    assert await scheduler.wait_stopped(2.0)

    assert 1 <= task.calls <= 6
    assert shutdown.calls == 1
    assert scheduler.stopped_at - scheduler.started_at >= 0.2 - 0.01


@pytest.mark.asyncio
async def test_missing_state_skips_task_when_configured():
    task = _Counter()
    manager = _DummyManager(rebuild_result=False)
    scheduler = _scheduler(
        task,
        _config(max_iterations=2, skip_if_states_missing=True),
        manager=manager,
        context=ActiveStateSet(),
    )

    await scheduler.start()
    assert await scheduler.wait_stopped(2.0)

    assert task.calls == 0
    assert scheduler.iterations == 2
    assert manager.rebuild_calls == [["Prompt"], ["Prompt"]]


@pytest.mark.asyncio
async def test_missing_state_runs_task_anyway_by_default():
    task = _Counter()
    scheduler = _scheduler(
        task,
        _config(max_iterations=2, rebuild_on_mismatch=False),
        manager=_DummyManager(),
        context=ActiveStateSet(),
    )

    await scheduler.start()
    assert await scheduler.wait_stopped(2.0)

    assert task.calls == 2
    assert scheduler.manager.rebuild_calls == []


@pytest.mark.asyncio
async def test_successful_rebuild_restores_state_and_runs_task():
    task = _Counter()
    manager = _DummyManager(rebuild_result=True, add_on_rebuild=True)
    context = ActiveStateSet()
    scheduler = _scheduler(
        task,
        _config(max_iterations=2, skip_if_states_missing=True),
        manager=manager,
        context=context,
    )

    await scheduler.start()
    assert await scheduler.wait_stopped(2.0)

    assert task.calls == 2
    assert manager.rebuild_calls == [["Prompt"]]
    assert "Prompt" in context


@pytest.mark.asyncio
async def test_tick_exception_does_not_stop_schedule():
    calls = []

    def _failing_task():
        calls.append(1)
        raise RuntimeError("tick failed")

    scheduler = _scheduler(_failing_task, _config(initial_delay=0.0, check_interval=0.02, max_iterations=3))

    await scheduler.start()
    assert await scheduler.wait_stopped(2.0)

    assert len(calls) == 3
    assert scheduler.state is SchedulerState.STOPPED


@pytest.mark.asyncio
async def test_overrunning_tick_delays_next_without_overlap():
    active = 0
    peak = 0
    runs = 0

    async def _slow_task():
        nonlocal active, peak, runs
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.06)
        runs += 1
        active -= 1

    scheduler = _scheduler(_slow_task, _config(initial_delay=0.0, check_interval=0.01, max_iterations=3))

    await scheduler.start()
    assert await scheduler.wait_stopped(2.0)

    assert runs == 3
    assert peak == 1
    assert scheduler.stopped_at - scheduler.started_at >= 0.18 - 0.01


@pytest.mark.asyncio
async def test_stop_force_cancels_tick_after_grace_period():
    started = asyncio.Event()
    shutdown = _Counter()

    async def _hung_task():
        started.set()
        await asyncio.sleep(10)

    scheduler = _scheduler(
        _hung_task,
        _config(initial_delay=0.0, stop_grace_period=0.05),
        on_shutdown=shutdown,
    )
    await scheduler.start()
    await asyncio.wait_for(started.wait(), 1.0)

    loop = asyncio.get_running_loop()
    begin = loop.time()
    await scheduler.stop()

    assert loop.time() - begin < 1.0
    assert scheduler.state is SchedulerState.STOPPED
    assert shutdown.calls == 1


@pytest.mark.asyncio
async def test_stop_waits_for_running_tick_within_grace():
    finished = []
    started = asyncio.Event()

    async def _short_task():
        started.set()
        await asyncio.sleep(0.05)
        finished.append(True)

    scheduler = _scheduler(_short_task, _config(initial_delay=0.0, check_interval=1.0, stop_grace_period=1.0))
    await scheduler.start()
    await asyncio.wait_for(started.wait(), 1.0)
    await scheduler.stop()

    assert finished == [True]
    assert scheduler.iterations == 1


@pytest.mark.asyncio
async def test_stop_during_initial_delay_runs_nothing():
    task = _Counter()
    shutdown = _Counter()
    scheduler = _scheduler(task, _config(initial_delay=10.0), on_shutdown=shutdown)

    await scheduler.start()
    assert scheduler.is_running()
    await scheduler.stop()

    assert task.calls == 0
    assert shutdown.calls == 1
    assert not scheduler.is_running()


@pytest.mark.asyncio
async def test_stop_is_idempotent_and_restart_rejected():
    shutdown = _Counter()
    scheduler = _scheduler(_Counter(), _config(initial_delay=10.0), on_shutdown=shutdown)

    await scheduler.start()
    await scheduler.start()  # second start only warns
    await scheduler.stop()
    await scheduler.stop()

    assert shutdown.calls == 1
    with pytest.raises(SchedulerError):
        await scheduler.start()


@pytest.mark.asyncio
async def test_failing_shutdown_action_still_stops():
    def _broken_shutdown():
        raise RuntimeError("pointer stuck")

    scheduler = _scheduler(_Counter(), _config(max_iterations=1), on_shutdown=_broken_shutdown)

    await scheduler.start()
    assert await scheduler.wait_stopped(2.0)
    assert scheduler.state is SchedulerState.STOPPED


@pytest.mark.asyncio
async def test_wait_stopped_times_out_while_running():
    scheduler = _scheduler(_Counter(), _config(initial_delay=10.0))
    await scheduler.start()
    try:
        assert await scheduler.wait_stopped(0.05) is False
    finally:
        await scheduler.stop()


@pytest.mark.parametrize(
    "overrides",
    [
        {"check_interval": 0},
        {"initial_delay": -1},
        {"max_iterations": 0},
        {"total_duration": 0},
        {"stop_grace_period": -1},
    ],
)
def test_invalid_config_rejected(overrides):
    with pytest.raises(ConfigurationError):
        SchedulerConfig(**overrides)


def test_config_from_settings():
    cfg = Settings(
        monitoring_initial_delay=1.0,
        monitoring_check_interval=0.5,
        monitoring_max_iterations=4,
        monitoring_required_states="Prompt, Working,Prompt",
        monitoring_skip_if_states_missing=True,
    )

    config = SchedulerConfig.from_settings(cfg)

    assert config.initial_delay == 1.0
    assert config.check_interval == 0.5
    assert config.max_iterations == 4
    assert config.required_state_ids == ("Prompt", "Working")
    assert config.skip_if_states_missing is True


PROMPT = Match(Region(100, 600, 150, 30), 0.92, PROMPT_ANCHOR)


class _HangingLocator:
    def __init__(self):
        self.release = threading.Event()

    def locate(self, config):
        self.release.wait(3.0)
        return None


class _SlowIconLocator:
    def locate(self, config):
        if config.anchor_id == ICON_ANCHOR:
            time.sleep(0.3)
            return None
        return PROMPT


def _app_settings(**overrides):
    values = dict(
        mock_mode=True,
        search_duration=0.0,
        monitoring_initial_delay=0.0,
        monitoring_check_interval=0.05,
        monitoring_icon_timeout=0.0,
        neutral_position="5, 6",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.mark.asyncio
async def test_pointer_parked_even_when_locate_hangs():
    locator = _HangingLocator()
    cfg = _app_settings(search_duration=0.1, locate_timeout_margin=0.1, stop_grace_period=0.3)
    app = build_app(cfg, locator=locator, actuator=RecordingActuator())
    try:
        await app.scheduler.start()
        await asyncio.sleep(0.4)
        await app.scheduler.stop()
    finally:
        locator.release.set()

    assert app.scheduler.state is SchedulerState.STOPPED
    assert (ActionKind.MOVE, Location(5, 6)) in app.actuator.actions


@pytest.mark.asyncio
async def test_stop_inside_monitor_run_skips_remaining_actions():
    cfg = _app_settings(
        locate_timeout_margin=1.0,
        stop_grace_period=1.0,
        monitoring_check_interval=10.0,
    )
    app = build_app(cfg, locator=_SlowIconLocator(), actuator=RecordingActuator())
    app.context.add(PROMPT_STATE)
    app.context.add(WORKING_STATE)

    await app.scheduler.start()
    await asyncio.sleep(0.1)
    await app.scheduler.stop()

    kinds = [kind for kind, _ in app.actuator.actions]
    assert kinds.count(ActionKind.CLICK) == 1
    assert ActionKind.TYPE not in kinds
    assert app.actuator.actions[-1] == (ActionKind.MOVE, Location(5, 6))
    assert app.scheduler.task_runs == 1
