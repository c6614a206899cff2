import pytest

from statewatch.core.config import Settings
from statewatch.core.constants import ActionKind, ICON_ANCHOR, PROMPT_ANCHOR, PROMPT_STATE, WORKING_STATE
from statewatch.core.thread_pool import shutdown_pools
from statewatch.main import build_app
from statewatch.modules.input.actuator import RecordingActuator
from statewatch.modules.ui.types import Match, Region

PROMPT = Match(Region(100, 600, 150, 30), 0.92, PROMPT_ANCHOR)
ICON = Match(Region(103, 610, 25, 25), 0.9, ICON_ANCHOR)


class _DummyLocator:
    def __init__(self, found=None):
        self.found = dict(found or {})
        self.searched = []

    def locate(self, config):
        self.searched.append(config.anchor_id)
        return self.found.get(config.anchor_id)


@pytest.fixture(autouse=True)
def _reset_pools():
    yield
    shutdown_pools()


def _app(locator, actuator=None, highlight=True):
    cfg = Settings(
        mock_mode=True,
        search_duration=0.0,
        monitoring_icon_timeout=0.0,
        monitoring_highlight=highlight,
    )
    return build_app(cfg, locator=locator, actuator=actuator or RecordingActuator())


@pytest.mark.asyncio
async def test_visible_icon_is_highlighted():
    app = _app(_DummyLocator({PROMPT_ANCHOR: PROMPT, ICON_ANCHOR: ICON}))
    app.context.add(PROMPT_STATE)
    app.context.add(WORKING_STATE)

    assert await app.monitor.run_once() is True
    assert app.actuator.actions == [
        (ActionKind.CLICK, PROMPT.region),
        (ActionKind.HIGHLIGHT, Region(103, 610, 180, 85)),
        (ActionKind.HIGHLIGHT, ICON.region),
    ]
    assert app.context.snapshot() == {PROMPT_STATE, WORKING_STATE}


@pytest.mark.asyncio
async def test_missing_prompt_does_nothing():
    locator = _DummyLocator()
    app = _app(locator)

    assert await app.monitor.run_once() is False
    assert app.actuator.actions == []
    assert locator.searched == [PROMPT_ANCHOR]


@pytest.mark.asyncio
async def test_vanished_icon_reenters_working_state():
    app = _app(_DummyLocator({PROMPT_ANCHOR: PROMPT}))
    app.context.add(PROMPT_STATE)
    app.context.add(WORKING_STATE)

    assert await app.monitor.run_once() is False

    kinds = [kind for kind, _ in app.actuator.actions]
    assert kinds == [ActionKind.CLICK, ActionKind.HIGHLIGHT, ActionKind.CLICK, ActionKind.TYPE]
    assert app.actuator.actions[-1] == (ActionKind.TYPE, "continue\n")
    assert app.context.snapshot() == {PROMPT_STATE, WORKING_STATE}


@pytest.mark.asyncio
async def test_failed_reentry_leaves_working_inactive():
    locator = _DummyLocator({PROMPT_ANCHOR: PROMPT})
    app = _app(locator, actuator=RecordingActuator(fail_on=frozenset({ActionKind.TYPE})))
    app.context.add(PROMPT_STATE)
    app.context.add(WORKING_STATE)

    await app.monitor.run_once()

    assert app.context.snapshot() == {PROMPT_STATE}


@pytest.mark.asyncio
async def test_failed_click_skips_icon_search():
    locator = _DummyLocator({PROMPT_ANCHOR: PROMPT, ICON_ANCHOR: ICON})
    app = _app(locator, actuator=RecordingActuator(fail_on=frozenset({ActionKind.CLICK})))

    assert await app.monitor.run_once() is False
    assert locator.searched == [PROMPT_ANCHOR]


@pytest.mark.asyncio
async def test_highlight_can_be_disabled():
    app = _app(_DummyLocator({PROMPT_ANCHOR: PROMPT, ICON_ANCHOR: ICON}), highlight=False)

    assert await app.monitor.run_once() is True
    assert app.actuator.actions == [(ActionKind.CLICK, PROMPT.region)]


class _StopOnIconMiss(_DummyLocator):
    """A locator that raises the stop flag when the icon search comes back empty."""

    def __init__(self, found=None):
        super().__init__(found)
        self.stop = False

    def locate(self, config):
        match = super().locate(config)
        if config.anchor_id == ICON_ANCHOR and match is None:
            self.stop = True
        return match


@pytest.mark.asyncio
async def test_stop_after_icon_miss_skips_reentry():
    locator = _StopOnIconMiss({PROMPT_ANCHOR: PROMPT})
    app = _app(locator)
    app.monitor.should_stop = lambda: locator.stop
    app.context.add(PROMPT_STATE)
    app.context.add(WORKING_STATE)

    assert await app.monitor.run_once() is False

    kinds = [kind for kind, _ in app.actuator.actions]
    assert kinds == [ActionKind.CLICK, ActionKind.HIGHLIGHT]
    assert ActionKind.TYPE not in kinds
    # Working stays active; re-entry is left to the next run
    assert app.context.snapshot() == {PROMPT_STATE, WORKING_STATE}


@pytest.mark.asyncio
async def test_stop_before_click_leaves_prompt_alone():
    locator = _DummyLocator({PROMPT_ANCHOR: PROMPT, ICON_ANCHOR: ICON})
    app = _app(locator)
    app.monitor.should_stop = lambda: True

    assert await app.monitor.run_once() is False
    assert app.actuator.actions == []
    assert locator.searched == [PROMPT_ANCHOR]


@pytest.mark.asyncio
async def test_stop_during_reentry_interrupts_transition():
    locator = _DummyLocator({PROMPT_ANCHOR: PROMPT})
    app = _app(locator)
    app.context.add(PROMPT_STATE)
    app.context.add(WORKING_STATE)
    clicks = []

    def _stop_after_second_click():
        clicks[:] = [a for a in app.actuator.actions if a[0] is ActionKind.CLICK]
        return len(clicks) >= 2

    app.monitor.should_stop = _stop_after_second_click

    assert await app.monitor.run_once() is False

    kinds = [kind for kind, _ in app.actuator.actions]
    assert kinds == [ActionKind.CLICK, ActionKind.HIGHLIGHT, ActionKind.CLICK]
    assert app.context.snapshot() == {PROMPT_STATE}
