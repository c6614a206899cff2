from .replay import ActionRecord, ActionHistory, MockReplayEngine
from .fixtures import FixtureFile, parse_fixtures, load_fixtures
from .default_fixtures import build_default_histories

__all__ = [
    "ActionRecord",
    "ActionHistory",
    "MockReplayEngine",
    "FixtureFile",
    "parse_fixtures",
    "load_fixtures",
    "build_default_histories",
]
