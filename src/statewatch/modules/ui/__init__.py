from .types import (
    Location,
    Region,
    Match,
    Adjustment,
    RegionDependency,
    SearchConfig,
    Locator,
    Actuator,
)
from .registry import AnchorRegistry, AnchorSpec, StateSpec
from .resolver import DynamicRegionResolver
from .context import ActiveStateSet
from .finder import AnchorFinder
from .graph import StateGraph, TransitionSpec, Locate, Act
from .executor import TransitionExecutor
from .detector import StateDetector
from .manager import StateManager

__all__ = [
    "Location",
    "Region",
    "Match",
    "Adjustment",
    "RegionDependency",
    "SearchConfig",
    "Locator",
    "Actuator",
    "AnchorRegistry",
    "AnchorSpec",
    "StateSpec",
    "DynamicRegionResolver",
    "ActiveStateSet",
    "AnchorFinder",
    "StateGraph",
    "TransitionSpec",
    "Locate",
    "Act",
    "TransitionExecutor",
    "StateDetector",
    "StateManager",
]
