"""
Geometric value objects, match records and the narrow contracts of the
external collaborators (locator / actuator).

Collaborator protocols are typing-only; concrete implementations live in
``modules.vision`` (live / replay locators) and ``modules.input``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol, Tuple, Union

from ...core.constants import ActionKind
from ...core.exceptions import InvalidRegionError


@dataclass(frozen=True)
class Location:
    x: int
    y: int


@dataclass(frozen=True)
class Region:
    """Screen rectangle. A region always has a positive size; an unresolved
    region is ``None``, never a degenerate rectangle."""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidRegionError(
                f"Region must have positive size, got {self.width}x{self.height} at ({self.x},{self.y})"
            )

    @classmethod
    def from_screen_percentage(
        cls,
        screen_width: int,
        screen_height: int,
        px: float,
        py: float,
        pw: float,
        ph: float,
    ) -> "Region":
        """Build a region from fractions (0..1) of the screen size."""
        return cls(
            x=int(screen_width * px),
            y=int(screen_height * py),
            width=int(screen_width * pw),
            height=int(screen_height * ph),
        )

    def adjust(self, dx: int = 0, dy: int = 0, dw: int = 0, dh: int = 0) -> "Region":
        return Region(self.x + dx, self.y + dy, self.width + dw, self.height + dh)

    @property
    def center(self) -> Location:
        return Location(self.x + self.width // 2, self.y + self.height // 2)

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class Match:
    region: Region
    score: float
    anchor_id: str

    def __post_init__(self) -> None:
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Match score must be within [0, 1], got {self.score}")


@dataclass(frozen=True)
class Adjustment:
    dx: int = 0
    dy: int = 0
    dw: int = 0
    dh: int = 0


@dataclass(frozen=True)
class RegionDependency:
    """Search region = last match of (target_state_id, target_anchor_id) + adjustment."""

    target_state_id: str
    target_anchor_id: str
    adjustment: Adjustment = field(default_factory=Adjustment)


@dataclass(frozen=True)
class SearchConfig:
    anchor_id: str
    region: Optional[Region]  # None -> whole screen
    similarity: float
    search_duration: float
    templates: Tuple[str, ...] = ()


ActionTarget = Union[Region, Location, str]


class Locator(Protocol):
    def locate(self, config: SearchConfig) -> Optional[Match]:
        """Search for the anchor. Returns None when not found. May block."""
        ...


class Actuator(Protocol):
    def act(self, kind: ActionKind, target: ActionTarget) -> None:
        """Perform an input action. Raises ActionFailedError on failure."""
        ...


__all__ = [
    "Location",
    "Region",
    "Match",
    "Adjustment",
    "RegionDependency",
    "SearchConfig",
    "ActionTarget",
    "Locator",
    "Actuator",
]
