from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from ...core.constants import LAST_LOCATED, ActionKind
from ...core.exceptions import ConfigurationError
from .registry import AnchorRegistry, StateSpec
from .types import ActionTarget


@dataclass(frozen=True)
class Locate:
    anchor_id: str
    search_duration: Optional[float] = None


@dataclass(frozen=True)
class Act:
    kind: ActionKind
    target: ActionTarget = LAST_LOCATED  # or a literal payload / Region / Location


Step = Union[Locate, Act]


@dataclass(frozen=True)
class TransitionSpec:
    from_state_id: str
    to_state_id: str
    steps: Tuple[Step, ...] = field(default_factory=tuple)
    stays_visible: bool = False  # keep from_state active after success

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))


class StateGraph:
    """Explicit registration table of states and transitions.

    Only declared transitions are reachable; ``validate`` must pass before
    the scheduler starts.
    """

    def __init__(self) -> None:
        self._states: Dict[str, StateSpec] = {}
        self._adj: Dict[str, List[TransitionSpec]] = {}

    def register_state(self, state: StateSpec) -> None:
        if state.id in self._states:
            raise ConfigurationError(f"State already registered: {state.id}")
        self._states[state.id] = state

    def get_state(self, state_id: str) -> Optional[StateSpec]:
        return self._states.get(state_id)

    def states(self) -> List[StateSpec]:
        return list(self._states.values())

    def initial_states(self) -> List[StateSpec]:
        return [s for s in self._states.values() if s.is_initial]

    def add_transition(self, transition: TransitionSpec) -> None:
        self._adj.setdefault(transition.from_state_id, []).append(transition)

    def transitions_from(self, state_id: str) -> List[TransitionSpec]:
        return self._adj.get(state_id, [])

    def transitions(self) -> List[TransitionSpec]:
        return [t for edges in self._adj.values() for t in edges]

    def find_path(self, source: str, target: str, max_steps: int = 8) -> Optional[List[TransitionSpec]]:
        # Simple BFS by edges count
        q = deque([(source, [])])
        visited = {source}
        while q:
            node, path = q.popleft()
            if len(path) >= max_steps:
                continue
            for e in self.transitions_from(node):
                if e.to_state_id == target:
                    return path + [e]
                if e.to_state_id not in visited:
                    visited.add(e.to_state_id)
                    q.append((e.to_state_id, path + [e]))
        return None

    def validate(self, registry: AnchorRegistry) -> None:
        """Check referential integrity; raises ConfigurationError listing every issue."""
        issues: List[str] = []

        for state in self._states.values():
            for anchor_id in state.required_anchor_ids:
                anchor = registry.get(anchor_id)
                if anchor is None:
                    issues.append(f"state {state.id}: unknown anchor {anchor_id}")
                elif anchor.owner_state_id != state.id:
                    issues.append(f"state {state.id}: anchor {anchor_id} belongs to {anchor.owner_state_id}")

        for anchor in registry.all():
            if anchor.owner_state_id not in self._states:
                issues.append(f"anchor {anchor.id}: unknown owner state {anchor.owner_state_id}")
            dep = anchor.dependency
            if dep is None:
                continue
            target = registry.get(dep.target_anchor_id)
            if dep.target_anchor_id == anchor.id:
                issues.append(f"anchor {anchor.id}: depends on itself")
            elif target is None:
                issues.append(f"anchor {anchor.id}: unknown dependency target {dep.target_anchor_id}")
            elif target.owner_state_id != dep.target_state_id:
                issues.append(
                    f"anchor {anchor.id}: {dep.target_anchor_id} belongs to {target.owner_state_id}, "
                    f"not {dep.target_state_id}"
                )

        for t in self.transitions():
            name = f"transition {t.from_state_id}->{t.to_state_id}"
            if t.from_state_id not in self._states:
                issues.append(f"{name}: unknown from state")
            if t.to_state_id not in self._states:
                issues.append(f"{name}: unknown to state")
            located = False
            for i, step in enumerate(t.steps, 1):
                if isinstance(step, Locate):
                    if registry.get(step.anchor_id) is None:
                        issues.append(f"{name} step {i}: unknown anchor {step.anchor_id}")
                    located = True
                elif isinstance(step.target, str) and step.target == LAST_LOCATED and not located:
                    issues.append(f"{name} step {i}: {step.kind.value} on last located region before any Locate")

        if issues:
            raise ConfigurationError("Invalid state model: " + "; ".join(issues))


__all__ = ["Locate", "Act", "Step", "TransitionSpec", "StateGraph"]
