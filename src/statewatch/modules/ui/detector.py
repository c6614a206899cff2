from __future__ import annotations

from typing import FrozenSet, List, Optional

from ...core.config import settings
from ...core.constants import StateMatchMode
from ...core.logger import logger
from .context import ActiveStateSet
from .finder import AnchorFinder
from .graph import StateGraph
from .registry import AnchorRegistry, StateSpec


class StateDetector:
    def __init__(
        self,
        graph: StateGraph,
        registry: AnchorRegistry,
        finder: AnchorFinder,
        *,
        default_mode: Optional[StateMatchMode] = None,
    ) -> None:
        self.graph = graph
        self.registry = registry
        self.finder = finder
        self.default_mode = default_mode or StateMatchMode(settings.state_match_mode)
        self.logger = logger.bind(module="StateDetector")

    async def verify_state(self, state_id: str) -> bool:
        """Search the state's anchors on screen.

        ANY: active when one anchor is found. ALL: every anchor must be found.
        """
        state = self.graph.get_state(state_id)
        if state is None or not state.required_anchor_ids:
            return False
        mode = state.match_mode or self.default_mode

        for anchor_id in state.required_anchor_ids:
            try:
                found = await self.finder.find(anchor_id) is not None
            except Exception as e:
                self.logger.opt(exception=e).error(f"Error verifying {state_id} via {anchor_id}")
                found = False
            if mode is StateMatchMode.ANY and found:
                return True
            if mode is StateMatchMode.ALL and not found:
                return False
        return mode is StateMatchMode.ALL

    def _verification_order(self) -> List[StateSpec]:
        # states whose anchors derive their region from others go last
        def has_dependents(state: StateSpec) -> bool:
            for anchor_id in state.required_anchor_ids:
                anchor = self.registry.get(anchor_id)
                if anchor is not None and anchor.dependency is not None:
                    return True
            return False

        states = self.graph.states()
        return [s for s in states if not has_dependents(s)] + [s for s in states if has_dependents(s)]

    async def verify_active_states(
        self,
        context: ActiveStateSet,
        *,
        activate_initial: bool = True,
    ) -> FrozenSet[str]:
        """Rebuild the active state set from what is on screen.

        Falls back to the states flagged initial when nothing is found.
        """
        previous = len(context)
        context.clear()
        self.logger.info(f"Verifying active states (cleared {previous})")

        for state in self._verification_order():
            if await self.verify_state(state.id):
                context.add(state.id)
                self.logger.info(f"{state.name} verified and marked as active")
            else:
                self.logger.info(f"{state.name} not found on screen")

        if not len(context) and activate_initial:
            for state in self.graph.initial_states():
                context.add(state.id)
            self.logger.info(f"No state found on screen, activated initial states: {list(context)}")

        self.logger.info(f"Active states after verification: {list(context)}")
        return context.snapshot()


__all__ = ["StateDetector"]
