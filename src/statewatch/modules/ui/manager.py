from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from ...core.logger import logger
from .context import ActiveStateSet
from .detector import StateDetector
from .executor import TransitionExecutor
from .graph import StateGraph, TransitionSpec


class StateManager:
    """Applies transitions to the active state set and navigates between states."""

    def __init__(
        self,
        graph: StateGraph,
        detector: StateDetector,
        executor: TransitionExecutor,
    ) -> None:
        self.graph = graph
        self.detector = detector
        self.executor = executor
        self.logger = logger.bind(module="StateManager")

    def is_active(self, context: ActiveStateSet, state_id: str) -> bool:
        return context.is_active(state_id)

    async def execute_transition(
        self,
        transition: TransitionSpec,
        context: ActiveStateSet,
        *,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> bool:
        ok = await self.executor.execute(transition, should_stop=should_stop)
        if ok:
            if not transition.stays_visible:
                context.discard(transition.from_state_id)
            context.add(transition.to_state_id)
        return ok

    def plan(self, target: str, context: ActiveStateSet, max_steps: int = 8) -> Optional[List[TransitionSpec]]:
        """Shortest path to ``target`` from any active state."""
        best: Optional[List[TransitionSpec]] = None
        for source in context:
            path = self.graph.find_path(source, target, max_steps=max_steps)
            if path and (best is None or len(path) < len(best)):
                best = path
        return best

    async def ensure_state(
        self,
        target: str,
        context: ActiveStateSet,
        *,
        max_steps: int = 8,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> bool:
        if target in context:
            return True

        path = self.plan(target, context, max_steps=max_steps)
        if not path:
            self.logger.info(f"No transition path to {target} from {list(context)}")
            return False

        for edge in path:
            if not await self.execute_transition(edge, context, should_stop=should_stop):
                return False
        return target in context

    async def rebuild(
        self,
        missing: Iterable[str],
        context: ActiveStateSet,
        *,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> bool:
        """Bring missing states back: look for them on screen, then navigate."""
        targets = list(missing)
        for state_id in targets:
            if should_stop is not None and should_stop():
                return False
            if state_id in context:
                continue
            if await self.detector.verify_state(state_id):
                context.add(state_id)
                self.logger.info(f"{state_id} found on screen during rebuild")
                continue
            await self.ensure_state(state_id, context, should_stop=should_stop)
        return all(s in context for s in targets)


__all__ = ["StateManager"]
