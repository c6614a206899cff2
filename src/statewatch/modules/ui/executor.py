from __future__ import annotations

from typing import Callable, Optional

from ...core.constants import LAST_LOCATED
from ...core.exceptions import ConfigurationError, TransitionStepError
from ...core.logger import logger
from ...core.thread_pool import run_in_io
from .finder import AnchorFinder
from .graph import Act, Locate, TransitionSpec
from .types import Actuator, ActionTarget, Region


class TransitionExecutor:
    """Runs the steps of one transition in order, failing fast.

    Does not touch the active state set; the caller applies the outcome.
    """

    def __init__(
        self,
        finder: AnchorFinder,
        actuator: Actuator,
        *,
        action_timeout: Optional[float] = None,
    ) -> None:
        self.finder = finder
        self.actuator = actuator
        self.action_timeout = action_timeout
        self.logger = logger.bind(module="TransitionExecutor")

    async def _run_act(self, index: int, step: Act, last_region: Optional[Region]) -> None:
        target: ActionTarget = step.target
        if isinstance(target, str) and target == LAST_LOCATED:
            if last_region is None:
                raise ConfigurationError(f"step {index}: {step.kind.value} needs a located region, none in this run")
            target = last_region
        await run_in_io(self.actuator.act, step.kind, target, timeout=self.action_timeout)

    async def execute(
        self,
        transition: TransitionSpec,
        *,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> bool:
        name = f"{transition.from_state_id}->{transition.to_state_id}"
        last_region: Optional[Region] = None

        for index, step in enumerate(transition.steps, 1):
            if should_stop is not None and should_stop():
                self.logger.info(f"Transition {name} interrupted before step {index}: stop requested")
                return False
            try:
                if isinstance(step, Locate):
                    match = await self.finder.find(step.anchor_id, search_duration=step.search_duration)
                    if match is None:
                        raise TransitionStepError(index, f"{step.anchor_id} not found")
                    last_region = match.region
                else:
                    await self._run_act(index, step, last_region)
            except TransitionStepError as e:
                self.logger.info(f"Transition {name} failed at {e}")
                return False
            except ConfigurationError as e:
                self.logger.error(f"Transition {name} misconfigured: {e}")
                return False
            except Exception as e:
                self.logger.opt(exception=e).warning(f"Transition {name} step {index} raised: {e}")
                return False

        self.logger.info(f"Transition {name} succeeded")
        return True


__all__ = ["TransitionExecutor"]
