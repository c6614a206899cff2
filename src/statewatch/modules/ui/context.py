from __future__ import annotations

from typing import FrozenSet, Iterable, Iterator, List, Set


class ActiveStateSet:
    """Ids of the states currently active.

    Owned by the scheduler and handed by reference to the manager and the
    monitoring task. Single writer; no locking.
    """

    def __init__(self, states: Iterable[str] = ()) -> None:
        self._active: Set[str] = set(states)

    def add(self, state_id: str) -> None:
        self._active.add(state_id)

    def discard(self, state_id: str) -> None:
        self._active.discard(state_id)

    def clear(self) -> None:
        self._active.clear()

    def is_active(self, state_id: str) -> bool:
        return state_id in self._active

    def missing(self, state_ids: Iterable[str]) -> List[str]:
        return [s for s in state_ids if s not in self._active]

    def snapshot(self) -> FrozenSet[str]:
        return frozenset(self._active)

    def __contains__(self, state_id: object) -> bool:
        return state_id in self._active

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._active))

    def __len__(self) -> int:
        return len(self._active)

    def __repr__(self) -> str:
        return f"ActiveStateSet({sorted(self._active)})"


__all__ = ["ActiveStateSet"]
