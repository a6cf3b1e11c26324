"""Finite-state lifecycles for customer orders and purchase orders.

A lifecycle is a forward transition table plus a cancellation state that is
reachable from every non-terminal status. Anything not listed is illegal.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, FrozenSet, Generic, Iterable, Mapping, TypeVar

from ..core.errors import InvalidStateError


S = TypeVar("S", bound=Enum)


class StatusLifecycle(Generic[S]):
    def __init__(
        self,
        entity: str,
        forward: Mapping[S, Iterable[S]],
        cancelled: S,
        terminal: Iterable[S],
    ) -> None:
        self.entity = entity
        self.cancelled = cancelled
        self.terminal: FrozenSet[S] = frozenset(terminal) | {cancelled}
        self._forward: Dict[S, FrozenSet[S]] = {
            status: frozenset(targets) for status, targets in forward.items()
        }

    def allowed_targets(self, current: S) -> FrozenSet[S]:
        if current in self.terminal:
            return frozenset()
        return self._forward.get(current, frozenset()) | {self.cancelled}

    def can_transition(self, current: S, target: S) -> bool:
        return target in self.allowed_targets(current)

    def ensure_transition(self, entity_id: Any, current: S, target: S) -> None:
        if not self.can_transition(current, target):
            raise InvalidStateError(self.entity, entity_id, current, target)


def linear(sequence: Iterable[S]) -> Dict[S, FrozenSet[S]]:
    """Forward table where each status may only move to the next one."""
    steps = list(sequence)
    return {current: frozenset({nxt}) for current, nxt in zip(steps, steps[1:])}
