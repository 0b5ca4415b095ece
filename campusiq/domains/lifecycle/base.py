# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Generic finite state machine used by entity lifecycles."""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Generic, TypeVar

S = TypeVar("S", bound=Enum)


class InvalidTransitionError(Exception):
    """Raised when a requested status move is not allowed.

    Attributes:
        current: State the entity is in.
        requested: State the caller asked for.
    """

    def __init__(self, current: Enum, requested: Enum) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            f"Invalid status transition from {current.value} to {requested.value}"
        )


class StateMachine(Generic[S]):
    """Immutable transition table over an enum of states.

    Self-loops are never transitions, even when listed.

    Args:
        name: Entity name used in log and error text.
        edges: Mapping of source state to the states reachable from it.
        unguarded: States whose outgoing moves are not hard-blocked by
            ``permits`` even though no edge is listed for them.
    """

    def __init__(
        self,
        name: str,
        edges: Mapping[S, Iterable[S]],
        unguarded: Iterable[S] = (),
    ) -> None:
        self.name = name
        self._edges: dict[S, frozenset[S]] = {
            source: frozenset(t for t in targets if t != source)
            for source, targets in edges.items()
        }
        self._unguarded: frozenset[S] = frozenset(unguarded)

    def can_transition(self, current: S, requested: S) -> bool:
        """Check whether ``current -> requested`` is a listed edge."""
        if current == requested:
            return False
        return requested in self._edges.get(current, frozenset())

    def permits(self, current: S, requested: S) -> bool:
        """Check whether the write path accepts the move.

        This is ``can_transition`` widened by the unguarded source states.
        """
        if current == requested:
            return False
        return self.can_transition(current, requested) or current in self._unguarded

    def ensure(self, current: S, requested: S) -> None:
        """Raise unless the write path accepts the move.

        Raises:
            InvalidTransitionError: If ``permits`` is False.
        """
        if not self.permits(current, requested):
            raise InvalidTransitionError(current, requested)

    def next_states(self, current: S) -> frozenset[S]:
        """States offered from ``current`` as listed edges."""
        return self._edges.get(current, frozenset())

    def edges(self) -> set[tuple[S, S]]:
        """All listed (source, target) pairs."""
        return {(s, t) for s, targets in self._edges.items() for t in targets}

    def is_terminal(self, state: S) -> bool:
        """Check whether no edge leaves ``state``."""
        return not self._edges.get(state)
