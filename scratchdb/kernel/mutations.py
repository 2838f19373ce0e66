"""
scratchdb Kernel: Optimistic Mutations

Board and calendar moves are applied to local state before the store
answers. Each one is tracked as a PendingMutation:

    applied -> confirmed     store acknowledged the write
    applied -> rolled_back   store failed; the session reloads

Both outcomes are terminal.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any

APPLIED = "applied"
CONFIRMED = "confirmed"
ROLLED_BACK = "rolled_back"

_ids = itertools.count(1)


class InvalidTransition(ValueError):
    """Tried to settle a mutation that is already settled."""

    pass


@dataclass
class PendingMutation:
    row_id: str
    column_id: str
    previous: Any
    value: Any
    state: str = APPLIED
    id: int = field(default_factory=lambda: next(_ids))

    @property
    def settled(self) -> bool:
        return self.state != APPLIED

    def confirm(self) -> None:
        self._transition(CONFIRMED)

    def roll_back(self) -> None:
        self._transition(ROLLED_BACK)

    def _transition(self, target: str) -> None:
        if self.state != APPLIED:
            raise InvalidTransition(f"Mutation {self.id} is {self.state}, cannot become {target}")
        self.state = target
