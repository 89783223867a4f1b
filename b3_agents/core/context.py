"""Call context threaded through every ask, start and call."""

import uuid
from dataclasses import dataclass, field, replace
from typing import Optional

from .errors import CallBudgetExceeded


@dataclass
class CallBudget:
    """Counts capability dispatches across one top-level ask, delegates included."""

    limit: int
    used: int = 0

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)

    def charge(self) -> None:
        """Record one dispatch.

        Raises:
            CallBudgetExceeded: If the limit is already reached.
        """
        if self.used >= self.limit:
            raise CallBudgetExceeded(self.limit)
        self.used += 1


@dataclass(frozen=True)
class CallContext:
    """Per-request state shared by an agent and the delegates it reaches.

    The context is immutable: entering a delegate returns a new context with a
    longer chain, but the budget object is shared so that nested calls count
    against the same top-level limit.
    """

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    chain: tuple[str, ...] = ()
    budget: Optional[CallBudget] = None

    def enter(self, agent_name: str) -> "CallContext":
        """Return a context whose chain ends with ``agent_name``."""
        return replace(self, chain=self.chain + (agent_name,))

    def with_budget(self, limit: int) -> "CallContext":
        """Attach a fresh budget unless one is already running."""
        if self.budget is not None:
            return self
        return replace(self, budget=CallBudget(limit=limit))

    def in_chain(self, agent_name: str) -> bool:
        return agent_name in self.chain

    @property
    def depth(self) -> int:
        return len(self.chain)

    def describe_chain(self) -> str:
        return " -> ".join(self.chain) if self.chain else "<top>"
