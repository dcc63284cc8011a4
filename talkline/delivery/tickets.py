"""Delivery tickets: one in-flight send or history fetch and its outcome."""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger


class Outcome(str, Enum):
    pending = "pending"
    acknowledged = "acknowledged"
    timed_out = "timed_out"
    session_expired = "session_expired"
    failed = "failed"


_FROZEN_FIELDS = ("outcome", "reason", "result", "resolved_at")


@dataclass
class DeliveryTicket:
    """Resolves to exactly one terminal outcome and is immutable afterwards."""

    room_id: str
    payload: dict[str, Any]
    event: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    outcome: Outcome = Outcome.pending
    reason: str = ""
    result: Any = None
    created_at: float = field(default_factory=time.time)
    resolved_at: float | None = None
    attempt: int = 1

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _FROZEN_FIELDS and self.__dict__.get("outcome", Outcome.pending) != Outcome.pending:
            raise AttributeError(f"Ticket {self.id} is resolved; {name} is read-only")
        super().__setattr__(name, value)

    @property
    def resolved(self) -> bool:
        return self.outcome != Outcome.pending

    def resolve(self, outcome: Outcome, reason: str = "", result: Any = None) -> bool:
        """Set the terminal outcome. Returns False if already resolved."""
        if outcome == Outcome.pending:
            raise ValueError("pending is not a terminal outcome")
        if self.resolved:
            logger.debug(f"Ticket {self.id} already {self.outcome.value}; ignoring {outcome.value}")
            return False
        self.reason = reason
        self.result = result
        self.resolved_at = time.time()
        # Last: outcome flips the ticket to read-only
        self.outcome = outcome
        return True

    def retry(self) -> "DeliveryTicket":
        """A fresh pending ticket for the same payload."""
        return DeliveryTicket(
            room_id=self.room_id,
            payload=self.payload,
            event=self.event,
            attempt=self.attempt + 1,
        )


@dataclass
class DeliveryResult:
    """What a send or fetch came to. ticket is None when a precondition failed."""

    outcome: Outcome
    reason: str = ""
    ticket: DeliveryTicket | None = None
    result: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.acknowledged

    @classmethod
    def from_ticket(cls, ticket: DeliveryTicket) -> "DeliveryResult":
        return cls(outcome=ticket.outcome, reason=ticket.reason, ticket=ticket, result=ticket.result)
