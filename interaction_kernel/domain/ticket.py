"""
Ticket domain types (``interaction_kernel.domain.ticket``).

Responsibility
--------------
Pure value objects for the ticket lifecycle: status state machine, reason
codes, the frozen ``Ticket`` record returned by the store and the
``TicketDraft`` handed to it on creation.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``TICKET_TRANSITIONS`` defines the only valid status changes:
  OPEN -> CLOSED.  CLOSED is terminal and is never reopened.
* Re-applying the current status is an idempotent no-op, so a second close
  of an already closed ticket is harmless.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from interaction_kernel.domain.tokens import TicketAction
from interaction_kernel.exceptions import InvalidTicketTransitionError


class TicketStatus(str, Enum):
    """Ticket lifecycle states."""

    OPEN = "Open"
    CLOSED = "Closed"


TICKET_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.OPEN: frozenset({TicketStatus.CLOSED}),
    TicketStatus.CLOSED: frozenset(),
}


class TicketReason(str, Enum):
    """Why a ticket was opened.  Persisted verbatim."""

    AUTO = "AUTO"
    PRAISE = "PRAISE"


REASON_BY_OPEN_ACTION: dict[TicketAction, TicketReason] = {
    TicketAction.OPEN_DEFAULT: TicketReason.AUTO,
    TicketAction.OPEN_PRAISE: TicketReason.PRAISE,
}


def requires_status_change(
    ticket_id: str,
    current: TicketStatus,
    target: TicketStatus,
) -> bool:
    """Validate a status change against the lifecycle.

    Returns False when ``target`` equals ``current`` (nothing to write).

    Raises:
        InvalidTicketTransitionError: If the lifecycle forbids the change.
    """
    if current == target:
        return False
    if target not in TICKET_TRANSITIONS[current]:
        raise InvalidTicketTransitionError(ticket_id, current.value, target.value)
    return True


@dataclass(frozen=True)
class TicketDraft:
    """Everything the store needs to create a ticket."""

    reason: TicketReason
    owner_actor_id: str
    channel_ref: str
    anchor_message_ref: str
    status: TicketStatus = TicketStatus.OPEN


@dataclass(frozen=True)
class Ticket:
    """A persisted ticket.  Immutable snapshot."""

    id: str
    reason: TicketReason
    status: TicketStatus
    owner_actor_id: str
    channel_ref: str
    anchor_message_ref: str
    created_at: datetime

    @property
    def is_closed(self) -> bool:
        return self.status is TicketStatus.CLOSED
