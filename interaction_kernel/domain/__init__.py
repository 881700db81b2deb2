"""
Pure domain layer.

Value objects and pure functions with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- The chat client

All domain objects are immutable and deterministic.
"""

from interaction_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from interaction_kernel.domain.policy import (
    WORKFLOW_ACTION_TO_CATEGORY,
    AuthorizationPolicy,
    RoleCategory,
)
from interaction_kernel.domain.ticket import (
    TICKET_TRANSITIONS,
    Ticket,
    TicketDraft,
    TicketReason,
    TicketStatus,
)
from interaction_kernel.domain.tokens import (
    ActionToken,
    NoteAction,
    NoteActionToken,
    NoteTokenCodec,
    TicketAction,
    TicketActionToken,
    TicketTokenCodec,
    TokenCodec,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "WORKFLOW_ACTION_TO_CATEGORY",
    "AuthorizationPolicy",
    "RoleCategory",
    "TICKET_TRANSITIONS",
    "Ticket",
    "TicketDraft",
    "TicketReason",
    "TicketStatus",
    "ActionToken",
    "NoteAction",
    "NoteActionToken",
    "NoteTokenCodec",
    "TicketAction",
    "TicketActionToken",
    "TicketTokenCodec",
    "TokenCodec",
]
