"""
ORM-Level Immutability Enforcement for tickets.

===============================================================================
WHY THIS EXISTS
===============================================================================

A ticket row is the authoritative record that a conversation happened and
was closed.  The chat channel it points at is a secondary representation,
and the archive export is keyed off the anchor message.  If either
reference changed after creation, the transcript of a closed ticket could
silently point at a different conversation.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events and check:

    session.flush()
         |
         v
    [before_update] --> _check_ticket_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete] --> _check_ticket_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED FIELDS
===============================================================================

Field               | Rule
--------------------|----------------------------------------------
channel_ref         | Write-once
anchor_message_ref  | Write-once
owner_actor_id      | Write-once
reason              | Write-once
created_at          | Write-once
status              | Open -> Closed only; Closed is terminal
(row)               | Never deleted

===============================================================================
USAGE
===============================================================================

    from interaction_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from interaction_kernel.exceptions import ImmutabilityViolationError
from interaction_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

WRITE_ONCE_TICKET_FIELDS = (
    "channel_ref",
    "anchor_message_ref",
    "owner_actor_id",
    "reason",
    "created_at",
)


def _blocked(entity_id: str, operation: str, field: str | None, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "Ticket",
            "entity_id": entity_id,
            "operation": operation,
            "field": field,
        },
    )
    return ImmutabilityViolationError(
        entity_type="Ticket",
        entity_id=entity_id,
        reason=reason,
    )


def _check_ticket_immutability(mapper, connection, target):
    """Block changes to write-once fields and any reopening of a ticket."""
    for field in WRITE_ONCE_TICKET_FIELDS:
        history = get_history(target, field)
        if history.deleted and history.added:
            raise _blocked(
                str(target.id), "UPDATE", field,
                f"Cannot modify write-once field '{field}'",
            )

    status_history = get_history(target, "status")
    if status_history.deleted:
        old_status = status_history.deleted[0]
        if old_status == "Closed":
            raise _blocked(
                str(target.id), "UPDATE", "status",
                "Cannot change the status of a closed ticket",
            )


def _check_ticket_delete(mapper, connection, target):
    """Tickets are retained for audit; never deleted."""
    raise _blocked(
        str(target.id), "DELETE", None,
        "Tickets are retained for audit and cannot be deleted",
    )


def register_immutability_listeners():
    """Register ticket immutability listeners (idempotent)."""
    from interaction_kernel.models.ticket import TicketModel

    if not event.contains(TicketModel, "before_update", _check_ticket_immutability):
        event.listen(TicketModel, "before_update", _check_ticket_immutability)
    if not event.contains(TicketModel, "before_delete", _check_ticket_delete):
        event.listen(TicketModel, "before_delete", _check_ticket_delete)


def unregister_immutability_listeners():
    """
    Remove ticket immutability listeners.

    WARNING: Only use this in tests that need to violate the rules on
    purpose.
    """
    from interaction_kernel.models.ticket import TicketModel

    for event_name, listener_fn in (
        ("before_update", _check_ticket_immutability),
        ("before_delete", _check_ticket_delete),
    ):
        if event.contains(TicketModel, event_name, listener_fn):
            event.remove(TicketModel, event_name, listener_fn)
