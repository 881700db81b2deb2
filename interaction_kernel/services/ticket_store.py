"""
interaction_kernel.services.ticket_store -- SQLAlchemy ticket persistence.

Responsibility:
    Implements the ``TicketStore`` port: create a ticket, find one by id,
    update its status.  Each call is one single-row transaction, run in a
    worker thread via ``asyncio.to_thread``.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Ticket ids are validated against the codec's id format before lookup;
      a malformed id is a miss, never a query.
    - Status changes go through ``requires_status_change``: re-closing is a
      no-op, reopening raises InvalidTicketTransitionError.

Failure modes:
    - TicketNotFoundError from update_ticket_status on an unknown id.
    - InvalidTicketTransitionError on CLOSED -> OPEN.
    - ExternalServiceError wrapping any SQLAlchemyError.
"""

from __future__ import annotations

import asyncio

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from interaction_kernel.db.engine import session_scope
from interaction_kernel.domain.clock import Clock, SystemClock
from interaction_kernel.domain.ticket import (
    Ticket,
    TicketDraft,
    TicketStatus,
    requires_status_change,
)
from interaction_kernel.domain.tokens import is_ticket_id
from interaction_kernel.exceptions import ExternalServiceError, TicketNotFoundError
from interaction_kernel.logging_config import get_logger
from interaction_kernel.models.ticket import TicketModel

logger = get_logger("services.ticket_store")


class SqlTicketStore:
    """
    Ticket store backed by the kernel's SQLAlchemy session factory.

    Sessions are synchronous; every call runs its transaction in a worker
    thread so the event loop keeps serving other activations meanwhile.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    async def create_ticket(self, draft: TicketDraft) -> Ticket:
        try:
            ticket = await asyncio.to_thread(self._insert, draft)
        except SQLAlchemyError as exc:
            raise ExternalServiceError("ticket_store", "create_ticket", str(exc)) from exc

        logger.info(
            "ticket_created",
            extra={
                "ticket_id": ticket.id,
                "reason": ticket.reason.value,
                "owner_actor_id": ticket.owner_actor_id,
                "channel_ref": ticket.channel_ref,
            },
        )
        return ticket

    async def find_ticket(self, ticket_id: str) -> Ticket | None:
        if not is_ticket_id(ticket_id):
            return None
        try:
            return await asyncio.to_thread(self._select, ticket_id)
        except SQLAlchemyError as exc:
            raise ExternalServiceError("ticket_store", "find_ticket", str(exc)) from exc

    async def update_ticket_status(self, ticket_id: str, status: TicketStatus) -> None:
        try:
            previous = await asyncio.to_thread(self._transition, ticket_id, status)
        except SQLAlchemyError as exc:
            raise ExternalServiceError(
                "ticket_store", "update_ticket_status", str(exc)
            ) from exc

        if previous is None:
            logger.info(
                "ticket_status_unchanged",
                extra={"ticket_id": ticket_id, "status": status.value},
            )
            return

        logger.info(
            "ticket_status_updated",
            extra={
                "ticket_id": ticket_id,
                "from_status": previous.value,
                "to_status": status.value,
            },
        )

    # -- blocking bodies, run off the event loop --------------------------

    def _insert(self, draft: TicketDraft) -> Ticket:
        with session_scope(self._session_factory) as session:
            model = TicketModel(
                reason=draft.reason.value,
                status=draft.status.value,
                owner_actor_id=draft.owner_actor_id,
                channel_ref=draft.channel_ref,
                anchor_message_ref=draft.anchor_message_ref,
                created_at=self._clock.now(),
            )
            session.add(model)
            session.flush()
            return model.to_dto()

    def _select(self, ticket_id: str) -> Ticket | None:
        with session_scope(self._session_factory) as session:
            model = session.get(TicketModel, ticket_id)
            return model.to_dto() if model is not None else None

    def _transition(self, ticket_id: str, status: TicketStatus) -> TicketStatus | None:
        """Apply the change; return the prior status, or None for a no-op."""
        with session_scope(self._session_factory) as session:
            model = session.get(TicketModel, ticket_id, with_for_update=True)
            if model is None:
                raise TicketNotFoundError(ticket_id)

            current = TicketStatus(model.status)
            if not requires_status_change(ticket_id, current, status):
                return None

            model.status = status.value
            return current
