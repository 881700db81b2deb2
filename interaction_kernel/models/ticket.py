"""
Module: interaction_kernel.models.ticket
Responsibility: ORM persistence for tickets.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Status values limited to 'Open' and 'Closed' (check constraint);
      the OPEN -> CLOSED-only lifecycle is enforced by the store and by
      the ORM listeners in db/immutability.py.
    - channel_ref, anchor_message_ref, owner_actor_id, reason and
      created_at are write-once.
    - Tickets are never deleted (kept for audit).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from interaction_kernel.db.base import Base

if TYPE_CHECKING:
    from interaction_kernel.domain.ticket import Ticket


class TicketModel(Base):
    """Persistent ticket."""

    __tablename__ = "tickets"

    __table_args__ = (
        CheckConstraint(
            "status IN ('Open', 'Closed')",
            name="ck_tickets_valid_status",
        ),
        Index("ix_tickets_owner_status", "owner_actor_id", "status"),
        Index("ix_tickets_channel_ref", "channel_ref", unique=True),
    )

    reason: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="Open")
    owner_actor_id: Mapped[str] = mapped_column(String(32), nullable=False)
    channel_ref: Mapped[str] = mapped_column(String(32), nullable=False)
    anchor_message_ref: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Ticket {self.id} {self.reason} status={self.status}>"

    def to_dto(self) -> Ticket:
        """Convert ORM model to frozen domain DTO."""
        from interaction_kernel.domain.ticket import (
            Ticket as TicketDTO,
            TicketReason,
            TicketStatus,
        )

        return TicketDTO(
            id=self.id,
            reason=TicketReason(self.reason),
            status=TicketStatus(self.status),
            owner_actor_id=self.owner_actor_id,
            channel_ref=self.channel_ref,
            anchor_message_ref=self.anchor_message_ref,
            created_at=self.created_at,
        )
