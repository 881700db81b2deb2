"""ORM models."""

from interaction_kernel.models.ticket import TicketModel

__all__ = ["TicketModel"]
