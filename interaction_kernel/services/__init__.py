"""Kernel services (persistence-backed implementations of domain ports)."""

from interaction_kernel.services.ticket_store import SqlTicketStore

__all__ = ["SqlTicketStore"]
