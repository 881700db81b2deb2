"""
Module: interaction_kernel.db.base
Responsibility: Declarative base for all SQLAlchemy ORM models.  Provides the
    24-hex-character primary key convention shared with the action-token codec
    and a type annotation map for consistent column types.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  This module MUST NOT import from models/, services/ or domain/.

Invariants enforced:
    - Object-id primary keys: every model gets a 24 lowercase hex character id
      (4-byte big-endian seconds timestamp + 8 random bytes), the same shape
      ``interaction_kernel.domain.tokens.TICKET_ID_PATTERN`` accepts.
    - datetime maps to DateTime(timezone=True).
"""

import secrets
import time
from datetime import datetime, timezone
from typing import ClassVar

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

OBJECT_ID_LENGTH = 24


def new_object_id() -> str:
    """Generate a time-ordered 24 hex character identifier."""
    return f"{int(time.time()) & 0xFFFFFFFF:08x}{secrets.token_hex(8)}"


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware DateTime that always loads as UTC.

    SQLite drops tzinfo on the way back; PostgreSQL keeps it.  Normalizing
    here keeps ``Ticket.created_at`` comparable across both backends.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            raise ValueError("Naive datetime not allowed; use an injected Clock")
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a generated 24-character hex string.
        - datetime maps to UTCDateTime.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
    }

    id: Mapped[str] = mapped_column(
        String(OBJECT_ID_LENGTH),
        primary_key=True,
        default=new_object_id,
    )
