"""Database layer - engine, declarative base, immutability listeners."""

from interaction_kernel.db.base import Base, new_object_id
from interaction_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "Base",
    "new_object_id",
    "create_tables",
    "get_engine",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
]
