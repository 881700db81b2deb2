"""
Action tokens (``interaction_kernel.domain.tokens``).

Responsibility
--------------
Typed action descriptors and the codecs that turn them into the opaque
strings carried on UI controls (button custom ids), and back.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects and pure functions.  ZERO
I/O.  No imports from ``db/``, ``models/``, ``services/``.

Invariants enforced
-------------------
* Every token is namespaced: ``"<namespace>::<identifier>/<action-data>"``.
  The namespace identifies the owning workflow, so several workflows can
  share one dispatch surface without collision.
* ``encode(decode(raw)) == raw`` for every canonical token.
* A token whose namespace is not the codec's is "not mine": ``decode``
  returns ``None`` and never raises.
* A token that does carry the codec's namespace but whose action data does
  not parse raises ``MalformedTokenError``.
* Ticket ids carried in tokens match the store's id format
  (24 lowercase hex characters) before any lookup happens.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Generic, TypeVar

from interaction_kernel.exceptions import MalformedTokenError, TokenTooLongError

# Control-id limit imposed by the chat platform.
MAX_TOKEN_LENGTH = 100

NAMESPACE_SEPARATOR = "::"
PAYLOAD_SEPARATOR = "/"

NOTES_NAMESPACE = "LCST::NotesInteractionHandler"
TICKETS_NAMESPACE = "LCST::OmbudsmanInteractionHandler"

TICKET_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")


def is_ticket_id(value: object) -> bool:
    """True if ``value`` has the persistence store's ticket id format."""
    return isinstance(value, str) and TICKET_ID_PATTERN.match(value) is not None


# =========================================================================
# Actions
# =========================================================================


class NoteAction(str, Enum):
    """Actions of the note-approval workflow."""

    REQUEST = "Request"
    APPROVE = "Approve"
    REJECT = "Reject"


class TicketAction(str, Enum):
    """Actions of the ticket-lifecycle workflow."""

    OPEN_DEFAULT = "OpenDefault"
    OPEN_PRAISE = "OpenPraise"
    END = "End"

    @property
    def is_open(self) -> bool:
        return self in (TicketAction.OPEN_DEFAULT, TicketAction.OPEN_PRAISE)


# =========================================================================
# Descriptors (tagged union)
# =========================================================================


@dataclass(frozen=True)
class NoteActionToken:
    """Note workflow descriptor.  Carries no payload."""

    action: NoteAction

    namespace: ClassVar[str] = NOTES_NAMESPACE


@dataclass(frozen=True)
class TicketActionToken:
    """Ticket workflow descriptor.

    ``ticket_id`` is absent for open actions and required for ``END``.
    """

    action: TicketAction
    ticket_id: str | None = None

    namespace: ClassVar[str] = TICKETS_NAMESPACE

    def __post_init__(self) -> None:
        if self.ticket_id is not None and not is_ticket_id(self.ticket_id):
            raise ValueError(f"Invalid ticket id: {self.ticket_id!r}")
        if self.action is TicketAction.END and self.ticket_id is None:
            raise ValueError("End action requires a ticket id")


ActionToken = NoteActionToken | TicketActionToken

TokenT = TypeVar("TokenT", NoteActionToken, TicketActionToken)


def split_namespace(raw: str) -> str | None:
    """Return the ``<namespace>::<identifier>`` part of a token, if any."""
    namespace, sep, _ = raw.partition(PAYLOAD_SEPARATOR)
    if not sep or NAMESPACE_SEPARATOR not in namespace:
        return None
    return namespace


# =========================================================================
# Codecs
# =========================================================================


class TokenCodec(ABC, Generic[TokenT]):
    """Encode/decode pair for one namespace.

    Subclasses implement only the suffix (action data) encoding; the
    namespace prefix, length limit and "not mine" behaviour live here.
    """

    namespace: ClassVar[str]

    def owns(self, raw: str) -> bool:
        return split_namespace(raw) == self.namespace

    def encode(self, token: TokenT) -> str:
        raw = f"{self.namespace}{PAYLOAD_SEPARATOR}{self._encode_suffix(token)}"
        if len(raw) > MAX_TOKEN_LENGTH:
            raise TokenTooLongError(raw, MAX_TOKEN_LENGTH)
        return raw

    def decode(self, raw: str) -> TokenT | None:
        if not self.owns(raw):
            return None
        suffix = raw[len(self.namespace) + len(PAYLOAD_SEPARATOR):]
        return self._decode_suffix(raw, suffix)

    @abstractmethod
    def _encode_suffix(self, token: TokenT) -> str: ...

    @abstractmethod
    def _decode_suffix(self, raw: str, suffix: str) -> TokenT: ...


class NoteTokenCodec(TokenCodec[NoteActionToken]):
    """Simple enum encoding: the suffix is the literal action name."""

    namespace = NOTES_NAMESPACE

    def _encode_suffix(self, token: NoteActionToken) -> str:
        return token.action.value

    def _decode_suffix(self, raw: str, suffix: str) -> NoteActionToken:
        try:
            return NoteActionToken(NoteAction(suffix))
        except ValueError:
            raise MalformedTokenError(raw, f"unknown note action {suffix!r}") from None


class TicketTokenCodec(TokenCodec[TicketActionToken]):
    """Structured encoding: the suffix is compact JSON ``{id?, action}``."""

    namespace = TICKETS_NAMESPACE

    _ALLOWED_KEYS = frozenset({"id", "action"})

    def _encode_suffix(self, token: TicketActionToken) -> str:
        data: dict[str, str] = {}
        if token.ticket_id is not None:
            data["id"] = token.ticket_id
        data["action"] = token.action.value
        return json.dumps(data, separators=(",", ":"))

    def _decode_suffix(self, raw: str, suffix: str) -> TicketActionToken:
        try:
            data = json.loads(suffix)
        except json.JSONDecodeError as exc:
            raise MalformedTokenError(raw, f"action data is not JSON: {exc.msg}") from None

        if not isinstance(data, dict):
            raise MalformedTokenError(raw, "action data is not an object")

        unexpected = set(data) - self._ALLOWED_KEYS
        if unexpected:
            raise MalformedTokenError(raw, f"unexpected keys {sorted(unexpected)}")

        try:
            action = TicketAction(data.get("action"))
        except ValueError:
            raise MalformedTokenError(
                raw, f"unknown ticket action {data.get('action')!r}"
            ) from None

        ticket_id = data.get("id")
        if ticket_id is not None and not is_ticket_id(ticket_id):
            raise MalformedTokenError(raw, f"invalid ticket id {ticket_id!r}")

        try:
            return TicketActionToken(action=action, ticket_id=ticket_id)
        except ValueError as exc:
            raise MalformedTokenError(raw, str(exc)) from None
