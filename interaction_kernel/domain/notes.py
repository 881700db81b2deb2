"""
Note request domain types (``interaction_kernel.domain.notes``).

Responsibility
--------------
State machine and value objects for the note-approval workflow, plus the
pure functions that render a request into its approval message and rewrite
that message into its terminal forms.

Architecture position
---------------------
**Kernel domain layer** -- pure.  ZERO I/O.

Invariants enforced
-------------------
* A note request has NO durable backing store.  The rendered approval
  message (embed + Approve/Reject controls) is the authoritative state
  carrier; deciding rewrites that message and strips its controls.
* ``NOTE_TRANSITIONS`` allows IDLE -> REQUESTED -> APPROVED | REJECTED.
  APPROVED and REJECTED are terminal.  The current state is read back from
  the message title, so a decision on an already rewritten message is
  rejected rather than applied twice.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from interaction_kernel.domain.messages import (
    Embed,
    EmbedAuthor,
    EmbedColor,
    EmbedField,
    RenderedMessage,
)
from interaction_kernel.domain.ports import Actor, ExternalProfile, Member
from interaction_kernel.exceptions import InvalidNoteTransitionError


class NoteState(str, Enum):
    IDLE = "idle"
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"


NOTE_TRANSITIONS: dict[NoteState, frozenset[NoteState]] = {
    NoteState.IDLE: frozenset({NoteState.REQUESTED}),
    NoteState.REQUESTED: frozenset({NoteState.APPROVED, NoteState.REJECTED}),
    NoteState.APPROVED: frozenset(),
    NoteState.REJECTED: frozenset(),
}

TERMINAL_NOTE_STATES = frozenset({NoteState.APPROVED, NoteState.REJECTED})

# Embed field names shown to reviewers
FIELD_TARGET_NAME = "Nome do Colaborador"
FIELD_TARGET_ROLE = "Cargo do Colaborador"
FIELD_CONTENT = "Anotação"
FIELD_AUTHORIZED_BY = "Autorizado Por"

TITLE_APPROVED = "Solicitação Aprovada"
TITLE_REJECTED = "Solicitação Rejeitada"

NO_ROLE = "N/A"

_DECIDED_LOOK: dict[NoteState, tuple[str, EmbedColor]] = {
    NoteState.APPROVED: (TITLE_APPROVED, EmbedColor.SUCCESS),
    NoteState.REJECTED: (TITLE_REJECTED, EmbedColor.ERROR),
}

_STATE_BY_TITLE = {title: state for state, (title, _) in _DECIDED_LOOK.items()}


@dataclass(frozen=True)
class NoteRequest:
    """One request -> decision round trip.  Never persisted."""

    requester: Actor
    target: Member
    content: str
    target_profile: ExternalProfile | None = None
    target_role_name: str | None = None


def render_request_embed(
    request: NoteRequest,
    thumbnail_url: str | None = None,
) -> Embed:
    """Approval-request embed shown in the review channel."""
    target = request.target.actor
    return Embed(
        title=f"Solicitação de Anotação para @{target.tag}",
        color=EmbedColor.DEFAULT,
        author=EmbedAuthor(
            name=request.requester.tag,
            icon_url=request.requester.avatar_url,
        ),
        fields=(
            EmbedField(FIELD_TARGET_NAME, target.name),
            EmbedField(FIELD_TARGET_ROLE, request.target_role_name or NO_ROLE),
            EmbedField(FIELD_CONTENT, request.content),
        ),
        thumbnail_url=thumbnail_url,
    )


def render_record_embed(request_embed: Embed, approver: Actor) -> Embed:
    """Permanent note posted to the record channel after approval."""
    return (
        request_embed.with_title(f"Anotação de {approver.tag}")
        .with_fields(EmbedField(FIELD_AUTHORIZED_BY, approver.tag))
        .with_color(EmbedColor.DEFAULT)
    )


def note_state_of(request_embed: Embed) -> NoteState:
    """Read the request's state back from its approval message."""
    return _STATE_BY_TITLE.get(request_embed.title, NoteState.REQUESTED)


def check_note_transition(message_ref: str, current: NoteState, target: NoteState) -> None:
    if target not in NOTE_TRANSITIONS[current]:
        raise InvalidNoteTransitionError(message_ref, current.value, target.value)


def render_decided_message(request_embed: Embed, state: NoteState) -> RenderedMessage:
    """Terminal rewrite of the approval message: new title, no controls."""
    if state not in TERMINAL_NOTE_STATES:
        raise ValueError(f"{state.value} is not a terminal note state")
    title, color = _DECIDED_LOOK[state]
    embed = request_embed.with_title(title).with_color(color)
    return RenderedMessage(embeds=(embed,), components=())
