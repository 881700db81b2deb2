"""
Collaborator ports (``interaction_kernel.domain.ports``).

Responsibility
--------------
Value objects describing actors, channels and inbound activations, plus
the ``Protocol`` contracts the workflows need from external collaborators:
the chat gateway, the human-input collector, the identity resolver, the
notification sink, the role source and the ticket store.

Architecture position
---------------------
**Kernel domain layer**.  Pure declarations; implementations live with the
chat client adapter (outside this repository) or, for the ticket store, in
``interaction_kernel.services.ticket_store``.

Contract for implementers
-------------------------
Every method is a coroutine.  A collaborator that fails must raise
``ExternalServiceError``; the human-input collector signals a dismissed or
timed-out dialog with ``CollectionAbortedError``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol

from interaction_kernel.domain.messages import Embed, RenderedMessage
from interaction_kernel.domain.ticket import Ticket, TicketDraft, TicketStatus


# =========================================================================
# Identities
# =========================================================================


@dataclass(frozen=True)
class Actor:
    """A chat user."""

    id: str
    tag: str
    username: str
    display_name: str | None = None
    avatar_url: str | None = None

    @property
    def name(self) -> str:
        return self.display_name or self.username


@dataclass(frozen=True)
class Member:
    """A user in the context of one guild."""

    actor: Actor
    role_ids: frozenset[str] = frozenset()


@dataclass(frozen=True)
class ExternalProfile:
    """Profile of the same person in the external game directory."""

    nick: str
    figure_string: str | None = None


@dataclass(frozen=True)
class ResolvedIdentity:
    member: Member
    profile: ExternalProfile | None = None


# =========================================================================
# Channels and messages
# =========================================================================


class ChannelKind(str, Enum):
    TEXT = "text"
    THREAD = "thread"
    CATEGORY = "category"
    VOICE = "voice"
    OTHER = "other"


TEXT_BASED_KINDS = frozenset({ChannelKind.TEXT, ChannelKind.THREAD})


@dataclass(frozen=True)
class ChannelHandle:
    id: str
    kind: ChannelKind
    guild_id: str | None = None
    name: str | None = None

    @property
    def is_text_based(self) -> bool:
        return self.kind in TEXT_BASED_KINDS


class Permission(str, Enum):
    VIEW_CHANNEL = "view_channel"
    SEND_MESSAGES = "send_messages"
    READ_MESSAGE_HISTORY = "read_message_history"


READ_PERMISSIONS = frozenset({
    Permission.VIEW_CHANNEL,
    Permission.SEND_MESSAGES,
    Permission.READ_MESSAGE_HISTORY,
})


@dataclass(frozen=True)
class PermissionOverride:
    """Per-role or per-user channel permission override."""

    target_id: str
    allow: frozenset[Permission] = frozenset()
    deny: frozenset[Permission] = frozenset()


@dataclass(frozen=True)
class PostedMessage:
    """A message as it exists on the platform."""

    id: str
    channel_ref: str
    author: Actor
    content: str = ""
    created_at: datetime | None = None
    embeds: tuple[Embed, ...] = ()


# =========================================================================
# Human input
# =========================================================================


class PromptFieldStyle(str, Enum):
    SHORT = "short"
    PARAGRAPH = "paragraph"


@dataclass(frozen=True)
class PromptField:
    custom_id: str
    label: str
    placeholder: str = ""
    style: PromptFieldStyle = PromptFieldStyle.SHORT
    required: bool = True


@dataclass(frozen=True)
class PromptSpec:
    title: str
    fields: tuple[PromptField, ...]


class Responder(Protocol):
    """Replies to the actor who triggered an interaction."""

    async def reply(self, content: str, *, ephemeral: bool = True) -> None: ...


@dataclass(frozen=True)
class CollectedInput:
    """Submitted dialog values plus the responder bound to the submission."""

    values: Mapping[str, str]
    responder: Responder


# =========================================================================
# Inbound activation
# =========================================================================


@dataclass(frozen=True)
class ActivationEvent:
    """A UI control activation (button click) delivered by the gateway.

    ``guild_id`` is None for direct-message contexts.  ``message`` is the
    message carrying the activated control.
    """

    interaction_id: str
    token: str
    actor: Actor
    responder: Responder
    guild_id: str | None = None
    channel_ref: str | None = None
    message: PostedMessage | None = field(default=None)


# =========================================================================
# Collaborator protocols
# =========================================================================


class ChannelProvider(Protocol):
    async def fetch_channel(self, channel_ref: str) -> ChannelHandle | None: ...

    async def create_channel(
        self,
        category: ChannelHandle,
        name: str,
        overrides: Sequence[PermissionOverride],
    ) -> ChannelHandle: ...

    async def send_message(
        self, channel: ChannelHandle, message: RenderedMessage
    ) -> PostedMessage: ...

    async def edit_message(
        self, channel_ref: str, message_ref: str, message: RenderedMessage
    ) -> None: ...

    async def fetch_messages_after(
        self, channel: ChannelHandle, message_ref: str
    ) -> Sequence[PostedMessage]:
        """Messages posted after ``message_ref``, oldest first."""
        ...


class HumanInputCollector(Protocol):
    async def collect(
        self, event: ActivationEvent, prompt: PromptSpec
    ) -> CollectedInput: ...


class IdentityResolver(Protocol):
    async def resolve_actor(self, raw_input: str) -> ResolvedIdentity | None: ...


class NotificationSink(Protocol):
    async def post(
        self, channel: ChannelHandle, message: RenderedMessage
    ) -> PostedMessage: ...


class RoleSource(Protocol):
    async def role_set_of(self, actor: Actor, guild_id: str) -> frozenset[str]: ...


class TicketStore(Protocol):
    async def create_ticket(self, draft: TicketDraft) -> Ticket: ...

    async def find_ticket(self, ticket_id: str) -> Ticket | None: ...

    async def update_ticket_status(
        self, ticket_id: str, status: TicketStatus
    ) -> None: ...
