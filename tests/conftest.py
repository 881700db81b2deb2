"""
Pytest fixtures for the interaction workflow test suite.

Provides:
- Structured logging configured once per suite, plus log capture
- SQLite in-memory ticket store with immutability listeners registered
- In-memory fakes for every chat collaborator port
- The bundled default configuration and actors holding its roles

Environment Variables:
- None.  Tests never touch the network or a real database server.
"""

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from io import StringIO
from pathlib import Path

import pytest
import pytest_asyncio

import interaction_config
from interaction_config.loader import load_config_file
from interaction_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from interaction_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from interaction_kernel.domain.clock import DeterministicClock
from interaction_kernel.domain.messages import RenderedMessage
from interaction_kernel.domain.ports import (
    ActivationEvent,
    Actor,
    ChannelHandle,
    ChannelKind,
    CollectedInput,
    Member,
    PermissionOverride,
    PostedMessage,
    PromptSpec,
    ResolvedIdentity,
)
from interaction_kernel.exceptions import CollectionAbortedError, ExternalServiceError
from interaction_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from interaction_kernel.services.ticket_store import SqlTicketStore
from interaction_services.bootstrap import build_runtime

DEFAULT_CONFIG_PATH = Path(interaction_config.__file__).parent / "sets" / "default.yaml"

GUILD_ID = "1000000000000000000"

# Role ids from sets/default.yaml
ROLE_INICIAL = "1000000000000000201"
ROLE_MEDIO = "1000000000000000203"
ROLE_DIRETORIA = "1000000000000000205"
ROLE_PRESIDENCIA = "1000000000000000206"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture interaction_kernel logs as parsed JSON dicts.

    Usage::

        async def test_something(captured_logs, dispatcher):
            await dispatcher.dispatch(event)
            logs = captured_logs()
            assert any(r["message"] == "ticket_opened" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("interaction_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def config():
    return load_config_file(DEFAULT_CONFIG_PATH)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database per test."""
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    register_immutability_listeners()
    yield get_session_factory()
    unregister_immutability_listeners()
    drop_tables()
    reset_engine()


@pytest.fixture
def ticket_store(session_factory, deterministic_clock):
    return SqlTicketStore(session_factory, deterministic_clock)


# =============================================================================
# Actors
# =============================================================================


def make_actor(actor_id: str, username: str) -> Actor:
    return Actor(
        id=actor_id,
        tag=f"{username}#0001",
        username=username,
        avatar_url=f"https://cdn.example/avatars/{actor_id}.png",
    )


@pytest.fixture
def requester():
    return make_actor("3000000000000000001", "recruta")


@pytest.fixture
def leader():
    return make_actor("3000000000000000002", "diretor")


@pytest.fixture
def outsider():
    return make_actor("3000000000000000003", "visitante")


@pytest.fixture
def target_member():
    return Member(
        actor=make_actor("3000000000000000004", "anotado"),
        role_ids=frozenset({ROLE_INICIAL, ROLE_MEDIO}),
    )


# =============================================================================
# Collaborator fakes
# =============================================================================


class FakeResponder:
    def __init__(self, fail: bool = False):
        self.replies: list[tuple[str, bool]] = []
        self._fail = fail

    async def reply(self, content: str, *, ephemeral: bool = True) -> None:
        if self._fail:
            raise ExternalServiceError("gateway", "reply", "interaction expired")
        self.replies.append((content, ephemeral))

    @property
    def contents(self) -> list[str]:
        return [content for content, _ in self.replies]


class FakeChannelProvider:
    """Channels, messages and per-channel history kept in dicts."""

    def __init__(self, bot: Actor):
        self.bot = bot
        self.channels: dict[str, ChannelHandle] = {}
        self.history: dict[str, list[PostedMessage]] = {}
        self.created: list[tuple[ChannelHandle, str, tuple[PermissionOverride, ...]]] = []
        self.sent: list[tuple[ChannelHandle, RenderedMessage, PostedMessage]] = []
        self.edits: list[tuple[str, str, RenderedMessage]] = []
        self.calls: list[str] = []
        self._next_id = 9000000000000000000

    def next_id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    def add_channel(self, channel_id: str, kind: ChannelKind, name: str | None = None):
        self.channels[channel_id] = ChannelHandle(channel_id, kind, GUILD_ID, name)
        self.history.setdefault(channel_id, [])
        return self.channels[channel_id]

    def post_as(self, channel_id: str, author: Actor, content: str) -> PostedMessage:
        message = PostedMessage(id=self.next_id(), channel_ref=channel_id, author=author, content=content)
        self.history[channel_id].append(message)
        return message

    async def fetch_channel(self, channel_ref: str) -> ChannelHandle | None:
        self.calls.append("fetch_channel")
        return self.channels.get(channel_ref)

    async def create_channel(
        self,
        category: ChannelHandle,
        name: str,
        overrides: Sequence[PermissionOverride],
    ) -> ChannelHandle:
        self.calls.append("create_channel")
        self.created.append((category, name, tuple(overrides)))
        return self.add_channel(self.next_id(), ChannelKind.TEXT, name)

    async def send_message(self, channel: ChannelHandle, message: RenderedMessage) -> PostedMessage:
        self.calls.append("send_message")
        posted = PostedMessage(
            id=self.next_id(),
            channel_ref=channel.id,
            author=self.bot,
            content=message.content or "",
            embeds=message.embeds,
        )
        self.history.setdefault(channel.id, []).append(posted)
        self.sent.append((channel, message, posted))
        return posted

    async def edit_message(self, channel_ref: str, message_ref: str, message: RenderedMessage) -> None:
        self.calls.append("edit_message")
        self.edits.append((channel_ref, message_ref, message))

    async def fetch_messages_after(
        self, channel: ChannelHandle, message_ref: str
    ) -> Sequence[PostedMessage]:
        self.calls.append("fetch_messages_after")
        messages = self.history.get(channel.id, [])
        ids = [m.id for m in messages]
        start = ids.index(message_ref) + 1 if message_ref in ids else 0
        return list(messages[start:])


class FakeNotificationSink:
    """Pass the channel fake's ``calls`` to get one ordered log of writes."""

    def __init__(self, bot: Actor, calls: list[str] | None = None):
        self.bot = bot
        self.posts: list[tuple[ChannelHandle, RenderedMessage]] = []
        self.calls = calls if calls is not None else []
        self._next_id = 8000000000000000000

    async def post(self, channel: ChannelHandle, message: RenderedMessage) -> PostedMessage:
        self.calls.append("notify_post")
        self.posts.append((channel, message))
        self._next_id += 1
        return PostedMessage(
            id=str(self._next_id),
            channel_ref=channel.id,
            author=self.bot,
            embeds=message.embeds,
        )


class FakeCollector:
    """Returns preset dialog values through a dedicated dialog responder."""

    def __init__(self):
        self.values: Mapping[str, str] = {}
        self.abort = False
        self.responder = FakeResponder()
        self.prompts: list[PromptSpec] = []

    async def collect(self, event: ActivationEvent, prompt: PromptSpec) -> CollectedInput:
        self.prompts.append(prompt)
        if self.abort:
            raise CollectionAbortedError(prompt.title, "timeout")
        return CollectedInput(values=dict(self.values), responder=self.responder)


class FakeIdentityResolver:
    def __init__(self):
        self.identities: dict[str, ResolvedIdentity] = {}
        self.lookups: list[str] = []

    async def resolve_actor(self, raw_input: str) -> ResolvedIdentity | None:
        self.lookups.append(raw_input)
        return self.identities.get(raw_input)


class FakeRoleSource:
    def __init__(self):
        self.roles: dict[str, frozenset[str]] = {}
        self.lookups: list[tuple[str, str]] = []

    async def role_set_of(self, actor: Actor, guild_id: str) -> frozenset[str]:
        self.lookups.append((actor.id, guild_id))
        return self.roles.get(actor.id, frozenset())


@dataclass
class Collaborators:
    channels: FakeChannelProvider
    notifications: FakeNotificationSink
    collector: FakeCollector
    identity: FakeIdentityResolver
    role_source: FakeRoleSource
    responders: list[FakeResponder] = field(default_factory=list)


@pytest.fixture
def bot():
    return make_actor("2000000000000000001", "lcst-bot")


@pytest.fixture
def fakes(config, bot, requester, leader):
    """Collaborator fakes wired to the default configuration's channels."""
    channels = FakeChannelProvider(bot)
    channels.add_channel(config.channels.approval_request, ChannelKind.TEXT, "aprovacoes")
    channels.add_channel(config.channels.notes_record, ChannelKind.TEXT, "anotacoes")
    channels.add_channel(config.channels.tickets_archive, ChannelKind.TEXT, "ouvidoria-logs")
    channels.add_channel(config.channels.tickets_category, ChannelKind.CATEGORY, "Ouvidoria")

    role_source = FakeRoleSource()
    role_source.roles[requester.id] = frozenset({ROLE_INICIAL})
    role_source.roles[leader.id] = frozenset({ROLE_INICIAL, ROLE_DIRETORIA})

    return Collaborators(
        channels=channels,
        notifications=FakeNotificationSink(bot, calls=channels.calls),
        collector=FakeCollector(),
        identity=FakeIdentityResolver(),
        role_source=role_source,
    )


@pytest.fixture
def make_event(fakes):
    """
    Build an ActivationEvent with a fresh responder.

    Usage::

        event = make_event(token, actor)
        event = make_event(token, actor, guild_id=None)  # direct message
    """
    counter = iter(range(1, 10_000))

    def _make(
        token: str,
        actor: Actor,
        *,
        guild_id: str | None = GUILD_ID,
        message: PostedMessage | None = None,
        responder: FakeResponder | None = None,
    ) -> ActivationEvent:
        responder = responder or FakeResponder()
        fakes.responders.append(responder)
        return ActivationEvent(
            interaction_id=f"interaction-{next(counter)}",
            token=token,
            actor=actor,
            responder=responder,
            guild_id=guild_id,
            channel_ref=message.channel_ref if message else None,
            message=message,
        )

    return _make


@pytest_asyncio.fixture
async def runtime(config, fakes, ticket_store):
    built = await build_runtime(
        config,
        channels=fakes.channels,
        collector=fakes.collector,
        identity=fakes.identity,
        notifications=fakes.notifications,
        role_source=fakes.role_source,
        store=ticket_store,
    )
    fakes.channels.calls.clear()
    return built
