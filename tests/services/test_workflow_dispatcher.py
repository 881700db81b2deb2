"""
WorkflowDispatcher: namespace routing, decoding, guild gating, and the
mapping from kernel errors to actor replies.
"""

import pytest

from interaction_kernel.domain.policy import AuthorizationPolicy, RoleCategory
from interaction_kernel.domain.tokens import (
    NOTES_NAMESPACE,
    TICKETS_NAMESPACE,
    NoteAction,
    NoteActionToken,
    NoteTokenCodec,
)
from interaction_kernel.exceptions import (
    ChannelKindError,
    ExternalServiceError,
    ImmutabilityViolationError,
    TicketChannelMissingError,
    TicketNotFoundError,
)
from interaction_kernel.logging_config import LogContext
from interaction_services.authorization import AuthorizationGate
from interaction_services.dispatcher import (
    FALLBACK_MESSAGE,
    DispatchOutcome,
    WorkflowDispatcher,
    user_message_for,
)
from tests.conftest import ROLE_INICIAL, FakeResponder

REQUEST = NoteTokenCodec().encode(NoteActionToken(NoteAction.REQUEST))


class ScriptedNotesHandler:
    """Notes-namespace handler that raises whatever it is told to."""

    workflow_name = "notes"

    def __init__(self, error: Exception | None = None):
        self.codec = NoteTokenCodec()
        self.error = error
        self.handled = []

    async def handle(self, ctx, token):
        self.handled.append(token)
        if self.error is not None:
            raise self.error


@pytest.fixture
def gate(fakes):
    policy = AuthorizationPolicy(
        category_roles={
            RoleCategory.INITIATE: frozenset({ROLE_INICIAL}),
            RoleCategory.LEADERSHIP: frozenset(),
        }
    )
    return AuthorizationGate(policy, fakes.role_source)


class TestRouting:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "token",
        [
            "OtherBot::PollHandler/Vote",
            "LCST::SomethingElse/Request",
            "plain-custom-id",
            "",
        ],
    )
    async def test_foreign_tokens_ignored_without_calls(
        self, runtime, fakes, make_event, requester, token
    ):
        event = make_event(token, requester)

        outcome = await runtime.dispatcher.dispatch(event)

        assert outcome is DispatchOutcome.IGNORED
        assert fakes.role_source.lookups == []
        assert fakes.channels.calls == []
        assert fakes.collector.prompts == []
        assert event.responder.replies == []

    def test_registered_namespaces(self, runtime):
        assert runtime.dispatcher.namespaces == {NOTES_NAMESPACE, TICKETS_NAMESPACE}

    def test_duplicate_namespace_rejected(self, gate):
        dispatcher = WorkflowDispatcher(gate, [ScriptedNotesHandler()])
        with pytest.raises(ValueError):
            dispatcher.register(ScriptedNotesHandler())

    def test_handler_for(self, gate):
        handler = ScriptedNotesHandler()
        dispatcher = WorkflowDispatcher(gate, [handler])
        assert dispatcher.handler_for(REQUEST) is handler
        assert dispatcher.handler_for(f"{TICKETS_NAMESPACE}/{{}}") is None


class TestDecodeAndGuild:
    @pytest.mark.asyncio
    async def test_malformed_token(self, runtime, fakes, make_event, requester, captured_logs):
        event = make_event(f"{NOTES_NAMESPACE}/Escalate", requester)

        outcome = await runtime.dispatcher.dispatch(event)

        assert outcome is DispatchOutcome.MALFORMED
        assert event.responder.contents == ["Ação inválida."]
        assert fakes.role_source.lookups == []
        (record,) = [r for r in captured_logs() if r["message"] == "malformed_token"]
        assert record["level"] == "ERROR"
        assert record["exc_code"] == "MALFORMED_TOKEN"

    @pytest.mark.asyncio
    async def test_malformed_ticket_payload(self, runtime, fakes, make_event, requester):
        event = make_event(f'{TICKETS_NAMESPACE}/{{"action":"End","id":"xyz"}}', requester)

        assert await runtime.dispatcher.dispatch(event) is DispatchOutcome.MALFORMED
        assert fakes.channels.calls == []

    @pytest.mark.asyncio
    async def test_direct_message_dropped(self, runtime, fakes, make_event, requester, captured_logs):
        event = make_event(REQUEST, requester, guild_id=None)

        outcome = await runtime.dispatcher.dispatch(event)

        assert outcome is DispatchOutcome.OUTSIDE_GUILD
        assert fakes.role_source.lookups == []
        assert fakes.collector.prompts == []
        assert event.responder.replies == []
        (record,) = [r for r in captured_logs() if r["message"] == "activation_outside_guild"]
        assert record["level"] == "WARNING"
        assert record["action"] == "Request"


class TestAuthorizationGate:
    @pytest.mark.asyncio
    async def test_roles_looked_up_in_event_guild(self, gate, fakes, make_event, requester):
        handler = ScriptedNotesHandler()
        dispatcher = WorkflowDispatcher(gate, [handler])

        outcome = await dispatcher.dispatch(make_event(REQUEST, requester))

        assert outcome is DispatchOutcome.COMPLETED
        assert fakes.role_source.lookups == [(requester.id, "1000000000000000000")]
        assert handler.handled == [NoteActionToken(NoteAction.REQUEST)]

    @pytest.mark.asyncio
    async def test_denied_never_reaches_handler(self, gate, make_event, outsider, captured_logs):
        handler = ScriptedNotesHandler()
        dispatcher = WorkflowDispatcher(gate, [handler])

        outcome = await dispatcher.dispatch(make_event(REQUEST, outsider))

        assert outcome is DispatchOutcome.DENIED
        assert handler.handled == []
        assert any(r["message"] == "authorization_denied" for r in captured_logs())


class TestFailureMapping:
    @pytest.mark.parametrize(
        "error,message",
        [
            (TicketNotFoundError("0" * 24), "Ticket não encontrado."),
            (
                TicketChannelMissingError("0" * 24, "1"),
                "||TK207|| Ticket não encontrado, contate o desenvolvedor.",
            ),
            (
                ChannelKindError("1", "text", "voice"),
                "||TK216|| Canal não é um canal de texto, contate o desenvolvedor.",
            ),
            (ImmutabilityViolationError("Ticket", "x", "nope"), FALLBACK_MESSAGE),
        ],
    )
    def test_user_messages(self, error, message):
        assert user_message_for(error) == message

    @pytest.mark.asyncio
    async def test_kernel_error_reported(self, gate, make_event, requester, captured_logs):
        handler = ScriptedNotesHandler(ExternalServiceError("gateway", "send_message", "503"))
        dispatcher = WorkflowDispatcher(gate, [handler])
        event = make_event(REQUEST, requester)

        outcome = await dispatcher.dispatch(event)

        assert outcome is DispatchOutcome.FAILED
        assert event.responder.contents == [
            "Falha temporária ao processar a ação, tente novamente."
        ]
        (record,) = [r for r in captured_logs() if r["message"] == "workflow_failed"]
        assert record["level"] == "WARNING"
        assert record["exc_code"] == "EXTERNAL_SERVICE_ERROR"
        assert record["interaction_id"] == event.interaction_id

    @pytest.mark.asyncio
    async def test_undeliverable_reply_logged(self, gate, make_event, requester, captured_logs):
        handler = ScriptedNotesHandler(TicketNotFoundError("0" * 24))
        dispatcher = WorkflowDispatcher(gate, [handler])
        event = make_event(REQUEST, requester, responder=FakeResponder(fail=True))

        outcome = await dispatcher.dispatch(event)

        assert outcome is DispatchOutcome.FAILED
        (record,) = [r for r in captured_logs() if r["message"] == "failure_reply_undeliverable"]
        assert record["original_code"] == "TICKET_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self, gate, make_event, requester):
        handler = ScriptedNotesHandler(RuntimeError("bug"))
        dispatcher = WorkflowDispatcher(gate, [handler])

        with pytest.raises(RuntimeError):
            await dispatcher.dispatch(make_event(REQUEST, requester))

    @pytest.mark.asyncio
    async def test_context_cleared_after_dispatch(self, gate, make_event, requester):
        dispatcher = WorkflowDispatcher(gate, [ScriptedNotesHandler()])
        await dispatcher.dispatch(make_event(REQUEST, requester))

        assert LogContext.get_all() == {}
