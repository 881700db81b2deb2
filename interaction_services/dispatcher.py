"""
interaction_services.dispatcher -- routes control activations to workflows.

Responsibility:
    Owns the namespace -> workflow registry.  For each inbound activation:
    look up the owner by token namespace, decode, drop direct-message
    activations, authorize, hand off to the workflow, and turn typed
    failures into replies for the actor and log lines for operators.

Architecture position:
    Services layer, outermost part of the core.  The chat client adapter
    calls ``dispatch`` once per button click.

Invariants enforced:
    - A token whose namespace is not registered is ignored without any
      collaborator call: several bots and panels share one control surface.
    - Nothing runs before authorization passes.
    - One event is handled start to finish per ``dispatch`` call; nothing
      inside a single event is parallelized.
    - Unexpected (non-kernel) exceptions propagate: they are bugs.

Failure mapping:
    MalformedTokenError     -> "invalid action" reply, ERROR log
    UnauthorizedError       -> permission-denied reply
    CollectionAbortedError  -> silent
    other kernel errors     -> mapped reply, WARNING log
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any, Protocol

from interaction_kernel.domain.ports import ActivationEvent
from interaction_kernel.domain.tokens import TokenCodec, split_namespace
from interaction_kernel.exceptions import (
    ChannelKindError,
    CollectionAbortedError,
    ExternalServiceError,
    InteractionKernelError,
    InvalidNoteTransitionError,
    InvalidTicketTransitionError,
    MissingRequestEmbedError,
    TargetNotFoundError,
    TicketChannelMissingError,
    TicketNotFoundError,
    TokenError,
    UnauthorizedError,
)
from interaction_kernel.logging_config import LogContext, get_logger
from interaction_services.authorization import AuthorizationGate
from interaction_services.context import ActivationContext

logger = get_logger("services.dispatcher")


class DispatchOutcome(str, Enum):
    IGNORED = "ignored"
    OUTSIDE_GUILD = "outside_guild"
    MALFORMED = "malformed"
    DENIED = "denied"
    ABORTED = "aborted"
    FAILED = "failed"
    COMPLETED = "completed"


class WorkflowHandler(Protocol):
    workflow_name: str
    codec: TokenCodec[Any]

    async def handle(self, ctx: ActivationContext, token: Any) -> None: ...


# Most specific first; the first isinstance match wins.
USER_MESSAGES: tuple[tuple[type[InteractionKernelError], str], ...] = (
    (MissingRequestEmbedError, "Ação inválida."),
    (TokenError, "Ação inválida."),
    (UnauthorizedError, "Você não tem permissão para realizar esta ação."),
    (TargetNotFoundError, "Não foi possível encontrar o usuário informado."),
    (TicketChannelMissingError, "||TK207|| Ticket não encontrado, contate o desenvolvedor."),
    (TicketNotFoundError, "Ticket não encontrado."),
    (ChannelKindError, "||TK216|| Canal não é um canal de texto, contate o desenvolvedor."),
    (InvalidNoteTransitionError, "Esta solicitação já foi decidida."),
    (InvalidTicketTransitionError, "Este ticket já foi encerrado."),
    (ExternalServiceError, "Falha temporária ao processar a ação, tente novamente."),
)

FALLBACK_MESSAGE = "Não foi possível concluir a ação."


def user_message_for(exc: InteractionKernelError) -> str:
    for exc_type, message in USER_MESSAGES:
        if isinstance(exc, exc_type):
            return message
    return FALLBACK_MESSAGE


class WorkflowDispatcher:
    def __init__(
        self,
        gate: AuthorizationGate,
        handlers: Iterable[WorkflowHandler] = (),
    ) -> None:
        self._gate = gate
        self._handlers: dict[str, WorkflowHandler] = {}
        for handler in handlers:
            self.register(handler)

    def register(self, handler: WorkflowHandler) -> None:
        namespace = handler.codec.namespace
        if namespace in self._handlers:
            raise ValueError(f"Namespace already registered: {namespace}")
        self._handlers[namespace] = handler

    @property
    def namespaces(self) -> frozenset[str]:
        return frozenset(self._handlers)

    def handler_for(self, raw_token: str) -> WorkflowHandler | None:
        namespace = split_namespace(raw_token)
        if namespace is None:
            return None
        return self._handlers.get(namespace)

    async def dispatch(self, event: ActivationEvent) -> DispatchOutcome:
        handler = self.handler_for(event.token)
        if handler is None:
            return DispatchOutcome.IGNORED

        with LogContext.bind(
            interaction_id=event.interaction_id,
            actor_id=event.actor.id,
            guild_id=event.guild_id,
            namespace=handler.codec.namespace,
        ):
            return await self._dispatch(event, handler)

    async def _dispatch(
        self,
        event: ActivationEvent,
        handler: WorkflowHandler,
    ) -> DispatchOutcome:
        ctx = ActivationContext(event)

        try:
            token = handler.codec.decode(event.token)
        except TokenError as exc:
            logger.error("malformed_token", extra={"token": event.token}, exc_info=True)
            await self._report(ctx, exc)
            return DispatchOutcome.MALFORMED

        if event.guild_id is None:
            logger.warning(
                "activation_outside_guild",
                extra={"actor_tag": event.actor.tag, "action": token.action.value},
            )
            return DispatchOutcome.OUTSIDE_GUILD

        try:
            await self._gate.require(event, handler.workflow_name, token.action)
            await handler.handle(ctx, token)
        except CollectionAbortedError:
            logger.info("collection_aborted", extra={"action": token.action.value})
            return DispatchOutcome.ABORTED
        except UnauthorizedError as exc:
            await self._report(ctx, exc)
            return DispatchOutcome.DENIED
        except InteractionKernelError as exc:
            logger.warning(
                "workflow_failed",
                extra={"workflow": handler.workflow_name, "action": token.action.value},
                exc_info=True,
            )
            await self._report(ctx, exc)
            return DispatchOutcome.FAILED

        logger.info(
            "activation_completed",
            extra={"workflow": handler.workflow_name, "action": token.action.value},
        )
        return DispatchOutcome.COMPLETED

    async def _report(self, ctx: ActivationContext, exc: InteractionKernelError) -> None:
        try:
            await ctx.reply(user_message_for(exc))
        except ExternalServiceError:
            logger.error(
                "failure_reply_undeliverable",
                extra={"original_code": exc.code},
                exc_info=True,
            )
