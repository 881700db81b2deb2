"""
interaction_services.bootstrap -- startup wiring.

Responsibility:
    Resolve everything the workflows need exactly once, at startup:
    logging, database engine and listeners, the authorization policy built
    from configuration, and the tickets category channel.  The result is an
    immutable ``WorkflowRuntime`` whose dispatcher the chat client adapter
    calls for every activation.

Failure modes:
    - ChannelKindError if the configured tickets category does not exist
      or is not a category channel.
"""

from __future__ import annotations

from dataclasses import dataclass

from interaction_config.schema import WorkflowConfig
from interaction_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from interaction_kernel.db.immutability import register_immutability_listeners
from interaction_kernel.domain.clock import Clock, SystemClock
from interaction_kernel.domain.policy import AuthorizationPolicy
from interaction_kernel.domain.ports import (
    ChannelHandle,
    ChannelKind,
    ChannelProvider,
    HumanInputCollector,
    IdentityResolver,
    NotificationSink,
    RoleSource,
    TicketStore,
)
from interaction_kernel.exceptions import ChannelKindError
from interaction_kernel.logging_config import configure_logging, get_logger
from interaction_kernel.services.ticket_store import SqlTicketStore
from interaction_services.authorization import AuthorizationGate
from interaction_services.dispatcher import WorkflowDispatcher
from interaction_services.notes_workflow import NotesWorkflow
from interaction_services.ticket_workflow import TicketWorkflow

logger = get_logger("services.bootstrap")


@dataclass(frozen=True)
class WorkflowRuntime:
    config: WorkflowConfig
    policy: AuthorizationPolicy
    tickets_category: ChannelHandle
    notes: NotesWorkflow
    tickets: TicketWorkflow
    dispatcher: WorkflowDispatcher


async def resolve_tickets_category(
    channels: ChannelProvider,
    config: WorkflowConfig,
) -> ChannelHandle:
    channel_ref = config.channels.tickets_category
    category = await channels.fetch_channel(channel_ref)
    if category is None:
        raise ChannelKindError(channel_ref, ChannelKind.CATEGORY.value, "missing")
    if category.kind is not ChannelKind.CATEGORY:
        raise ChannelKindError(channel_ref, ChannelKind.CATEGORY.value, category.kind.value)
    return category


def init_ticket_store(config: WorkflowConfig, clock: Clock | None = None) -> SqlTicketStore:
    """Initialize the engine from config and return the SQL-backed store."""
    init_engine_from_url(config.database_url)
    create_tables()
    register_immutability_listeners()
    return SqlTicketStore(get_session_factory(), clock or SystemClock())


async def build_runtime(
    config: WorkflowConfig,
    *,
    channels: ChannelProvider,
    collector: HumanInputCollector,
    identity: IdentityResolver,
    notifications: NotificationSink,
    role_source: RoleSource,
    store: TicketStore | None = None,
    clock: Clock | None = None,
) -> WorkflowRuntime:
    configure_logging(level=config.log_level)

    policy = AuthorizationPolicy(category_roles=config.category_roles())
    tickets_category = await resolve_tickets_category(channels, config)
    ticket_store = store if store is not None else init_ticket_store(config, clock)

    notes = NotesWorkflow(
        config=config,
        channels=channels,
        collector=collector,
        identity=identity,
        notifications=notifications,
    )
    tickets = TicketWorkflow(
        config=config,
        tickets_category=tickets_category,
        store=ticket_store,
        channels=channels,
        notifications=notifications,
    )
    dispatcher = WorkflowDispatcher(
        AuthorizationGate(policy, role_source),
        handlers=(notes, tickets),
    )

    logger.info(
        "runtime_ready",
        extra={
            "config_id": config.config_id,
            "namespaces": dispatcher.namespaces,
            "tickets_category": tickets_category.id,
        },
    )
    return WorkflowRuntime(
        config=config,
        policy=policy,
        tickets_category=tickets_category,
        notes=notes,
        tickets=tickets,
        dispatcher=dispatcher,
    )
