"""
interaction_services.ticket_workflow -- ticket lifecycle.

Responsibility:
    Opens tickets (private channel + persisted record + anchor message with
    a close control) and closes them (status update + transcript export to
    the archive channel).

Architecture position:
    Services layer.  Registered with ``WorkflowDispatcher`` under the
    tickets token namespace; authorization has already passed when
    ``handle`` runs.

Invariants enforced:
    - The tickets category is resolved once at startup and injected; the
      workflow never looks it up lazily.
    - Closing commits the CLOSED status before anything else.  Failures
      fetching the channel or posting the archive are reported to the actor
      and never reopen the ticket.
    - Re-closing a closed ticket is harmless: the status write is a no-op,
      a second archive post is allowed.

Known limitation:
    Two near-simultaneous open activations create two channels and two
    records.  No deduplication is attempted.

Failure modes:
    - TicketNotFoundError on an unknown id.
    - TicketChannelMissingError (TK207) if the ticket channel is gone.
    - ChannelKindError (TK216) if a channel is not text-based.
"""

from __future__ import annotations

import random
import string
from collections.abc import Sequence

from interaction_config.schema import WorkflowConfig
from interaction_kernel.domain.messages import (
    Button,
    ButtonStyle,
    Embed,
    EmbedAuthor,
    EmbedColor,
    EmbedField,
    RenderedMessage,
    mention_channel,
    mention_role,
    mention_user,
    timestamp_markup,
)
from interaction_kernel.domain.policy import TICKETS_WORKFLOW
from interaction_kernel.domain.ports import (
    READ_PERMISSIONS,
    Actor,
    ChannelHandle,
    ChannelProvider,
    NotificationSink,
    PermissionOverride,
    PostedMessage,
    TicketStore,
)
from interaction_kernel.domain.ticket import (
    REASON_BY_OPEN_ACTION,
    Ticket,
    TicketDraft,
    TicketReason,
    TicketStatus,
)
from interaction_kernel.domain.tokens import (
    TicketAction,
    TicketActionToken,
    TicketTokenCodec,
)
from interaction_kernel.domain.transcript import participants, transcript_attachment
from interaction_kernel.exceptions import (
    ChannelKindError,
    TicketChannelMissingError,
    TicketNotFoundError,
)
from interaction_kernel.logging_config import LogContext, get_logger
from interaction_services.channels import require_text_channel
from interaction_services.context import ActivationContext

logger = get_logger("services.ticket_workflow")

ANCHOR_PLACEHOLDER = "\u200b"
CHANNEL_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase
CHANNEL_SUFFIX_LENGTH = 4

TICKET_TITLES: dict[TicketReason, str] = {
    TicketReason.AUTO: "Ouvidoria",
    TicketReason.PRAISE: "Elogio",
}

REPLY_CLOSED = "Ticket encerrado."


class TicketWorkflow:
    workflow_name = TICKETS_WORKFLOW

    def __init__(
        self,
        *,
        config: WorkflowConfig,
        tickets_category: ChannelHandle,
        store: TicketStore,
        channels: ChannelProvider,
        notifications: NotificationSink,
        rng: random.Random | None = None,
    ) -> None:
        self.codec = TicketTokenCodec()
        self._config = config
        self._category = tickets_category
        self._store = store
        self._channels = channels
        self._notifications = notifications
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def open_controls(self) -> tuple[Button, ...]:
        """Buttons for the public ticket panel."""
        return (
            Button(
                custom_id=self.codec.encode(TicketActionToken(TicketAction.OPEN_DEFAULT)),
                label="Abrir Ticket",
                style=ButtonStyle.PRIMARY,
            ),
            Button(
                custom_id=self.codec.encode(TicketActionToken(TicketAction.OPEN_PRAISE)),
                label="Enviar Elogio",
                style=ButtonStyle.SUCCESS,
            ),
        )

    def close_control(self, ticket_id: str) -> Button:
        return Button(
            custom_id=self.codec.encode(TicketActionToken(TicketAction.END, ticket_id)),
            label="Encerrar",
            style=ButtonStyle.DANGER,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def handle(self, ctx: ActivationContext, token: TicketActionToken) -> None:
        if token.action.is_open:
            await self.open(ctx, token.action)
        else:
            await self.end(ctx, token.ticket_id)

    async def open(self, ctx: ActivationContext, action: TicketAction) -> Ticket:
        """(none) -> OPEN."""
        actor = ctx.actor
        reason = REASON_BY_OPEN_ACTION[action]
        staff_role = self._config.tickets_staff_role_id

        channel = await self._channels.create_channel(
            self._category,
            self._channel_name(actor),
            self._channel_overrides(actor),
        )
        anchor = await self._channels.send_message(
            channel, RenderedMessage(content=ANCHOR_PLACEHOLDER)
        )

        ticket = await self._store.create_ticket(
            TicketDraft(
                reason=reason,
                owner_actor_id=actor.id,
                channel_ref=channel.id,
                anchor_message_ref=anchor.id,
            )
        )

        await self._channels.edit_message(
            channel.id,
            anchor.id,
            RenderedMessage(
                content=f"{mention_role(staff_role)} {mention_user(actor.id)}",
                embeds=(
                    Embed(
                        title=TICKET_TITLES[reason],
                        color=EmbedColor.DEFAULT,
                        author=EmbedAuthor(name=actor.tag, icon_url=actor.avatar_url),
                        footer=ticket.id,
                    ),
                ),
                components=(self.close_control(ticket.id),),
                mention_role_ids=(staff_role,),
                mention_user_ids=(actor.id,),
            ),
        )

        with LogContext.bind(ticket_id=ticket.id):
            logger.info(
                "ticket_opened",
                extra={
                    "reason": reason.value,
                    "channel_ref": channel.id,
                    "anchor_message_ref": anchor.id,
                },
            )

        await ctx.reply(
            f"Seu ticket foi criado com sucesso! Clique aqui: {mention_channel(channel.id)}"
        )
        return ticket

    async def end(self, ctx: ActivationContext, ticket_id: str) -> Ticket:
        """OPEN -> CLOSED, then export the transcript."""
        with LogContext.bind(ticket_id=ticket_id):
            ticket = await self._store.find_ticket(ticket_id)
            if ticket is None:
                raise TicketNotFoundError(ticket_id)

            await self._store.update_ticket_status(ticket.id, TicketStatus.CLOSED)
            logger.info(
                "ticket_closed",
                extra={"already_closed": ticket.is_closed, "closed_by": ctx.actor.id},
            )

            channel = await self._channels.fetch_channel(ticket.channel_ref)
            if channel is None:
                raise TicketChannelMissingError(ticket.id, ticket.channel_ref)
            if not channel.is_text_based:
                raise ChannelKindError(ticket.channel_ref, "text", channel.kind.value)

            messages = await self._channels.fetch_messages_after(
                channel, ticket.anchor_message_ref
            )

            archive = await require_text_channel(
                self._channels, self._config.channels.tickets_archive
            )
            await self._notifications.post(
                archive,
                RenderedMessage(
                    embeds=(self._archive_embed(ticket, ctx.actor, messages),),
                    attachments=(transcript_attachment(messages),),
                ),
            )
            logger.info(
                "ticket_archived",
                extra={"message_count": len(messages), "archive_channel": archive.id},
            )

        await ctx.reply(REPLY_CLOSED)
        return ticket

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _channel_name(self, actor: Actor) -> str:
        suffix = "".join(
            self._rng.choice(CHANNEL_SUFFIX_ALPHABET)
            for _ in range(CHANNEL_SUFFIX_LENGTH)
        )
        return f"{actor.username}-{suffix}"

    def _channel_overrides(self, actor: Actor) -> tuple[PermissionOverride, ...]:
        # The guild's default role id equals the guild id.
        everyone = self._category.guild_id or self._config.guild_id
        return (
            PermissionOverride(actor.id, allow=READ_PERMISSIONS),
            PermissionOverride(everyone, deny=READ_PERMISSIONS),
            PermissionOverride(self._config.tickets_staff_role_id, allow=READ_PERMISSIONS),
        )

    @staticmethod
    def _archive_embed(
        ticket: Ticket,
        closer: Actor,
        messages: Sequence[PostedMessage],
    ) -> Embed:
        authors = participants(messages)
        return Embed(
            title="Ticket encerrado",
            color=EmbedColor.DEFAULT,
            description=(
                f"Ticket encerrado por {mention_user(closer.id)}, "
                "os registros das mensagens estão anexadas abaixo."
            ),
            fields=(
                EmbedField(
                    "Participantes",
                    "\n".join(mention_user(a.id) for a in authors) or "Nenhum",
                ),
                EmbedField("Criado Em", timestamp_markup(ticket.created_at, "F")),
            ),
            footer=ticket.id,
        )
