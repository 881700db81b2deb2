"""
interaction_services.notes_workflow -- note request/approval workflow.

Responsibility:
    Drives IDLE -> REQUESTED -> APPROVED | REJECTED for note submissions
    that need leadership sign-off.

Architecture position:
    Services layer.  Registered with ``WorkflowDispatcher`` under the notes
    token namespace; authorization has already passed when ``handle`` runs.

Invariants enforced:
    - The approval message is the only state carrier.  Nothing is
      persisted; approve/reject read the request back from the message's
      embed and rewrite that message into its terminal form.
    - A failed target lookup aborts before anything is posted.
    - Approve posts to the record channel BEFORE rewriting the request, so
      a rewritten "Aprovada" message always has a record behind it.

Concurrency:
    Two leadership actors deciding on the same message race; the last
    edit wins.  No locking is applied.

Failure modes:
    - CollectionAbortedError if the dialog is dismissed (silent no-op).
    - TargetNotFoundError if the identity resolver misses.
    - MissingRequestEmbedError if a decision arrives on a message without
      the request embed.
    - ChannelKindError if a configured channel is missing or not text.
"""

from __future__ import annotations

from interaction_config.schema import WorkflowConfig
from interaction_kernel.domain.messages import (
    Button,
    ButtonStyle,
    Embed,
    RenderedMessage,
    mention_role,
)
from interaction_kernel.domain.notes import (
    NoteRequest,
    NoteState,
    check_note_transition,
    note_state_of,
    render_decided_message,
    render_record_embed,
    render_request_embed,
)
from interaction_kernel.domain.policy import NOTES_WORKFLOW
from interaction_kernel.domain.ports import (
    ChannelProvider,
    HumanInputCollector,
    IdentityResolver,
    NotificationSink,
    PostedMessage,
    PromptField,
    PromptFieldStyle,
    PromptSpec,
)
from interaction_kernel.domain.tokens import NoteAction, NoteActionToken, NoteTokenCodec
from interaction_kernel.exceptions import MissingRequestEmbedError, TargetNotFoundError
from interaction_kernel.logging_config import get_logger
from interaction_services.channels import require_text_channel
from interaction_services.context import ActivationContext

logger = get_logger("services.notes_workflow")

TARGET_INPUT = "Target"
CONTENT_INPUT = "Content"

NOTE_PROMPT = PromptSpec(
    title="Anotação",
    fields=(
        PromptField(
            custom_id=TARGET_INPUT,
            label="Anotado (Discord ou Habbo)",
            placeholder="Informe ID do Discord (@Nick) ou do Habbo (Nick).",
            style=PromptFieldStyle.SHORT,
        ),
        PromptField(
            custom_id=CONTENT_INPUT,
            label="Descrição da Anotação",
            placeholder="Ex.: Tarefa feita no dia 29/09/2022",
            style=PromptFieldStyle.PARAGRAPH,
        ),
    ),
)

REPLY_REQUESTED = "Solicitação enviada."
REPLY_REJECTED = "Rejeitada."
REPLY_APPROVED = "Operação concluída."


class NotesWorkflow:
    workflow_name = NOTES_WORKFLOW

    def __init__(
        self,
        *,
        config: WorkflowConfig,
        channels: ChannelProvider,
        collector: HumanInputCollector,
        identity: IdentityResolver,
        notifications: NotificationSink,
    ) -> None:
        self.codec = NoteTokenCodec()
        self._config = config
        self._channels = channels
        self._collector = collector
        self._identity = identity
        self._notifications = notifications

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def request_control(self) -> Button:
        """Button that starts a request; placed on a panel message."""
        return Button(
            custom_id=self.codec.encode(NoteActionToken(NoteAction.REQUEST)),
            label="Solicitar Anotação",
            style=ButtonStyle.PRIMARY,
        )

    def approval_controls(self) -> tuple[Button, ...]:
        return (
            Button(
                custom_id=self.codec.encode(NoteActionToken(NoteAction.APPROVE)),
                label="Aprovar",
                style=ButtonStyle.SUCCESS,
            ),
            Button(
                custom_id=self.codec.encode(NoteActionToken(NoteAction.REJECT)),
                label="Reprovar",
                style=ButtonStyle.DANGER,
            ),
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def handle(self, ctx: ActivationContext, token: NoteActionToken) -> None:
        if token.action is NoteAction.REQUEST:
            await self.request(ctx)
        elif token.action is NoteAction.APPROVE:
            await self.approve(ctx)
        else:
            await self.reject(ctx)

    async def request(self, ctx: ActivationContext) -> NoteRequest:
        """IDLE -> REQUESTED: collect, resolve, post for review."""
        collected = await self._collector.collect(ctx.event, NOTE_PROMPT)
        ctx.rebind(collected.responder)

        raw_target = collected.values.get(TARGET_INPUT, "").strip()
        content = collected.values.get(CONTENT_INPUT, "").strip()

        identity = await self._identity.resolve_actor(raw_target)
        if identity is None:
            raise TargetNotFoundError(raw_target)

        sector_role = self._config.highest_sector_role(identity.member.role_ids)
        request = NoteRequest(
            requester=ctx.actor,
            target=identity.member,
            content=content,
            target_profile=identity.profile,
            target_role_name=sector_role.name if sector_role else None,
        )

        review_channel = await require_text_channel(
            self._channels, self._config.channels.approval_request
        )
        figure = identity.profile.figure_string if identity.profile else None
        review_role = self._config.notes_review_role_id

        posted = await self._channels.send_message(
            review_channel,
            RenderedMessage(
                content=mention_role(review_role),
                embeds=(
                    render_request_embed(
                        request, self._config.profile_image_url(figure)
                    ),
                ),
                components=self.approval_controls(),
                mention_role_ids=(review_role,),
            ),
        )

        logger.info(
            "note_requested",
            extra={
                "state": NoteState.REQUESTED.value,
                "target_id": identity.member.actor.id,
                "review_message_id": posted.id,
            },
        )
        await ctx.reply(REPLY_REQUESTED)
        return request

    async def reject(self, ctx: ActivationContext) -> None:
        """REQUESTED -> REJECTED: rewrite the message, no record."""
        message, embed = self._pending_request(ctx, NoteState.REJECTED)

        await self._channels.edit_message(
            message.channel_ref,
            message.id,
            render_decided_message(embed, NoteState.REJECTED),
        )
        logger.info(
            "note_rejected",
            extra={"state": NoteState.REJECTED.value, "review_message_id": message.id},
        )
        await ctx.reply(REPLY_REJECTED)

    async def approve(self, ctx: ActivationContext) -> None:
        """REQUESTED -> APPROVED: post the record, then rewrite the message."""
        message, embed = self._pending_request(ctx, NoteState.APPROVED)

        record_channel = await require_text_channel(
            self._channels, self._config.channels.notes_record
        )
        record = await self._notifications.post(
            record_channel,
            RenderedMessage(embeds=(render_record_embed(embed, ctx.actor),)),
        )

        await self._channels.edit_message(
            message.channel_ref,
            message.id,
            render_decided_message(embed, NoteState.APPROVED),
        )
        logger.info(
            "note_approved",
            extra={
                "state": NoteState.APPROVED.value,
                "review_message_id": message.id,
                "record_message_id": record.id,
            },
        )
        await ctx.reply(REPLY_APPROVED)

    @staticmethod
    def _pending_request(
        ctx: ActivationContext, decision: NoteState
    ) -> tuple[PostedMessage, Embed]:
        message = ctx.event.message
        if message is None or not message.embeds:
            raise MissingRequestEmbedError(message.id if message else None)
        embed = message.embeds[0]
        check_note_transition(message.id, note_state_of(embed), decision)
        return message, embed
