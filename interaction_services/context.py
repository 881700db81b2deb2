"""
interaction_services.context -- per-activation handling context.

Responsibility:
    Carries the inbound activation and the responder currently bound to
    it.  Collecting human input (a modal dialog) produces a new
    interaction, and every reply after that point must go through the
    dialog's responder instead of the button's; ``rebind`` records that
    switch so error reporting in the dispatcher follows it too.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from interaction_kernel.domain.ports import ActivationEvent, Actor, Responder


@dataclass
class ActivationContext:
    event: ActivationEvent
    responder: Responder = field(init=False)

    def __post_init__(self) -> None:
        self.responder = self.event.responder

    @property
    def actor(self) -> Actor:
        return self.event.actor

    def rebind(self, responder: Responder) -> None:
        self.responder = responder

    async def reply(self, content: str) -> None:
        await self.responder.reply(content, ephemeral=True)
