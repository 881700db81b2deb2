"""
Ticket transcript export (``interaction_kernel.domain.transcript``).

Pure formatting of the messages posted in a ticket channel after its
anchor message: one ``[authorId/@authorTag]: content`` line per message,
in chronological order, plus the participant list for the archive summary.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from interaction_kernel.domain.messages import Attachment
from interaction_kernel.domain.ports import Actor, PostedMessage

TRANSCRIPT_FILENAME = "history.txt"


def format_transcript_line(message: PostedMessage) -> str:
    return f"[{message.author.id}/@{message.author.tag}]: {message.content}"


def format_transcript(messages: Iterable[PostedMessage]) -> str:
    return "\n".join(format_transcript_line(m) for m in messages)


def participants(messages: Iterable[PostedMessage]) -> tuple[Actor, ...]:
    """Distinct authors, in order of first appearance."""
    seen: dict[str, Actor] = {}
    for message in messages:
        seen.setdefault(message.author.id, message.author)
    return tuple(seen.values())


def transcript_attachment(messages: Sequence[PostedMessage]) -> Attachment:
    return Attachment(
        filename=TRANSCRIPT_FILENAME,
        data=format_transcript(messages).encode("utf-8"),
    )
