"""
Rendered message value objects (``interaction_kernel.domain.messages``).

Responsibility
--------------
Platform-neutral description of what a workflow wants to show: embeds,
buttons, attachments and mentions.  Gateway adapters translate these into
the chat client's own builders.

Architecture position
---------------------
**Kernel domain layer** -- frozen value objects.  ZERO I/O.

Invariants enforced
-------------------
* Every object is immutable; "editing" an embed returns a new embed
  (``with_title``, ``with_color``, ``with_fields``), which is how a note
  request message is rewritten into its terminal form.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class EmbedColor(int, Enum):
    DEFAULT = 0x2B2D31
    SUCCESS = 0x57F287
    ERROR = 0xED4245


class ButtonStyle(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    SUCCESS = "success"
    DANGER = "danger"


@dataclass(frozen=True)
class EmbedField:
    name: str
    value: str
    inline: bool = False


@dataclass(frozen=True)
class EmbedAuthor:
    name: str
    icon_url: str | None = None


@dataclass(frozen=True)
class Embed:
    title: str | None = None
    description: str | None = None
    color: EmbedColor = EmbedColor.DEFAULT
    author: EmbedAuthor | None = None
    fields: tuple[EmbedField, ...] = ()
    thumbnail_url: str | None = None
    footer: str | None = None

    def with_title(self, title: str) -> Embed:
        return replace(self, title=title)

    def with_color(self, color: EmbedColor) -> Embed:
        return replace(self, color=color)

    def with_fields(self, *fields: EmbedField) -> Embed:
        """Return a copy with ``fields`` appended."""
        return replace(self, fields=self.fields + tuple(fields))

    def field_value(self, name: str) -> str | None:
        for f in self.fields:
            if f.name == name:
                return f.value
        return None


@dataclass(frozen=True)
class Button:
    custom_id: str
    label: str
    style: ButtonStyle = ButtonStyle.PRIMARY


@dataclass(frozen=True)
class Attachment:
    filename: str
    data: bytes


@dataclass(frozen=True)
class RenderedMessage:
    """A message to send or the full replacement for an edited one.

    ``components`` is a single row of buttons; an empty tuple strips every
    control from an edited message.  ``content=None`` leaves the text of an
    edited message as it was.
    """

    content: str | None = None
    embeds: tuple[Embed, ...] = ()
    components: tuple[Button, ...] = ()
    attachments: tuple[Attachment, ...] = ()
    mention_role_ids: tuple[str, ...] = ()
    mention_user_ids: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Mention / markup helpers
# ---------------------------------------------------------------------------


def mention_user(user_id: str) -> str:
    return f"<@{user_id}>"


def mention_role(role_id: str) -> str:
    return f"<@&{role_id}>"


def mention_channel(channel_id: str) -> str:
    return f"<#{channel_id}>"


def timestamp_markup(when: datetime, style: str = "F") -> str:
    """Client-localized timestamp markup, e.g. ``<t:1704110400:F>``."""
    return f"<t:{int(when.timestamp())}:{style}>"
