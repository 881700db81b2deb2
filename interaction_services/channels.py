"""Channel lookups shared by the workflows."""

from __future__ import annotations

from interaction_kernel.domain.ports import ChannelHandle, ChannelKind, ChannelProvider
from interaction_kernel.exceptions import ChannelKindError


async def require_text_channel(
    provider: ChannelProvider,
    channel_ref: str,
) -> ChannelHandle:
    """Fetch a configured channel that must accept messages.

    Raises:
        ChannelKindError: If the channel is missing or not text-based.
    """
    channel = await provider.fetch_channel(channel_ref)
    if channel is None:
        raise ChannelKindError(channel_ref, ChannelKind.TEXT.value, "missing")
    if not channel.is_text_based:
        raise ChannelKindError(channel_ref, ChannelKind.TEXT.value, channel.kind.value)
    return channel
