"""Slack-to-core message mapping adapter.

This keeps Slack event payload details out of the core pipeline.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from core.models import InboundMessage

# Subtypes that still carry a user-authored message.
_ACCEPTED_SUBTYPES = {None, "thread_broadcast", "file_share"}


def build_message(event: Mapping[str, Any]) -> Optional[InboundMessage]:
    """Build an InboundMessage from a Slack ``message`` event.

    Returns None for edits, deletions, joins and anything posted by a bot,
    so our own reactions and bot chatter never reach the router.
    """

    if event.get("subtype") not in _ACCEPTED_SUBTYPES:
        return None
    if event.get("bot_id"):
        return None

    channel = event.get("channel")
    timestamp = event.get("ts")
    if not channel or not timestamp:
        return None

    return InboundMessage(
        text=event.get("text") or "",
        channel_id=channel,
        user_id=event.get("user") or "",
        timestamp=timestamp,
        thread_timestamp=event.get("thread_ts"),
    )
