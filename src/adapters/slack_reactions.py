"""Slack reaction adapter.

Adds emoji reactions through the Slack Web API.
"""

from __future__ import annotations

import logging

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

LOGGER = logging.getLogger(__name__)


class SlackReactionAdapter:
    """Reaction adapter that calls ``reactions.add`` on the source message."""

    def __init__(self, client: AsyncWebClient) -> None:
        self._client = client

    async def add_reaction(self, channel: str, timestamp: str, name: str) -> None:
        """Add ``name`` to the message; an existing identical reaction counts as success."""

        try:
            await self._client.reactions_add(channel=channel, timestamp=timestamp, name=name)
        except SlackApiError as exc:
            if exc.response.get("error") == "already_reacted":
                LOGGER.debug("Reaction %s already present on %s", name, timestamp)
                return
            raise
