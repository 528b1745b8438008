"""Reaction feedback applied to source messages (core domain)."""

from __future__ import annotations

import logging
from enum import Enum

from core.ports import ReactionPort

LOGGER = logging.getLogger(__name__)


class ReactionKind(Enum):
    """Processing phases and the emoji shown for each.

    Consumers rely on these exact names, so they must stay stable.
    """

    PROCESSING_STARTED = "eyes"
    APPROVAL_SUCCEEDED = "white_check_mark"
    APPROVAL_FAILED = "x"
    NO_REFERENCES_FOUND = "grey_question"


class FeedbackReactor:
    """Best-effort reaction sender: failures are logged, never raised."""

    def __init__(self, reactions: ReactionPort) -> None:
        self._reactions = reactions

    async def apply_reaction(self, channel: str, timestamp: str, kind: ReactionKind) -> bool:
        """Add ``kind`` to the message and return whether it was applied."""

        try:
            await self._reactions.add_reaction(channel, timestamp, kind.value)
        except Exception:
            LOGGER.exception("Failed to add reaction %s to message %s in %s", kind.value, timestamp, channel)
            return False
        LOGGER.debug("Added reaction %s to message %s", kind.value, timestamp)
        return True
