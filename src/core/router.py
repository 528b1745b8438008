"""Core message routing pipeline.

This module is integration-agnostic. It only relies on the matcher, the
approval engine and the feedback reactor, enabling other chat frontends
without changes here.

The router enforces a strict order per message:
1) Fast-exit for other channels and the bot's own messages
2) Pattern match (no match ends processing silently)
3) Reaction feedback for matches without references
4) One concurrent approval per resolvable reference, each with its own
   success/failure reaction on the source message
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Set

from core.approval import ApprovalEngine
from core.config import RouterConfig
from core.feedback import FeedbackReactor, ReactionKind
from core.matcher import PatternMatcher
from core.models import ApprovalOutcome, ApprovalRequest, InboundMessage, MatchResult

LOGGER = logging.getLogger(__name__)


class MessageRouter:
    """Routes inbound chat messages to pull-request approvals."""

    def __init__(
        self,
        matcher: PatternMatcher,
        engine: ApprovalEngine,
        reactor: FeedbackReactor,
        config: RouterConfig,
    ) -> None:
        self._matcher = matcher
        self._engine = engine
        self._reactor = reactor
        self._config = config
        # Held only so shutdown can cancel and await in-flight work.
        self._tasks: Set[asyncio.Task] = set()

    def on_message(self, message: InboundMessage) -> asyncio.Task:
        """Schedule processing of ``message`` and return without waiting."""

        task = asyncio.get_running_loop().create_task(self.handle(message))
        self._tasks.add(task)
        task.add_done_callback(self._finish)
        return task

    def _finish(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            LOGGER.error("Error while processing message", exc_info=task.exception())

    async def handle(self, message: InboundMessage) -> None:
        """Process one message through the routing pipeline."""

        if self._config.channel_id and message.channel_id != self._config.channel_id:
            return

        # Never react to our own messages, including our own approvals.
        if self._config.bot_user_id and message.user_id == self._config.bot_user_id:
            return

        match = self._matcher.match(message.text, source=message)
        if match is None:
            return

        LOGGER.info(
            "Pattern matched: channel=%s user=%s pattern=%r matched_text=%r",
            message.channel_id,
            message.user_id,
            match.pattern,
            match.matched_text,
        )

        if not match.references:
            LOGGER.info("Pattern matched but no PR references found in message %s", message.timestamp)
            await self._reactor.apply_reaction(
                message.channel_id, message.timestamp, ReactionKind.NO_REFERENCES_FOUND
            )
            return

        await self._reactor.apply_reaction(message.channel_id, message.timestamp, ReactionKind.PROCESSING_STARTED)
        await self._dispatch_approvals(match, message)

    async def _dispatch_approvals(self, match: MatchResult, message: InboundMessage) -> None:
        approvals = []
        for reference in match.references:
            resolved = reference.with_defaults(self._config.default_owner, self._config.default_repo)
            if not resolved.is_resolvable:
                LOGGER.warning("Skipping PR #%s: missing owner or repository", reference.number)
                continue

            request = ApprovalRequest(
                owner=resolved.owner,
                repository=resolved.repository,
                pr_number=resolved.number,
                source_channel=message.channel_id,
                source_user=message.user_id,
                source_message=message,
                requested_at=datetime.now(timezone.utc),
            )
            approvals.append(asyncio.ensure_future(self._process_approval(request)))

        # Joined only for completion; outcomes apply their own feedback in any order.
        if approvals:
            await asyncio.gather(*approvals)

    async def _process_approval(self, request: ApprovalRequest) -> Optional[ApprovalOutcome]:
        LOGGER.info("Starting PR approval: %s/%s#%s", request.owner, request.repository, request.pr_number)
        try:
            outcome = await self._engine.approve_with_retry(request)
        except Exception:
            # One reference failing must not affect its siblings.
            LOGGER.exception(
                "Unexpected error approving %s/%s#%s", request.owner, request.repository, request.pr_number
            )
            outcome = None

        if outcome is not None and outcome.success:
            LOGGER.info(
                "PR approval succeeded: %s/%s#%s review_id=%s retries=%s",
                request.owner,
                request.repository,
                request.pr_number,
                outcome.review_id,
                outcome.retry_attempts,
            )
            kind = ReactionKind.APPROVAL_SUCCEEDED
        else:
            if outcome is not None:
                LOGGER.info(
                    "PR approval failed: %s/%s#%s error=%s retries=%s",
                    request.owner,
                    request.repository,
                    request.pr_number,
                    outcome.error,
                    outcome.retry_attempts,
                )
            kind = ReactionKind.APPROVAL_FAILED

        source = request.source_message
        await self._reactor.apply_reaction(request.source_channel, source.timestamp, kind)
        return outcome

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def shutdown(self) -> None:
        """Cancel in-flight message processing and wait for it to unwind."""

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        LOGGER.info("Cancelled %s in-flight message(s)", len(tasks))
