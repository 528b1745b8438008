"""Pull-request approval with validation and bounded retry (core domain)."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from core.config import RetryPolicy
from core.errors import (
    CodeHostError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.models import ApprovalOutcome, ApprovalRequest
from core.ports import CodeHostPort

LOGGER = logging.getLogger(__name__)

PERMANENT_STATUSES = frozenset({401, 403, 404, 422})

# Fallback for failures that carry no status code.
PERMANENT_ERROR_MARKERS = (
    "not found",
    "insufficient permissions",
    "already merged",
    "already closed",
    "invalid_auth",
    "Bad credentials",
)


def is_permanent_message(message: str) -> bool:
    """Return True when the (case-sensitive) message names a permanent failure."""

    return any(marker in message for marker in PERMANENT_ERROR_MARKERS)


def is_rate_limited(error: CodeHostError) -> bool:
    return error.status in (403, 429) and "rate limit" in error.message.lower()


def is_permanent_error(error: CodeHostError) -> bool:
    """Classify a code-host failure, preferring the HTTP status when present.

    A 403 caused by rate limiting is transient.
    """

    if is_rate_limited(error):
        return False
    if error.status is not None:
        return error.status in PERMANENT_STATUSES
    return is_permanent_message(error.message)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ApprovalEngine:
    """Validates a target pull request and submits an approving review.

    Validation runs once and is never retried. Approval is retried on
    transient failures with exponential backoff; permanent failures stop
    immediately. Cancellation propagates out of any wait or remote call.
    """

    def __init__(
        self,
        code_host: CodeHostPort,
        retry: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._code_host = code_host
        self._retry = retry or RetryPolicy()
        self._sleep = sleep

    async def validate_target(self, owner: str, repo: str, number: int) -> None:
        """Raise a ValidationError subclass unless the PR is open and unmerged."""

        LOGGER.debug("Validating PR: %s/%s#%s", owner, repo, number)
        try:
            pr = await self._code_host.get_pull_request(owner, repo, number)
        except CodeHostError as exc:
            if exc.status == 404:
                raise NotFoundError(f"PR #{number} not found in {owner}/{repo}") from exc
            if exc.status in (401, 403) and not is_rate_limited(exc):
                raise PermissionDeniedError(
                    f"insufficient permissions to access PR #{number} in {owner}/{repo}"
                ) from exc
            raise ValidationError(f"failed to get PR #{number}: {exc.message}") from exc

        if pr.state != "open":
            raise InvalidStateError(f"PR #{number} is {pr.state} and cannot be approved")
        if pr.merged:
            raise InvalidStateError(f"PR #{number} is already merged")

        LOGGER.debug("PR validation successful: %s/%s#%s state=%s", owner, repo, number, pr.state)

    async def approve_with_retry(self, request: ApprovalRequest) -> ApprovalOutcome:
        """Validate then approve ``request``, returning a terminal outcome."""

        try:
            await self.validate_target(request.owner, request.repository, request.pr_number)
        except ValidationError as exc:
            LOGGER.warning(
                "PR validation failed: %s/%s#%s error=%s",
                request.owner,
                request.repository,
                request.pr_number,
                exc,
            )
            return ApprovalOutcome(
                request=request,
                success=False,
                processed_at=_now(),
                retry_attempts=0,
                error=str(exc),
            )

        max_attempts = self._retry.max_attempts
        last_error = ""
        for attempt in range(max_attempts):
            if attempt > 0:
                delay = self._retry.delay_for(attempt)
                LOGGER.debug(
                    "Retrying PR approval: attempt=%s/%s delay=%ss pr_number=%s",
                    attempt + 1,
                    max_attempts,
                    delay,
                    request.pr_number,
                )
                await self._sleep(delay)

            try:
                review_id = await self._code_host.create_approval_review(
                    request.owner, request.repository, request.pr_number
                )
            except CodeHostError as exc:
                last_error = exc.message
                if is_permanent_error(exc):
                    LOGGER.warning(
                        "PR approval failed permanently: %s/%s#%s attempts=%s error=%s",
                        request.owner,
                        request.repository,
                        request.pr_number,
                        attempt + 1,
                        exc.message,
                    )
                    return ApprovalOutcome(
                        request=request,
                        success=False,
                        processed_at=_now(),
                        retry_attempts=attempt,
                        error=exc.message,
                    )
                LOGGER.debug("PR approval attempt failed: attempt=%s error=%s", attempt + 1, exc.message)
                continue

            LOGGER.info(
                "PR approved: %s/%s#%s review_id=%s retries=%s",
                request.owner,
                request.repository,
                request.pr_number,
                review_id,
                attempt,
            )
            return ApprovalOutcome(
                request=request,
                success=True,
                processed_at=_now(),
                retry_attempts=attempt,
                review_id=review_id,
            )

        LOGGER.warning(
            "PR approval retries exhausted: %s/%s#%s attempts=%s final_error=%s",
            request.owner,
            request.repository,
            request.pr_number,
            max_attempts,
            last_error,
        )
        return ApprovalOutcome(
            request=request,
            success=False,
            processed_at=_now(),
            retry_attempts=max_attempts,
            error=last_error or "approval failed",
        )
