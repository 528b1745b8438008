"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types. All of them are created per
message and discarded once processing finishes.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class InboundMessage:
    """Minimal chat message used by the core processing pipeline."""

    text: str
    channel_id: str
    user_id: str
    timestamp: str
    thread_timestamp: Optional[str] = None


@dataclass(frozen=True)
class PullRequestReference:
    """A parsed pointer to a pull request.

    Owner and repository are empty for bare references such as ``#42`` and
    are filled from configured defaults before use.
    """

    number: int
    owner: str = ""
    repository: str = ""
    source_url: Optional[str] = None

    @property
    def is_resolvable(self) -> bool:
        return bool(self.owner and self.repository)

    def with_defaults(self, owner: Optional[str], repository: Optional[str]) -> "PullRequestReference":
        return replace(
            self,
            owner=self.owner or (owner or ""),
            repository=self.repository or (repository or ""),
        )

    def __str__(self) -> str:
        return f"{self.owner}/{self.repository}#{self.number}"


@dataclass(frozen=True)
class MatchResult:
    """A successful pattern match with the references found in the message."""

    pattern: str
    matched_text: str
    references: Tuple[PullRequestReference, ...]
    source_message: Optional[InboundMessage] = None


@dataclass(frozen=True)
class PullRequestState:
    """Code-host view of a pull request used for validation."""

    state: str
    merged: bool


@dataclass(frozen=True)
class ApprovalRequest:
    owner: str
    repository: str
    pr_number: int
    source_channel: str
    source_user: str
    source_message: InboundMessage
    requested_at: datetime


@dataclass(frozen=True)
class ApprovalOutcome:
    """Terminal result of one approval request."""

    request: ApprovalRequest
    success: bool
    processed_at: datetime
    retry_attempts: int = 0
    review_id: Optional[int] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.success and (self.review_id is None or self.error is not None):
            raise ValueError("successful outcome requires a review id and no error")
        if not self.success and not self.error:
            raise ValueError("failed outcome requires an error message")
