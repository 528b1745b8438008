"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the code host and reaction adapters so
that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Protocol

from core.models import PullRequestState


class CodeHostPort(Protocol):
    """Code-host operations required by the approval engine.

    Implementations raise ``CodeHostError`` for remote failures.
    """

    async def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestState:
        ...

    async def create_approval_review(self, owner: str, repo: str, number: int) -> int:
        ...


class ReactionPort(Protocol):
    """Reaction operations required by the feedback reactor."""

    async def add_reaction(self, channel: str, timestamp: str, name: str) -> None:
        ...
