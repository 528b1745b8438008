"""GitHub code-host adapter.

Implements the core CodeHostPort using PyGithub. PyGithub is blocking, so
every call runs in a worker thread to keep the event loop responsive.
Rate-limit retries are handled by PyGithub's own retry policy.
"""

from __future__ import annotations

import asyncio
import logging

from github import Github, GithubException
from requests.exceptions import RequestException

from core.errors import AuthenticationError, CodeHostError
from core.models import PullRequestState

LOGGER = logging.getLogger(__name__)


def _describe(exc: GithubException) -> str:
    if isinstance(exc.data, dict) and exc.data.get("message"):
        return str(exc.data["message"])
    return str(exc)


class GitHubCodeHost:
    """CodeHostPort backed by the GitHub REST API."""

    def __init__(self, client: Github) -> None:
        self._client = client

    def _get_pull(self, owner: str, repo: str, number: int):
        return self._client.get_repo(f"{owner}/{repo}", lazy=True).get_pull(number)

    async def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestState:
        def _fetch() -> PullRequestState:
            try:
                pr = self._get_pull(owner, repo, number)
            except GithubException as exc:
                if exc.status == 404:
                    raise CodeHostError(f"PR #{number} not found in {owner}/{repo}", exc.status) from exc
                if exc.status == 403 and "rate limit" not in _describe(exc).lower():
                    raise CodeHostError(
                        f"insufficient permissions to access PR #{number} in {owner}/{repo}", exc.status
                    ) from exc
                raise CodeHostError(f"failed to get PR #{number}: {_describe(exc)}", exc.status) from exc
            except RequestException as exc:
                raise CodeHostError(f"failed to get PR #{number}: {exc}") from exc
            return PullRequestState(state=pr.state, merged=bool(pr.merged))

        return await asyncio.to_thread(_fetch)

    async def create_approval_review(self, owner: str, repo: str, number: int) -> int:
        def _approve() -> int:
            LOGGER.debug("Approving PR: %s/%s#%s", owner, repo, number)
            try:
                review = self._get_pull(owner, repo, number).create_review(event="APPROVE")
            except GithubException as exc:
                if exc.status == 404:
                    message = f"PR #{number} not found in {owner}/{repo}"
                elif exc.status == 403 and "rate limit" not in _describe(exc).lower():
                    message = f"insufficient permissions to approve PR #{number}"
                elif exc.status == 422:
                    message = f"PR #{number} cannot be approved (already merged or closed)"
                else:
                    message = f"failed to approve PR #{number}: {_describe(exc)}"
                raise CodeHostError(message, exc.status) from exc
            except RequestException as exc:
                raise CodeHostError(f"failed to approve PR #{number}: {exc}") from exc
            LOGGER.debug("PR approved: %s/%s#%s review_id=%s", owner, repo, number, review.id)
            return review.id

        return await asyncio.to_thread(_approve)

    async def validate_permissions(self, default_owner: str = "", default_repo: str = "") -> str:
        """Check the token and, when configured, access to the default repository.

        Returns the authenticated login.
        """

        def _check() -> str:
            try:
                login = self._client.get_user().login
            except GithubException as exc:
                raise AuthenticationError("GitHub", _describe(exc)) from exc
            LOGGER.info("Authenticated as GitHub user: %s", login)

            if default_owner and default_repo:
                try:
                    self._client.get_repo(f"{default_owner}/{default_repo}")
                except GithubException as exc:
                    raise AuthenticationError(
                        "GitHub",
                        f"insufficient permissions for repository {default_owner}/{default_repo}: {_describe(exc)}",
                    ) from exc
                LOGGER.info("Repository access confirmed: %s/%s", default_owner, default_repo)
            return login

        return await asyncio.to_thread(_check)
