"""Slack and GitHub client factories for lgtm.

We explicitly manage the Socket Mode handler's lifecycle (connect/close) so
it is obvious when the session is created and when it ends.
"""

from __future__ import annotations

import logging

from github import Auth, Github
from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_bolt.async_app import AsyncApp

import settings

LOGGER = logging.getLogger(__name__)


def build_slack_app() -> AsyncApp:
    """Create the Bolt app from the bot token.

    Tokens are read via python-dotenv in ``settings`` to keep secrets out of
    the repo.
    """

    LOGGER.info("Initializing Slack app")
    return AsyncApp(token=settings.SLACK_BOT_TOKEN)


def build_socket_handler(app: AsyncApp) -> AsyncSocketModeHandler:
    return AsyncSocketModeHandler(app, settings.SLACK_APP_TOKEN)


def build_github() -> Github:
    """Create a PyGithub client; its default retry policy handles rate limits."""

    LOGGER.info("Initializing GitHub client")
    return Github(auth=Auth.Token(settings.GITHUB_TOKEN))
