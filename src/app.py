"""Application entry point for the lgtm bot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import platform
import signal
from dataclasses import replace
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from slack_sdk.errors import SlackApiError

import settings
from adapters.github_code_host import GitHubCodeHost
from adapters.slack_mapper import build_message
from adapters.slack_reactions import SlackReactionAdapter
from client import build_github, build_slack_app, build_socket_handler
from core.approval import ApprovalEngine
from core.config import BotConfig, RetryPolicy, RouterConfig, validate_configuration
from core.errors import AuthenticationError, ConfigError, InvalidPatternError
from core.feedback import FeedbackReactor
from core.matcher import PatternMatcher
from core.router import MessageRouter

NAME = "LGTM"
FONT = "tarty-1"
VERSION = "1.0.0"

# Environment variables whose values are always masked in log output.
SECRET_ENV_VARS = ("GITHUB_TOKEN", "SLACK_BOT_TOKEN", "SLACK_APP_TOKEN")

CONFIG_HINTS = (
    "- Ensure all required environment variables are set: GITHUB_TOKEN, SLACK_BOT_TOKEN, SLACK_APP_TOKEN\n"
    "- Check token formats: Slack bot token should start with 'xoxb-', app token with 'xapp-'\n"
    "- Verify regex pattern syntax if using a custom SLACK_MESSAGE_PATTERN"
)
GITHUB_HINTS = (
    "- Verify your GITHUB_TOKEN is set and valid\n"
    "- For private repos the token needs 'repo' scope, for public repos 'public_repo'\n"
    "- Verify the default repository exists and is accessible"
)
SLACK_HINTS = (
    "- Check that the Slack app has reactions:write and channels:history scopes\n"
    "- Verify Socket Mode is enabled in the Slack app settings\n"
    "- Ensure the bot has been added to the target channel"
)

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = list(secrets)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _secret_values() -> list[str]:
    values = {os.getenv(name) for name in SECRET_ENV_VARS}
    # Longest first so a token containing another is masked whole.
    return sorted((value for value in values if value), key=len, reverse=True)


def _configure_logging(level_name: str) -> None:
    level_name = level_name.upper()
    level = logging.WARNING if level_name == "WARN" else getattr(logging, level_name, logging.INFO)
    formatter = _RedactingFormatter(
        _secret_values(),
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    file_cfg = (settings.LOGGING or {}).get("file", {})
    if file_cfg.get("enabled", False):
        # join keeps absolute paths as they are
        path = os.path.join(settings.PROJECT_ROOT, file_cfg.get("path", "logs/lgtm.log"))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
                backupCount=int(file_cfg.get("backup_count", 5)),
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers)


def load_config() -> BotConfig:
    """Build a BotConfig from settings and the environment."""

    return BotConfig(
        github_token=settings.GITHUB_TOKEN,
        slack_bot_token=settings.SLACK_BOT_TOKEN,
        slack_app_token=settings.SLACK_APP_TOKEN,
        message_pattern=settings.MESSAGE_PATTERN,
        log_level=settings.LOG_LEVEL,
        router=RouterConfig(
            channel_id=settings.SLACK_CHANNEL_ID or None,
            bot_user_id=settings.BOT_USER_ID or None,
            default_owner=settings.DEFAULT_OWNER or None,
            default_repo=settings.DEFAULT_REPO or None,
        ),
        retry=RetryPolicy(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            base_delay=settings.RETRY_BASE_DELAY,
        ),
    )


async def _slack_identity(app) -> str:
    try:
        response = await app.client.auth_test()
    except SlackApiError as exc:
        raise AuthenticationError("Slack", f"bot token validation failed: {exc.response.get('error')}") from exc
    LOGGER.info("Slack bot authenticated as: %s (team: %s)", response.get("user"), response.get("team"))
    return response["user_id"]


async def _stop_listening(handler, router: MessageRouter) -> None:
    """Close the socket first so no message task starts after the router drains."""

    await handler.close_async()
    await router.shutdown()


async def _serve(config: BotConfig, matcher: PatternMatcher) -> None:
    code_host = GitHubCodeHost(build_github())
    await code_host.validate_permissions(config.router.default_owner or "", config.router.default_repo or "")

    app = build_slack_app()
    bot_user_id = await _slack_identity(app)
    router_config = config.router
    if not router_config.bot_user_id:
        router_config = replace(router_config, bot_user_id=bot_user_id)

    router = MessageRouter(
        matcher=matcher,
        engine=ApprovalEngine(code_host, retry=config.retry),
        reactor=FeedbackReactor(SlackReactionAdapter(app.client)),
        config=router_config,
    )

    # Single listener keeps Bolt integration minimal and defers all filtering
    # to the core router for consistency and testability.
    @app.event("message")
    async def handle_message(event) -> None:
        message = build_message(event)
        if message is None:
            return
        LOGGER.debug("Message received: channel=%s user=%s text=%r", message.channel_id, message.user_id, message.text)
        router.on_message(message)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    handler = build_socket_handler(app)
    await handler.connect_async()
    LOGGER.info("Bot ready - listening for messages...")
    try:
        await stop.wait()
        LOGGER.info("Shutdown signal received, shutting down...")
    finally:
        await _stop_listening(handler, router)
    LOGGER.info("Bot shutdown complete")


def _run() -> None:
    _print_banner()
    config = load_config()
    _configure_logging(config.log_level)

    try:
        validate_configuration(config)
    except ConfigError as exc:
        raise SystemExit(f"{exc}\n\nTroubleshooting:\n{CONFIG_HINTS}") from exc

    LOGGER.info(
        "Configuration loaded - Pattern: %r, Channel: %s, Log Level: %s",
        config.message_pattern,
        config.router.channel_id or "all channels",
        config.log_level,
    )

    try:
        matcher = PatternMatcher(config.message_pattern)
    except InvalidPatternError as exc:
        raise SystemExit(f"failed to create pattern matcher: {exc}\n\nTroubleshooting:\n{CONFIG_HINTS}") from exc

    try:
        asyncio.run(_serve(config, matcher))
    except AuthenticationError as exc:
        hints = GITHUB_HINTS if exc.service == "GitHub" else SLACK_HINTS
        raise SystemExit(f"{exc}\n\nTroubleshooting:\n{hints}") from exc


def _validate() -> None:
    print("Validating configuration...")
    config = load_config()
    try:
        validate_configuration(config)
    except ConfigError as exc:
        raise SystemExit(str(exc)) from exc
    print("Configuration valid")


def _version() -> None:
    print(f"lgtm version {VERSION}")
    print(f"Python version: {platform.python_version()}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="lgtm",
        description="Slack-to-GitHub bot that watches Slack messages and approves GitHub pull requests",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bot")
    subparsers.add_parser("validate", help="Validate configuration without starting the bot")
    subparsers.add_parser("version", help="Display version information")

    args = parser.parse_args(argv)
    if args.command == "validate":
        _validate()
        return
    if args.command == "version":
        _version()
        return
    _run()


if __name__ == "__main__":
    main()
