"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from core.errors import ConfigError

VALID_LOG_LEVELS = ("debug", "info", "warn", "warning", "error")


@dataclass(frozen=True)
class RouterConfig:
    """Message filtering and default-repository settings."""

    channel_id: Optional[str] = None
    bot_user_id: Optional[str] = None
    default_owner: Optional[str] = None
    default_repo: Optional[str] = None


@dataclass(frozen=True)
class RetryPolicy:
    """Approval retry settings.

    The delay before the attempt with zero-based index ``i`` is
    ``base_delay * 2 ** i``.
    """

    max_attempts: int = 3
    base_delay: float = 1.0

    def delay_for(self, attempt_index: int) -> float:
        return self.base_delay * (2 ** attempt_index)


@dataclass(frozen=True)
class BotConfig:
    """Everything the app layer needs to start the bot."""

    github_token: str
    slack_bot_token: str
    slack_app_token: str
    message_pattern: str
    log_level: str
    router: RouterConfig
    retry: RetryPolicy


def validate_configuration(config: BotConfig) -> None:
    """Raise ConfigError for the first invalid field."""

    if not config.github_token:
        raise ConfigError("GitHubToken", "GitHub token is required")
    if not config.slack_bot_token:
        raise ConfigError("SlackBotToken", "Slack bot token is required")
    if not config.slack_app_token:
        raise ConfigError("SlackAppToken", "Slack app token is required")

    if not config.slack_bot_token.startswith("xoxb-"):
        raise ConfigError("SlackBotToken", "Slack bot token must start with 'xoxb-'")
    if not config.slack_app_token.startswith("xapp-"):
        raise ConfigError("SlackAppToken", "Slack app token must start with 'xapp-'")

    if config.message_pattern:
        try:
            re.compile(config.message_pattern)
        except re.error as exc:
            raise ConfigError("MessagePattern", f"Invalid regex pattern: {exc}") from exc

    if config.log_level.lower() not in VALID_LOG_LEVELS:
        raise ConfigError("LogLevel", "Log level must be one of: debug, info, warn, error")

    if config.retry.max_attempts < 1:
        raise ConfigError("RetryMaxAttempts", "At least one approval attempt is required")
    if config.retry.base_delay < 0:
        raise ConfigError("RetryBaseDelay", "Retry delay cannot be negative")
