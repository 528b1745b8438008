"""Static configuration for lgtm.

Non-secret settings (pattern, channel, default repository, retry, logging)
live in an optional config.json at the project root. Environment variables,
including those from a .env file, override it; tokens only come from the
environment so they never land in the repo.
"""

import json
import os

from dotenv import load_dotenv

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.getenv("LGTM_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json when present; the bot can run from the environment alone."""

    if not os.path.exists(CONFIG_PATH):
        return {}

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _env_or(name: str, fallback):
    value = os.getenv(name)
    if value is None or value == "":
        return fallback
    return value


load_dotenv()
_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Secrets are read from the environment only.
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN", "")
SLACK_BOT_TOKEN = os.getenv("SLACK_BOT_TOKEN", "")
SLACK_APP_TOKEN = os.getenv("SLACK_APP_TOKEN", "")

# Slack routing: an empty channel id means every channel the bot is in.
_slack = _CONFIG.get("slack", {})
SLACK_CHANNEL_ID = _env_or("SLACK_CHANNEL_ID", _slack.get("channel_id") or "")
MESSAGE_PATTERN = _env_or("SLACK_MESSAGE_PATTERN", _slack.get("message_pattern") or ".*")
# Discovered with auth.test at startup when not configured.
BOT_USER_ID = _env_or("SLACK_BOT_USER_ID", _slack.get("bot_user_id") or "")

# Defaults used for bare references such as "#42".
_github = _CONFIG.get("github", {})
DEFAULT_OWNER = _env_or("GITHUB_OWNER", _github.get("owner") or "")
DEFAULT_REPO = _env_or("GITHUB_REPO", _github.get("repo") or "")

# Approval retry: delays grow as base_delay_seconds * 2**attempt_index.
_retry = _CONFIG.get("retry", {})
RETRY_MAX_ATTEMPTS = int(_retry.get("max_attempts", 3))
RETRY_BASE_DELAY = float(_retry.get("base_delay_seconds", 1.0))

# Logging configuration. The level is read once at startup.
LOGGING = dict(_CONFIG.get("logging", {}))
LOG_LEVEL = _env_or("LOG_LEVEL", LOGGING.get("level", "info"))
