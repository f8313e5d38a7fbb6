"""Single source of truth for shared constants and configuration defaults.

Anything referenced from more than one module lives here. Values that only
matter to one adapter (API paths, response keys) stay in that adapter.
"""

from __future__ import annotations

from pathlib import Path


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------

SLACK = "slack"
LINE = "line"
FEISHU = "feishu"

# Processing order for the default set and for the ``multi`` alias.
CANONICAL_CHANNELS: tuple[str, ...] = (SLACK, LINE, FEISHU)

MULTI_ALIAS = "multi"

# Credential fields recognised per channel (file keys and env suffixes).
CHANNEL_FIELDS: dict[str, tuple[str, ...]] = {
    SLACK: ("bot_token", "webhook_url", "default_channel"),
    LINE: ("channel_access_token", "channel_secret", "default_user_id"),
    FEISHU: ("app_id", "app_secret", "default_user_id", "domain"),
}

# Field that holds the default recipient for each channel.
RECIPIENT_FIELD: dict[str, str] = {
    SLACK: "default_channel",
    LINE: "default_user_id",
    FEISHU: "default_user_id",
}

# ---------------------------------------------------------------------------
# Backend text limits (characters)
# ---------------------------------------------------------------------------

SLACK_TEXT_LIMIT = 40_000
LINE_TEXT_LIMIT = 5_000

# ---------------------------------------------------------------------------
# Timeouts (seconds)
# ---------------------------------------------------------------------------

HTTP_TIMEOUT_SECONDS = 10.0

# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

PROTOCOL_VERSION = "2.0"
CLI_REQUEST_ID = "cli"

# ---------------------------------------------------------------------------
# Configuration / logging locations
# ---------------------------------------------------------------------------

ENV_PREFIX = "NOTIFY_RELAY_"
CONFIG_ENV_VAR = "NOTIFY_RELAY_CONFIG"
LOCAL_CONFIG_FILE = Path(".notify-relay.json")
USER_CONFIG_FILE = Path.home() / ".notify-relay" / "config.json"
LOG_FILE_PREFIX = "notify-relay"
