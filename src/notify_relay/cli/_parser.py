"""Argparse parser definition for the notify-relay CLI."""

from __future__ import annotations

import argparse

from notify_relay import defaults


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notify-relay",
        description="Relay one notification to Slack, LINE and Feishu",
        epilog=(
            "Configuration priority: $NOTIFY_RELAY_CONFIG, ./.notify-relay.json, "
            "~/.notify-relay/config.json; NOTIFY_RELAY_<CHANNEL>_<FIELD> env vars override files."
        ),
    )
    parser.add_argument("--config", help="Channel configuration JSON file")
    parser.add_argument("--log-level", help="Log level (default: $NOTIFY_RELAY_LOG_LEVEL or INFO)")
    parser.add_argument("--log-dir", help="Also write JSON logs to a dated file in this directory")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Run the line-oriented protocol over stdin/stdout")

    p = sub.add_parser("notify", help="Send one notification")
    p.add_argument("--message", required=True)
    p.add_argument("--title", default="")
    p.add_argument(
        "--channel", action="append", default=[],
        help=f"Target channel ({', '.join(defaults.CANONICAL_CHANNELS)} or "
             f"{defaults.MULTI_ALIAS}); repeatable, default: every enabled channel",
    )

    sub.add_parser("health", help="Report uptime and which channels are enabled")

    p = sub.add_parser("config", help="Show (non-secret) channel configuration")
    toggle = p.add_mutually_exclusive_group()
    toggle.add_argument("--enable", choices=defaults.CANONICAL_CHANNELS, help="Enable a channel in the config file")
    toggle.add_argument("--disable", choices=defaults.CANONICAL_CHANNELS, help="Disable a channel in the config file")

    return parser
