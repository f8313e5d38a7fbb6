"""CLI command handlers. Each returns the process exit code."""

from __future__ import annotations

import argparse
import logging

from notify_relay.cli._helpers import _build_handler, _call, _config_path, _out
from notify_relay.config import update_channel_config
from notify_relay.errors import RelayError, error_payload

log = logging.getLogger("notify_relay.cli")


def cmd_serve(args: argparse.Namespace) -> int:
    with _build_handler(args) as handler:
        try:
            return handler.serve()
        except KeyboardInterrupt:
            log.info("Received keyboard interrupt, stopping")
            return 0


def cmd_notify(args: argparse.Namespace) -> int:
    return _call(args, "notify", {
        "message": args.message,
        "title": args.title,
        "channels": args.channel,
    })


def cmd_health(args: argparse.Namespace) -> int:
    return _call(args, "health")


def cmd_config(args: argparse.Namespace) -> int:
    channel_id = args.enable or args.disable
    if channel_id:
        try:
            update_channel_config(channel_id, path=_config_path(args), enabled=bool(args.enable))
        except RelayError as exc:
            return _out({"error": error_payload(exc)})
    return _call(args, "config")
