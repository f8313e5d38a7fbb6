"""CLI for notify-relay.

Commands:
  notify-relay serve
  notify-relay notify --message M [--title T] [--channel C ...]
  notify-relay health
  notify-relay config [--enable C | --disable C]

Every command except ``serve`` is a single synthetic request routed through
the same method table as the stdio protocol.
"""

from __future__ import annotations

import sys

from notify_relay.cli._helpers import _out  # noqa: F401
from notify_relay.cli._parser import build_parser
from notify_relay.cli.commands import cmd_config, cmd_health, cmd_notify, cmd_serve
from notify_relay.config import RelaySettings
from notify_relay.observability import setup_logging


# ===================================================================
# Dispatch
# ===================================================================

_DISPATCH = {
    "serve": cmd_serve,
    "notify": cmd_notify,
    "health": cmd_health,
    "config": cmd_config,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    if not args.command:
        parser.print_help()
        return 1

    settings = RelaySettings.from_env()
    setup_logging(args.log_level or settings.log_level, args.log_dir or settings.log_dir)

    handler = _DISPATCH.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    return handler(args)
