"""Shared CLI helpers."""

from __future__ import annotations

import argparse
import json
from contextlib import contextmanager
from typing import Any, Iterator

import httpx

from notify_relay import defaults
from notify_relay.channels.factory import build_adapters
from notify_relay.config import RelaySettings, load_registry
from notify_relay.protocol import ProtocolHandler


def _out(data: Any) -> int:
    print(json.dumps(data, indent=2, default=str))
    if isinstance(data, dict) and "error" in data:
        return 1
    return 0


def _config_path(args: argparse.Namespace) -> str | None:
    """``--config`` wins over ``$NOTIFY_RELAY_CONFIG``; ``None`` means search."""
    return getattr(args, "config", None) or RelaySettings.from_env().config_path


@contextmanager
def _build_handler(args: argparse.Namespace) -> Iterator[ProtocolHandler]:
    """Handler whose adapters share one HTTP client, closed on exit."""
    settings = RelaySettings.from_env()
    registry = load_registry(_config_path(args))
    with httpx.Client(timeout=settings.http_timeout) as client:
        adapters = build_adapters(registry, client=client, timeout=settings.http_timeout)
        yield ProtocolHandler(registry, adapters, dispatch_timeout=settings.dispatch_timeout)


def _call(args: argparse.Namespace, method: str, params: dict[str, Any] | None = None) -> int:
    """Route one synthetic request and print its result or error."""
    with _build_handler(args) as handler:
        response = handler.handle_request({
            "protocolVersion": defaults.PROTOCOL_VERSION,
            "method": method,
            "params": params or {},
            "id": defaults.CLI_REQUEST_ID,
        })
    if response is None:
        return 1
    if "error" in response:
        return _out({"error": response["error"]})
    return _out(response["result"])
