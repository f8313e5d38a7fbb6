"""Adapter factory keyed by channel id."""

from __future__ import annotations

import logging
from typing import Callable

import httpx

from notify_relay import defaults
from notify_relay.channels.base import HttpChannelAdapter
from notify_relay.channels.feishu_adapter import FeishuAdapter
from notify_relay.channels.line_adapter import LineAdapter
from notify_relay.channels.port import ChannelAdapter
from notify_relay.channels.slack_adapter import SlackAdapter
from notify_relay.config import ChannelRegistry

log = logging.getLogger("notify_relay.channels.factory")

_ADAPTERS: dict[str, Callable[..., HttpChannelAdapter]] = {
    defaults.SLACK: SlackAdapter,
    defaults.LINE: LineAdapter,
    defaults.FEISHU: FeishuAdapter,
}


def supported_channels() -> list[str]:
    return list(_ADAPTERS)


def build_adapter(
    channel_id: str,
    *,
    client: httpx.Client | None = None,
    timeout: float = defaults.HTTP_TIMEOUT_SECONDS,
) -> ChannelAdapter | None:
    """Construct the adapter for ``channel_id`` (``None`` if unsupported)."""
    cls = _ADAPTERS.get(channel_id)
    if cls is None:
        log.warning("No adapter for channel %r", channel_id)
        return None
    return cls(client, timeout=timeout)


def build_adapters(
    registry: ChannelRegistry,
    *,
    client: httpx.Client | None = None,
    timeout: float = defaults.HTTP_TIMEOUT_SECONDS,
) -> dict[str, ChannelAdapter]:
    """One adapter per channel the registry knows, sharing ``client`` if given."""
    adapters: dict[str, ChannelAdapter] = {}
    for channel_id in registry.channel_ids():
        adapter = build_adapter(channel_id, client=client, timeout=timeout)
        if adapter is not None:
            adapters[channel_id] = adapter
    return adapters
