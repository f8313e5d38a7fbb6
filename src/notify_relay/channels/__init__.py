"""Channel adapters: one per messaging backend."""

from notify_relay.channels.base import format_text
from notify_relay.channels.factory import build_adapter, build_adapters, supported_channels
from notify_relay.channels.feishu_adapter import FeishuAdapter
from notify_relay.channels.line_adapter import LineAdapter
from notify_relay.channels.port import ChannelAdapter
from notify_relay.channels.slack_adapter import SlackAdapter

__all__ = [
    "ChannelAdapter",
    "FeishuAdapter",
    "LineAdapter",
    "SlackAdapter",
    "build_adapter",
    "build_adapters",
    "format_text",
    "supported_channels",
]
