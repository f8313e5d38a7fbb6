"""LINE Messaging API adapter (push message)."""

from __future__ import annotations

from typing import Any, Mapping

from notify_relay import defaults
from notify_relay.channels.base import HttpChannelAdapter, format_text, truncate
from notify_relay.errors import BackendTransportError
from notify_relay.models import ChannelConfig

PUSH_URL = "https://api.line.me/v2/bot/message/push"


class LineAdapter(HttpChannelAdapter):
    channel_id = defaults.LINE
    label = "LINE"

    def missing_fields(self, config: ChannelConfig) -> list[str]:
        missing = []
        if not config.value("channel_access_token"):
            missing.append("channel_access_token")
        if not config.default_recipient:
            missing.append("default_user_id")
        return missing

    def send_notification(
        self,
        credentials: Mapping[str, str],
        recipient: str | None,
        message: str,
        title: str = "",
    ) -> dict[str, Any]:
        token = (credentials.get("channel_access_token") or "").strip()
        if not token:
            raise BackendTransportError(self.channel_id, "LINE channel access token not configured")
        if not recipient:
            raise BackendTransportError(self.channel_id, "No user ID provided for LINE notification")

        text = truncate(format_text(message, title), defaults.LINE_TEXT_LIMIT)
        resp = self._post(
            PUSH_URL,
            json={"to": recipient, "messages": [{"type": "text", "text": text}]},
            headers={"Authorization": f"Bearer {token}"},
        )
        # LINE answers a push with an empty object or the sent message ids.
        data = self._json(resp) if resp.content else {}
        return self._sent(data)
