"""Slack adapter: bot token via chat.postMessage, or an incoming webhook."""

from __future__ import annotations

from typing import Any, Mapping

from notify_relay import defaults
from notify_relay.channels.base import HttpChannelAdapter, format_text, truncate
from notify_relay.errors import BackendTransportError
from notify_relay.models import ChannelConfig

POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"


class SlackAdapter(HttpChannelAdapter):
    """Team-chat channel.

    A bot token takes precedence over a webhook URL. The bot path needs a
    recipient channel; a webhook already targets one, so the recipient is
    only forwarded as an override.
    """

    channel_id = defaults.SLACK
    label = "Slack"

    def missing_fields(self, config: ChannelConfig) -> list[str]:
        if config.value("bot_token"):
            return [] if config.default_recipient else ["default_channel"]
        if config.value("webhook_url"):
            return []
        return ["bot_token or webhook_url"]

    def send_notification(
        self,
        credentials: Mapping[str, str],
        recipient: str | None,
        message: str,
        title: str = "",
    ) -> dict[str, Any]:
        text = truncate(format_text(message, title), defaults.SLACK_TEXT_LIMIT)
        bot_token = (credentials.get("bot_token") or "").strip()
        webhook_url = (credentials.get("webhook_url") or "").strip()

        if bot_token:
            return self._post_with_token(bot_token, recipient, text)
        if webhook_url:
            return self._post_to_webhook(webhook_url, recipient, text)
        raise BackendTransportError(
            self.channel_id, "No valid authentication method configured for Slack",
        )

    def _post_with_token(self, token: str, recipient: str | None, text: str) -> dict[str, Any]:
        if not recipient:
            raise BackendTransportError(self.channel_id, "No channel provided for Slack notification")
        resp = self._post(
            POST_MESSAGE_URL,
            json={"channel": recipient, "text": text, "mrkdwn": True},
            headers={"Authorization": f"Bearer {token}"},
        )
        data = self._json(resp)
        if not data.get("ok"):
            raise BackendTransportError(
                self.channel_id, f"Slack API error: {data.get('error', 'unknown_error')}", data=data,
            )
        self.log.debug("Slack message posted", extra={"channel": self.channel_id})
        return self._sent({"channel": data.get("channel"), "ts": data.get("ts")})

    def _post_to_webhook(self, url: str, recipient: str | None, text: str) -> dict[str, Any]:
        payload: dict[str, Any] = {"text": text}
        if recipient:
            payload["channel"] = recipient
        resp = self._post(url, json=payload)
        return self._sent({"body": resp.text})
