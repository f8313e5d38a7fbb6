"""Feishu (Lark) adapter: tenant access token, then an im/v1 text message."""

from __future__ import annotations

import json
from typing import Any, Mapping

from notify_relay import defaults
from notify_relay.channels.base import HttpChannelAdapter, format_text
from notify_relay.errors import BackendTransportError
from notify_relay.models import ChannelConfig

DEFAULT_DOMAIN = "https://open.feishu.cn"
TOKEN_PATH = "/open-apis/auth/v3/tenant_access_token/internal"
MESSAGE_PATH = "/open-apis/im/v1/messages"


class FeishuAdapter(HttpChannelAdapter):
    """Enterprise-chat channel.

    The recipient is an ``open_id``. ``domain`` may point at the Lark
    international host instead of Feishu.
    """

    channel_id = defaults.FEISHU
    label = "Feishu"

    def missing_fields(self, config: ChannelConfig) -> list[str]:
        missing = [f for f in ("app_id", "app_secret") if not config.value(f)]
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
        if not recipient:
            raise BackendTransportError(self.channel_id, "No user ID provided for Feishu notification")

        base = (credentials.get("domain") or DEFAULT_DOMAIN).rstrip("/")
        token = self._tenant_token(base, credentials)

        resp = self._post(
            f"{base}{MESSAGE_PATH}",
            params={"receive_id_type": "open_id"},
            json={
                "receive_id": recipient,
                "msg_type": "text",
                "content": json.dumps({"text": format_text(message, title)}),
            },
            headers={"Authorization": f"Bearer {token}"},
        )
        data = self._checked(self._json(resp))
        return self._sent(data.get("data"))

    def _tenant_token(self, base: str, credentials: Mapping[str, str]) -> str:
        resp = self._post(
            f"{base}{TOKEN_PATH}",
            json={
                "app_id": credentials.get("app_id", ""),
                "app_secret": credentials.get("app_secret", ""),
            },
        )
        data = self._checked(self._json(resp))
        token = data.get("tenant_access_token")
        if not token:
            raise BackendTransportError(self.channel_id, "Feishu API error: no tenant_access_token returned")
        return token

    def _checked(self, data: dict[str, Any]) -> dict[str, Any]:
        code = data.get("code", 0)
        if code != 0:
            raise BackendTransportError(
                self.channel_id,
                f"Feishu API error: {data.get('msg', '')} (code: {code})",
                data=data,
            )
        return data
