"""Helpers shared by every HTTP channel adapter."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from notify_relay import defaults
from notify_relay.errors import BackendTransportError

# Upper bound on backend error bodies copied into outcome messages.
_ERROR_BODY_LIMIT = 300


def format_text(message: str, title: str = "") -> str:
    """``"{title}\\n{message}"`` when a title is present, else the message."""
    return f"{title}\n{message}" if title else message


def truncate(text: str, limit: int) -> str:
    return text[:limit]


class HttpChannelAdapter:
    """Base for adapters that talk to their backend over HTTPS.

    Subclasses set ``channel_id`` and implement ``missing_fields`` and
    ``send_notification``. A shared ``httpx.Client`` may be injected; without
    one the adapter owns a client with the configured timeout.
    """

    channel_id = ""
    label = ""

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        timeout: float = defaults.HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client if client is not None else httpx.Client(timeout=timeout)
        self._timeout = timeout
        self.log = logging.getLogger(f"notify_relay.channels.{self.channel_id}")

    def _post(
        self,
        url: str,
        *,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """POST once; transport errors and HTTP >= 400 raise ``BackendTransportError``."""
        try:
            resp = self._client.post(
                url, json=json, headers=dict(headers or {}), params=params,
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise BackendTransportError(
                self.channel_id, f"{self.label} request failed: {exc}",
            ) from exc
        if resp.status_code >= 400:
            raise BackendTransportError(
                self.channel_id,
                f"{self.label} request failed HTTP {resp.status_code}: "
                f"{resp.text[:_ERROR_BODY_LIMIT]}",
            )
        return resp

    def _json(self, resp: httpx.Response) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as exc:
            raise BackendTransportError(
                self.channel_id, f"{self.label} returned a non-JSON response",
            ) from exc
        return data if isinstance(data, dict) else {"body": data}

    def _sent(self, data: Any) -> dict[str, Any]:
        return {
            "success": True,
            "data": data,
            "message": f"{self.label} notification sent successfully",
        }
