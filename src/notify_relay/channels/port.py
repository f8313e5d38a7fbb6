"""Channel port: protocol definition for outbound messaging adapters."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from notify_relay.models import ChannelConfig


@runtime_checkable
class ChannelAdapter(Protocol):
    """One backend's send-message call behind a uniform contract.

    ``send_notification`` returns ``{"success": True, "data": ..., "message": ...}``
    or raises ``BackendTransportError``. Exactly one attempt, no retries.
    """

    @property
    def channel_id(self) -> str: ...

    def missing_fields(self, config: ChannelConfig) -> list[str]: ...

    def send_notification(
        self,
        credentials: Mapping[str, str],
        recipient: str | None,
        message: str,
        title: str = "",
    ) -> dict[str, Any]: ...
