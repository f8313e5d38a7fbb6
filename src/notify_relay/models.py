"""Core data types for the relay."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class DispatchFailure(str, Enum):
    """Why a dispatch produced no successful channel."""

    NO_CHANNELS_CONFIGURED = "No channels configured"
    ALL_CHANNELS_FAILED = "All channels failed"


# ---------------------------------------------------------------------------
# Intent
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NotificationIntent:
    """One "send this message" request. Empty ``target_channels`` means the
    default set."""

    message: str
    title: str = ""
    target_channels: tuple[str, ...] = ()

    @classmethod
    def from_params(
        cls,
        message: str,
        title: str | None = None,
        channels: list[str] | tuple[str, ...] | None = None,
    ) -> NotificationIntent:
        return cls(
            message=message,
            title=title or "",
            target_channels=tuple(channels or ()),
        )


# ---------------------------------------------------------------------------
# Channel configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChannelConfig:
    channel_id: str
    enabled: bool = False
    credentials: Mapping[str, str] = field(default_factory=dict)
    default_recipient: str | None = None

    def value(self, name: str) -> str:
        """Credential value stripped of whitespace ("" when absent)."""
        value = self.credentials.get(name) or ""
        return str(value).strip()

    def to_public_dict(self, *, configured: bool) -> dict[str, Any]:
        # Credential values never leave the process.
        return {"enabled": self.enabled, "configured": configured}


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChannelOutcome:
    channel_id: str
    status: OutcomeStatus
    message: str = ""
    raw_response: Any = None

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"status": self.status.value}
        if not self.succeeded:
            d["error"] = self.message
        return d


@dataclass
class DispatchResult:
    """Aggregate of one dispatch.

    ``failure`` is ``None`` when at least one channel succeeded; otherwise it
    says which kind of failure the caller is looking at.
    """

    overall_status: OutcomeStatus
    channels_notified: list[str] = field(default_factory=list)
    details: dict[str, ChannelOutcome] = field(default_factory=dict)
    timestamp: str = field(default_factory=now_iso)
    failure: DispatchFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "status": self.overall_status.value,
            "channels_notified": list(self.channels_notified),
            "timestamp": self.timestamp,
            "details": {cid: o.to_dict() for cid, o in self.details.items()},
        }
        if self.failure is not None:
            d["error"] = self.failure.value
        return d
