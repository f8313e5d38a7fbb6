"""Pydantic models for strict request validation."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class NotifyParams(BaseModel):
    message: str = Field(..., description="Notification body")
    title: str = ""
    channels: list[str] = Field(default_factory=list)
    # Accepted for compatibility with older callers; every channel sends at
    # the same priority.
    priority: str = "normal"

    model_config = {"extra": "ignore"}

    @field_validator("message")
    @classmethod
    def _message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message is required")
        return value

    @field_validator("title", mode="before")
    @classmethod
    def _title_none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("channels", mode="before")
    @classmethod
    def _channels_single_string(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


def describe_errors(exc: Any) -> str:
    """Flatten a pydantic ``ValidationError`` into one line."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "params"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)
