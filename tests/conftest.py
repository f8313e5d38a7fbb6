"""Shared fixtures for notify-relay tests."""

import logging
import os
import time

import pytest

from notify_relay import defaults
from notify_relay.config import ChannelRegistry
from notify_relay.models import ChannelConfig


# ---------------------------------------------------------------------------
# Auto-use fixtures: isolate environment and global logging state
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path, monkeypatch):
    """No real config file or NOTIFY_RELAY_* variable leaks into a test."""
    for key in list(os.environ):
        if key.startswith(defaults.ENV_PREFIX):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(defaults, "USER_CONFIG_FILE", tmp_path / "home" / "config.json")


@pytest.fixture(autouse=True)
def _restore_logging():
    """setup_logging() replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Spy adapter and fabricated registries
# ---------------------------------------------------------------------------

class SpyAdapter:
    """Records every send; optionally fails, sleeps or reports missing fields."""

    def __init__(self, channel_id, *, error=None, delay=0.0, required=("token",), response=None):
        self.channel_id = channel_id
        self.error = error
        self.delay = delay
        self.required = required
        self.response = response
        self.calls = []

    def missing_fields(self, config):
        return [name for name in self.required if not config.value(name)]

    def send_notification(self, credentials, recipient, message, title=""):
        self.calls.append({
            "credentials": dict(credentials),
            "recipient": recipient,
            "message": message,
            "title": title,
        })
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.response is not None:
            return self.response
        return {"success": True, "data": {"channel": self.channel_id}, "message": "sent"}


def make_registry(enabled, *, credentials=None, source="test"):
    """Registry with one ChannelConfig per entry of ``enabled`` (id -> bool).

    Every channel gets ``{"token": "<id>-token"}`` unless ``credentials``
    overrides it.
    """
    credentials = credentials or {}
    channels = {
        cid: ChannelConfig(
            channel_id=cid,
            enabled=on,
            credentials=credentials.get(cid, {"token": f"{cid}-token"}),
            default_recipient=f"{cid}-user",
        )
        for cid, on in enabled.items()
    }
    return ChannelRegistry(channels, source=source)


@pytest.fixture
def spies():
    return {cid: SpyAdapter(cid) for cid in defaults.CANONICAL_CHANNELS}


@pytest.fixture
def all_enabled():
    return make_registry({cid: True for cid in defaults.CANONICAL_CHANNELS})
