"""Channel registry and process settings.

Channel configuration is layered: built-in defaults (every channel
disabled), then the first config file found, then environment variables
(``NOTIFY_RELAY_<CHANNEL>_ENABLED`` and ``NOTIFY_RELAY_<CHANNEL>_<FIELD>``,
highest priority). The result is an immutable :class:`ChannelRegistry`
snapshot that is passed explicitly to the dispatch core and the protocol
shell.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Mapping

from notify_relay import defaults
from notify_relay.errors import ValidationError
from notify_relay.models import ChannelConfig

log = logging.getLogger("notify_relay.config")

_TRUTHY = ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class ChannelRegistry:
    """Read-only lookup of per-channel configuration."""

    def __init__(
        self,
        channels: Mapping[str, ChannelConfig],
        *,
        source: str | None = None,
    ) -> None:
        self._channels = dict(channels)
        self.source = source

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._channels

    def __iter__(self) -> Iterator[ChannelConfig]:
        return (self._channels[cid] for cid in self.channel_ids())

    def get(self, channel_id: str) -> ChannelConfig | None:
        return self._channels.get(channel_id)

    def channel_ids(self) -> list[str]:
        """Known channels, canonical ones first in canonical order."""
        known = [c for c in defaults.CANONICAL_CHANNELS if c in self._channels]
        extra = sorted(c for c in self._channels if c not in defaults.CANONICAL_CHANNELS)
        return known + extra

    def enabled_ids(self) -> list[str]:
        return [c.channel_id for c in self if c.enabled]

    def enabled_map(self) -> dict[str, bool]:
        return {c.channel_id: c.enabled for c in self}


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def config_search_paths(env: Mapping[str, str] | None = None) -> list[Path]:
    env = os.environ if env is None else env
    paths: list[Path] = []
    explicit = env.get(defaults.CONFIG_ENV_VAR)
    if explicit:
        paths.append(Path(explicit))
    paths.extend([defaults.LOCAL_CONFIG_FILE, defaults.USER_CONFIG_FILE])
    return paths


def _read_config_file(path: Path) -> dict[str, Any] | None:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as exc:
        log.warning("Ignoring unreadable config file %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        log.warning("Ignoring config file %s: top level is not an object", path)
        return None
    return data


def _env_channel_overrides(
    channel_id: str, env: Mapping[str, str],
) -> tuple[bool | None, dict[str, str]]:
    prefix = f"{defaults.ENV_PREFIX}{channel_id.upper()}_"
    enabled_raw = env.get(f"{prefix}ENABLED")
    enabled = None if enabled_raw is None else enabled_raw.strip().lower() in _TRUTHY
    fields = {}
    for name in defaults.CHANNEL_FIELDS.get(channel_id, ()):
        val = env.get(f"{prefix}{name.upper()}")
        if val is not None:
            fields[name] = val
    return enabled, fields


def build_registry(
    data: Mapping[str, Any] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    source: str | None = None,
) -> ChannelRegistry:
    """Build a registry from parsed config data plus environment overrides."""
    env = os.environ if env is None else env
    file_channels = (data or {}).get("channels") or {}
    if not isinstance(file_channels, dict):
        log.warning("Ignoring 'channels' in config: expected an object")
        file_channels = {}

    for unknown in sorted(set(file_channels) - set(defaults.CANONICAL_CHANNELS)):
        log.warning("Ignoring unknown channel %r in config", unknown)

    channels: dict[str, ChannelConfig] = {}
    for channel_id in defaults.CANONICAL_CHANNELS:
        raw = file_channels.get(channel_id) or {}
        if not isinstance(raw, dict):
            raw = {}
        enabled = bool(raw.get("enabled", False))
        credentials = {
            name: str(raw[name])
            for name in defaults.CHANNEL_FIELDS[channel_id]
            if raw.get(name) not in (None, "")
        }

        env_enabled, env_fields = _env_channel_overrides(channel_id, env)
        if env_enabled is not None:
            enabled = env_enabled
        credentials.update(env_fields)

        recipient = credentials.get(defaults.RECIPIENT_FIELD[channel_id], "").strip()
        channels[channel_id] = ChannelConfig(
            channel_id=channel_id,
            enabled=enabled,
            credentials=credentials,
            default_recipient=recipient or None,
        )

    return ChannelRegistry(channels, source=source)


def load_registry(
    path: str | Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> ChannelRegistry:
    """Load the registry from ``path`` or the first existing search path."""
    env = os.environ if env is None else env
    candidates = [Path(path)] if path else config_search_paths(env)
    for p in candidates:
        if p.exists():
            data = _read_config_file(p)
            if data is not None:
                log.info("Loaded channel configuration from %s", p)
                return build_registry(data, env=env, source=str(p))
            break
    return build_registry(None, env=env, source=None)


# ---------------------------------------------------------------------------
# Out-of-band update path
# ---------------------------------------------------------------------------

def validate_config(data: Any) -> None:
    """Raise ``ValidationError`` unless ``data`` has a sane channel structure."""
    if not isinstance(data, dict) or not isinstance(data.get("channels"), dict):
        raise ValidationError("Invalid configuration structure: 'channels' object required")
    for channel_id, cfg in data["channels"].items():
        if channel_id not in defaults.CHANNEL_FIELDS:
            raise ValidationError(f"Unknown channel: {channel_id}")
        if not isinstance(cfg, dict):
            raise ValidationError(f"Channel {channel_id} must be an object")
        if "enabled" in cfg and not isinstance(cfg["enabled"], bool):
            raise ValidationError(f"{channel_id} enabled must be a boolean")
        for name, value in cfg.items():
            if name == "enabled":
                continue
            if name not in defaults.CHANNEL_FIELDS[channel_id]:
                raise ValidationError(f"Unknown field for {channel_id}: {name}")
            if not isinstance(value, str):
                raise ValidationError(f"{channel_id}.{name} must be a string")


def update_channel_config(
    channel_id: str,
    *,
    path: str | Path | None = None,
    **fields: Any,
) -> Path:
    """Merge ``fields`` into one channel's entry and rewrite the config file.

    Processes that already hold a registry keep their snapshot; the change is
    visible to the next load.
    """
    if channel_id not in defaults.CHANNEL_FIELDS:
        raise ValidationError(f"Channel {channel_id} not found in configuration")

    target = Path(path) if path else next(
        (p for p in config_search_paths() if p.exists()), defaults.LOCAL_CONFIG_FILE,
    )
    data: dict[str, Any] = {"channels": {}}
    if target.exists():
        existing = _read_config_file(target)
        if existing is not None:
            data = existing
    data.setdefault("channels", {})
    channel = dict(data["channels"].get(channel_id) or {})
    channel.update(fields)
    data["channels"][channel_id] = channel

    validate_config(data)

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    log.info("Updated %s configuration in %s", channel_id, target)
    return target


# ---------------------------------------------------------------------------
# Process settings
# ---------------------------------------------------------------------------

@dataclass
class RelaySettings:
    """Runtime settings from the environment."""

    config_path: str | None = None
    log_level: str = "INFO"
    log_dir: str | None = None
    http_timeout: float = defaults.HTTP_TIMEOUT_SECONDS
    dispatch_timeout: float | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> RelaySettings:
        env = os.environ if env is None else env
        dispatch_timeout = env.get("NOTIFY_RELAY_DISPATCH_TIMEOUT")
        return cls(
            config_path=env.get(defaults.CONFIG_ENV_VAR) or None,
            log_level=env.get("NOTIFY_RELAY_LOG_LEVEL", "INFO"),
            log_dir=env.get("NOTIFY_RELAY_LOG_DIR") or None,
            http_timeout=float(env.get("NOTIFY_RELAY_HTTP_TIMEOUT", defaults.HTTP_TIMEOUT_SECONDS)),
            dispatch_timeout=float(dispatch_timeout) if dispatch_timeout else None,
        )
