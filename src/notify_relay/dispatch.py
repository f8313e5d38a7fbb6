"""Dispatch core: fan one notification intent out to its channels.

Per-channel failures never escape: an unconfigured channel or an adapter
that raises becomes an error ``ChannelOutcome`` and every other channel is
still attempted. Only a structurally invalid intent raises.

Sends run concurrently on a thread pool. Outcomes are folded back in the
resolved order, so ``channels_notified`` does not depend on which backend
answered first.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Mapping

from notify_relay import defaults
from notify_relay.channels.port import ChannelAdapter
from notify_relay.config import ChannelRegistry
from notify_relay.errors import ValidationError
from notify_relay.models import (
    ChannelConfig,
    ChannelOutcome,
    DispatchFailure,
    DispatchResult,
    NotificationIntent,
    OutcomeStatus,
)

log = logging.getLogger("notify_relay.dispatch")

_MS_PER_SECOND = 1000


def resolve_targets(requested: Iterable[str], registry: ChannelRegistry) -> list[str]:
    """Concrete, ordered channel list an intent will be sent to.

    Empty ``requested`` means ``multi``, which expands to every registry
    channel in canonical order. Caller order is kept otherwise; duplicates
    keep their first position. Unknown ids and disabled channels are dropped.
    """
    names = [str(c).strip().lower() for c in requested] or [defaults.MULTI_ALIAS]

    ordered: list[str] = []
    for name in names:
        expanded = registry.channel_ids() if name == defaults.MULTI_ALIAS else [name]
        for channel_id in expanded:
            if channel_id not in registry:
                log.debug("Dropping unknown channel %r", channel_id)
                continue
            if channel_id not in ordered:
                ordered.append(channel_id)

    resolved = []
    for channel_id in ordered:
        config = registry.get(channel_id)
        if config is not None and config.enabled:
            resolved.append(channel_id)
    return resolved


def _send_one(
    adapter: ChannelAdapter,
    config: ChannelConfig,
    intent: NotificationIntent,
) -> ChannelOutcome:
    channel_id = config.channel_id
    start = time.monotonic()
    try:
        response = adapter.send_notification(
            config.credentials, config.default_recipient, intent.message, intent.title,
        )
    except Exception as exc:
        log.error(
            "Error sending %s notification: %s", channel_id, exc,
            extra={"channel": channel_id, "status": "error"},
        )
        return ChannelOutcome(
            channel_id, OutcomeStatus.ERROR, str(exc) or exc.__class__.__name__,
        )

    duration_ms = round((time.monotonic() - start) * _MS_PER_SECOND, 1)
    response = response if isinstance(response, Mapping) else {"data": response}
    if response.get("success") is False:
        message = str(response.get("message") or f"{channel_id} send failed")
        log.error(
            "%s adapter reported failure: %s", channel_id, message,
            extra={"channel": channel_id, "status": "error"},
        )
        return ChannelOutcome(channel_id, OutcomeStatus.ERROR, message, response.get("data"))

    log.info(
        "%s notification sent", channel_id,
        extra={"channel": channel_id, "status": "success", "duration_ms": duration_ms},
    )
    return ChannelOutcome(
        channel_id,
        OutcomeStatus.SUCCESS,
        str(response.get("message") or ""),
        response.get("data"),
    )


def dispatch(
    intent: NotificationIntent,
    registry: ChannelRegistry,
    adapters: Mapping[str, ChannelAdapter],
    *,
    max_workers: int | None = None,
) -> DispatchResult:
    """Send ``intent`` to its resolved channels and aggregate the outcomes.

    Raises ``ValidationError`` for an empty message, before any adapter is
    touched. Never raises for per-channel failures.
    """
    if not isinstance(intent.message, str) or not intent.message.strip():
        raise ValidationError("Message is required")

    resolved = resolve_targets(intent.target_channels, registry)
    outcomes: dict[str, ChannelOutcome] = {}
    unconfigured: set[str] = set()
    ready: list[tuple[ChannelAdapter, ChannelConfig]] = []

    for channel_id in resolved:
        config = registry.get(channel_id)
        adapter = adapters.get(channel_id)
        missing = ["adapter"] if adapter is None else adapter.missing_fields(config)
        if missing:
            log.warning(
                "%s not configured (missing: %s)", channel_id, ", ".join(missing),
                extra={"channel": channel_id, "status": "error"},
            )
            outcomes[channel_id] = ChannelOutcome(
                channel_id, OutcomeStatus.ERROR, f"{channel_id} not configured",
            )
            unconfigured.add(channel_id)
        else:
            ready.append((adapter, config))

    if ready:
        workers = max_workers or len(ready)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="notify-relay") as pool:
            futures = {
                config.channel_id: pool.submit(_send_one, adapter, config, intent)
                for adapter, config in ready
            }
            for channel_id, future in futures.items():
                outcomes[channel_id] = future.result()

    details = {cid: outcomes[cid] for cid in resolved}
    notified = [cid for cid in resolved if details[cid].succeeded]

    if notified:
        result = DispatchResult(OutcomeStatus.SUCCESS, notified, details)
    elif len(unconfigured) == len(resolved):
        result = DispatchResult(
            OutcomeStatus.ERROR, [], details, failure=DispatchFailure.NO_CHANNELS_CONFIGURED,
        )
    else:
        result = DispatchResult(
            OutcomeStatus.ERROR, [], details, failure=DispatchFailure.ALL_CHANNELS_FAILED,
        )

    log.info(
        "Notification processed", extra={"channels": notified, "status": result.overall_status.value},
    )
    return result
