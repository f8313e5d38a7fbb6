"""Line-oriented JSON-RPC-style protocol shell.

One JSON object per input line, one JSON object per output line. Each
request is fully processed (including its channel sends) before the next
line is read. A bad line produces an error response and the loop keeps
going; only end of input stops ``serve``.

Request::

    {"protocolVersion": "2.0", "method": "notify", "params": {...}, "id": 1}

Requests without ``id`` are fire-and-forget and get no response, even when
they are invalid. A line that does not decode to a JSON object has no id to
inspect and is answered with ``"id": null``. The conventional ``jsonrpc``
key is accepted in place of ``protocolVersion``.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from enum import Enum
from typing import Any, Callable, Mapping, TextIO

from pydantic import ValidationError as SchemaError

from notify_relay import defaults
from notify_relay.channels.port import ChannelAdapter
from notify_relay.config import ChannelRegistry
from notify_relay.dispatch import dispatch
from notify_relay.errors import (
    ChannelNotConfigured,
    InternalError,
    InvalidRequest,
    MethodNotFound,
    ProtocolDecodeError,
    RelayError,
    ValidationError,
    error_payload,
)
from notify_relay.models import DispatchFailure, NotificationIntent, now_iso
from notify_relay.resilience import with_timeout
from notify_relay.schemas import NotifyParams, describe_errors

log = logging.getLogger("notify_relay.protocol")

_MISSING = object()


class ShellState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class ProtocolHandler:
    """Decode requests, route them by method, encode correlated responses."""

    def __init__(
        self,
        registry: ChannelRegistry,
        adapters: Mapping[str, ChannelAdapter],
        *,
        dispatch_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.registry = registry
        self.adapters = dict(adapters)
        self.dispatch_timeout = dispatch_timeout
        self.state = ShellState.UNINITIALIZED
        self._clock = clock
        self._started_at = clock()
        self._methods: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
            "notify": self.handle_notify,
            "health": self.handle_health,
            "config": self.handle_config,
            "initialize": self.handle_initialize,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def announcement(self) -> dict[str, Any]:
        return {
            "protocolVersion": defaults.PROTOCOL_VERSION,
            "method": "initialize",
            "params": {
                "capabilities": {
                    "notification": True,
                    "multiChannel": True,
                    "channels": self.registry.channel_ids(),
                },
            },
        }

    def initialize(self) -> dict[str, Any]:
        """Move to READY and return the announcement to emit."""
        self.state = ShellState.READY
        return self.announcement()

    def serve(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
        """Run the request loop until end of input.

        Lines are read as bytes when the stream exposes a binary buffer, so
        an undecodable line is answered like any other malformed input.
        """
        stdin = stdin if stdin is not None else sys.stdin
        stdout = stdout if stdout is not None else sys.stdout
        source = getattr(stdin, "buffer", stdin)

        self._write(stdout, self.initialize())
        log.info("Protocol shell ready", extra={"channels": self.registry.enabled_ids()})
        for raw in source:
            line = raw.strip()
            if not line:
                continue
            try:
                response = self.handle_line(line)
            except Exception:
                log.exception("Unhandled error processing input line")
                response = self._error_response(None, InternalError("Internal error"))
            if response is not None:
                self._write(stdout, response)
        log.info("Input closed, protocol shell stopping")
        return 0

    @staticmethod
    def _write(stdout: TextIO, message: Mapping[str, Any]) -> None:
        stdout.write(json.dumps(message, default=str) + "\n")
        stdout.flush()

    # ------------------------------------------------------------------
    # Decoding and correlation
    # ------------------------------------------------------------------

    def handle_line(self, line: str | bytes) -> dict[str, Any] | None:
        """Decode one input line and return the response to emit, if any."""
        try:
            if isinstance(line, bytes):
                line = line.decode("utf-8")
            envelope = json.loads(line)
        except (ValueError, RecursionError) as exc:
            # UnicodeDecodeError is a ValueError; RecursionError is nesting
            # too deep for the decoder.
            log.error("Error parsing input line: %s", exc.__class__.__name__)
            return self._error_response(None, ProtocolDecodeError("Invalid JSON input"))
        if not isinstance(envelope, dict):
            return self._error_response(None, InvalidRequest("Request must be a JSON object"))
        return self.handle_request(envelope)

    def handle_request(self, envelope: Mapping[str, Any]) -> dict[str, Any] | None:
        """Process one decoded envelope."""
        if self.state == ShellState.UNINITIALIZED:
            self.state = ShellState.READY

        request_id = envelope.get("id", _MISSING)
        reply_id = None if request_id is _MISSING else request_id

        version = envelope.get("protocolVersion", envelope.get("jsonrpc"))
        if version != defaults.PROTOCOL_VERSION:
            return self._reject(request_id, InvalidRequest("Invalid protocol version"))

        method = envelope.get("method")
        if not method:
            if "result" in envelope or "error" in envelope:
                log.debug("Ignoring unsolicited response", extra={"request_id": reply_id})
                return None
            return self._reject(request_id, InvalidRequest("Missing method"))
        if not isinstance(method, str):
            return self._reject(request_id, InvalidRequest("Method must be a string"))

        params = envelope.get("params")
        log.info("Received request: %s", method, extra={"method": method, "request_id": reply_id})

        try:
            if params is None:
                params = {}
            if not isinstance(params, dict):
                raise ValidationError("Params must be an object")
            result = self.route(method, params)
        except RelayError as exc:
            log.warning(
                "Request failed: %s", exc.message,
                extra={"method": method, "request_id": reply_id},
            )
            outcome: dict[str, Any] = {"error": error_payload(exc)}
        except Exception as exc:
            log.exception(
                "Error handling request", extra={"method": method, "request_id": reply_id},
            )
            outcome = {"error": error_payload(exc)}
        else:
            outcome = {"result": result}

        if request_id is _MISSING:
            return None
        return {"protocolVersion": defaults.PROTOCOL_VERSION, **outcome, "id": request_id}

    def _reject(self, request_id: Any, exc: RelayError) -> dict[str, Any] | None:
        """Error reply for a decoded envelope; nothing when it carries no id."""
        if request_id is _MISSING:
            log.warning("Dropping invalid fire-and-forget request: %s", exc.message)
            return None
        return self._error_response(request_id, exc)

    @staticmethod
    def _error_response(request_id: Any, exc: RelayError) -> dict[str, Any]:
        return {
            "protocolVersion": defaults.PROTOCOL_VERSION,
            "error": error_payload(exc),
            "id": request_id,
        }

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def route(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        handler = self._methods.get(method)
        if handler is None:
            raise MethodNotFound(f"Method {method} not supported")
        return handler(params)

    def handle_notify(self, params: dict[str, Any]) -> dict[str, Any]:
        try:
            parsed = NotifyParams.model_validate(params)
        except SchemaError as exc:
            raise ValidationError(f"Invalid params: {describe_errors(exc)}") from exc

        intent = NotificationIntent.from_params(parsed.message, parsed.title, parsed.channels)
        run = dispatch
        if self.dispatch_timeout:
            run = with_timeout(self.dispatch_timeout)(dispatch)
        result = run(intent, self.registry, self.adapters)

        if result.failure == DispatchFailure.NO_CHANNELS_CONFIGURED:
            raise ChannelNotConfigured(result.failure.value, data=result.to_dict())
        return result.to_dict()

    def handle_health(self, params: dict[str, Any]) -> dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": now_iso(),
            "uptime_seconds": round(self._clock() - self._started_at, 3),
            "channels": self.registry.enabled_map(),
        }

    def handle_config(self, params: dict[str, Any]) -> dict[str, Any]:
        channels = {}
        for config in self.registry:
            adapter = self.adapters.get(config.channel_id)
            configured = adapter is not None and not adapter.missing_fields(config)
            channels[config.channel_id] = config.to_public_dict(configured=configured)
        return {"source": self.registry.source, "channels": channels}

    def handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        self.state = ShellState.READY
        return {"initialized": True}
