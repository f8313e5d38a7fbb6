"""Error taxonomy and the RPC error-code table.

Per-channel failures are recorded as data by the dispatch core; the classes
here are what crosses the protocol boundary.
"""

from __future__ import annotations

from typing import Any

# --- RPC error codes ---
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
CONFIGURATION_ERROR = -32000


class RelayError(Exception):
    """Base class. ``code`` is the RPC error code used on the wire."""

    code = INTERNAL_ERROR

    def __init__(self, message: str, *, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data


class ValidationError(RelayError):
    """Missing or malformed required field; dispatch is not attempted."""

    code = INVALID_PARAMS


class ChannelNotConfigured(RelayError):
    code = CONFIGURATION_ERROR


class BackendTransportError(RelayError):
    """An adapter's network or API call failed."""

    def __init__(self, channel_id: str, message: str, *, data: Any = None) -> None:
        super().__init__(message, data=data)
        self.channel_id = channel_id


class ProtocolDecodeError(RelayError):
    code = PARSE_ERROR


class InvalidRequest(RelayError):
    code = INVALID_REQUEST


class MethodNotFound(RelayError):
    code = METHOD_NOT_FOUND


class InternalError(RelayError):
    code = INTERNAL_ERROR


def error_payload(exc: BaseException) -> dict[str, Any]:
    """Map an exception to the ``error`` member of a response."""
    if isinstance(exc, RelayError):
        payload: dict[str, Any] = {"code": exc.code, "message": exc.message}
        if exc.data is not None:
            payload["data"] = exc.data
        return payload
    return {"code": INTERNAL_ERROR, "message": "Internal error"}
