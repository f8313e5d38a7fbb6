"""Tests for the stdio protocol shell."""

import io
import json

import pytest

from conftest import SpyAdapter, make_registry
from notify_relay import defaults
from notify_relay.errors import (
    CONFIGURATION_ERROR,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
)
from notify_relay.protocol import ProtocolHandler, ShellState


def _request(method, params=None, request_id=1, **extra):
    envelope = {"protocolVersion": "2.0", "method": method, "id": request_id, **extra}
    if params is not None:
        envelope["params"] = params
    return envelope


def _serve(handler, *lines):
    stdin = io.StringIO("".join(
        (line if isinstance(line, str) else json.dumps(line)) + "\n" for line in lines
    ))
    stdout = io.StringIO()
    assert handler.serve(stdin, stdout) == 0
    return [json.loads(out) for out in stdout.getvalue().splitlines()]


@pytest.fixture
def handler(all_enabled, spies):
    return ProtocolHandler(all_enabled, spies)


class TestServeLoop:
    def test_announcement_is_first_line(self, handler):
        out = _serve(handler)

        assert len(out) == 1
        assert out[0]["method"] == "initialize"
        assert "id" not in out[0]
        assert out[0]["params"]["capabilities"]["channels"] == ["slack", "line", "feishu"]
        assert handler.state == ShellState.READY

    def test_parse_error_then_loop_continues(self, handler):
        out = _serve(handler, "{not json", _request("health", request_id=7))

        assert out[1] == {
            "protocolVersion": "2.0",
            "error": {"code": PARSE_ERROR, "message": "Invalid JSON input"},
            "id": None,
        }
        assert out[2]["id"] == 7
        assert out[2]["result"]["status"] == "healthy"

    def test_blank_lines_are_skipped(self, handler):
        out = _serve(handler, "", "   ", _request("health"))
        assert len(out) == 2

    def test_one_response_per_request_in_order(self, handler):
        out = _serve(handler, _request("health", request_id="a"), _request("config", request_id="b"))
        assert [o["id"] for o in out[1:]] == ["a", "b"]

    def test_undecodable_bytes_are_a_parse_error(self, handler):
        health = json.dumps(_request("health", request_id=2)).encode()
        stdin = io.TextIOWrapper(io.BytesIO(b"\xff\xfe{bad\n" + health + b"\n"), encoding="utf-8")
        stdout = io.StringIO()

        assert handler.serve(stdin, stdout) == 0

        out = [json.loads(line) for line in stdout.getvalue().splitlines()]
        assert out[1]["error"]["code"] == PARSE_ERROR
        assert out[1]["id"] is None
        assert out[2]["id"] == 2
        assert out[2]["result"]["status"] == "healthy"

    def test_utf8_text_read_from_binary_stream(self, handler, spies):
        notify = _request("notify", {"message": "デプロイ完了", "channels": ["line"]})
        stdin = io.TextIOWrapper(
            io.BytesIO(json.dumps(notify, ensure_ascii=False).encode() + b"\n"), encoding="utf-8",
        )
        stdout = io.StringIO()

        handler.serve(stdin, stdout)

        assert spies["line"].calls[0]["message"] == "デプロイ完了"

    def test_deeply_nested_input_is_a_parse_error(self, handler):
        out = _serve(handler, "[" * 100000 + "]" * 100000, _request("health", request_id=3))

        assert out[1]["error"]["code"] == PARSE_ERROR
        assert out[2]["id"] == 3
        assert "result" in out[2]

    def test_error_escaping_a_line_does_not_stop_the_loop(self, handler, monkeypatch):
        real_handle_line = handler.handle_line
        lines = iter(["fail"])

        def flaky(line):
            if next(lines, None) == "fail":
                raise RuntimeError("boom")
            return real_handle_line(line)

        monkeypatch.setattr(handler, "handle_line", flaky)
        out = _serve(handler, _request("health", request_id=1), _request("health", request_id=2))

        assert out[1]["error"] == {"code": INTERNAL_ERROR, "message": "Internal error"}
        assert out[1]["id"] is None
        assert out[2]["id"] == 2

    def test_internal_error_does_not_stop_the_loop(self, all_enabled, spies):
        handler = ProtocolHandler(all_enabled, spies)

        def explode(params):
            raise KeyError("boom")

        handler._methods["health"] = explode
        out = _serve(handler, _request("health", request_id=1), _request("config", request_id=2))

        assert out[1]["error"] == {"code": INTERNAL_ERROR, "message": "Internal error"}
        assert "result" in out[2]


class TestEnvelope:
    def test_unknown_method(self, handler):
        response = handler.handle_request(_request("unknown_method", request_id=3))
        assert response["error"]["code"] == METHOD_NOT_FOUND
        assert response["error"]["message"] == "Method unknown_method not supported"
        assert response["id"] == 3

    def test_non_object_line(self, handler):
        response = handler.handle_line("[1, 2]")
        assert response["error"]["code"] == INVALID_REQUEST
        assert response["id"] is None

    def test_wrong_version(self, handler):
        response = handler.handle_request(
            {"protocolVersion": "1.0", "method": "health", "id": 4}
        )
        assert response["error"]["code"] == INVALID_REQUEST
        assert response["id"] == 4

    def test_jsonrpc_key_accepted(self, handler):
        response = handler.handle_request({"jsonrpc": "2.0", "method": "health", "id": 5})
        assert response["result"]["status"] == "healthy"
        assert response["protocolVersion"] == "2.0"

    def test_missing_method(self, handler):
        response = handler.handle_request({"protocolVersion": "2.0", "id": 6})
        assert response["error"]["code"] == INVALID_REQUEST

    @pytest.mark.parametrize("envelope", [
        {"protocolVersion": "1.0", "method": "health"},
        {"protocolVersion": "2.0"},
        {"protocolVersion": "2.0", "method": 5},
    ])
    def test_invalid_request_without_id_gets_no_reply(self, handler, envelope):
        assert handler.handle_request(envelope) is None

    def test_unsolicited_response_ignored(self, handler):
        assert handler.handle_request({"protocolVersion": "2.0", "result": {}, "id": 9}) is None

    def test_params_must_be_an_object(self, handler):
        response = handler.handle_request(_request("notify", params=["hi"]))
        assert response["error"]["code"] == INVALID_PARAMS

    def test_id_echoed_verbatim(self, handler):
        response = handler.handle_request(_request("health", request_id={"n": 1}))
        assert response["id"] == {"n": 1}

    def test_null_id_still_gets_a_response(self, handler):
        response = handler.handle_request(_request("health", request_id=None))
        assert response["id"] is None
        assert "result" in response


class TestNotify:
    def test_success_result_shape(self, handler, spies):
        response = handler.handle_request(
            _request("notify", {"message": "Deploy done", "title": "CI", "channels": ["slack"]})
        )

        result = response["result"]
        assert result["status"] == "success"
        assert result["channels_notified"] == ["slack"]
        assert result["details"] == {"slack": {"status": "success"}}
        assert "timestamp" in result
        assert "error" not in result
        assert spies["slack"].calls[0]["title"] == "CI"

    def test_fire_and_forget_still_sends(self, handler, spies):
        envelope = {"protocolVersion": "2.0", "method": "notify", "params": {"message": "x"}}

        assert handler.handle_request(envelope) is None
        assert all(len(spy.calls) == 1 for spy in spies.values())

    def test_fire_and_forget_error_is_silent(self, handler):
        envelope = {"protocolVersion": "2.0", "method": "notify", "params": {"message": ""}}
        assert handler.handle_request(envelope) is None

    @pytest.mark.parametrize("params", [
        {},
        {"message": ""},
        {"message": "   "},
        {"message": 42},
        {"message": "hi", "channels": 3},
    ])
    def test_invalid_params(self, handler, spies, params):
        response = handler.handle_request(_request("notify", params))

        assert response["error"]["code"] == INVALID_PARAMS
        assert all(not spy.calls for spy in spies.values())

    def test_single_channel_string_accepted(self, handler):
        response = handler.handle_request(_request("notify", {"message": "hi", "channels": "line"}))
        assert response["result"]["channels_notified"] == ["line"]

    def test_priority_is_ignored(self, handler):
        response = handler.handle_request(
            _request("notify", {"message": "hi", "priority": "high", "channels": ["slack"]})
        )
        assert response["result"]["status"] == "success"

    def test_no_configured_channel_is_a_configuration_error(self, handler, spies):
        response = handler.handle_request(
            _request("notify", {"message": "hi", "channels": ["nonexistent"]})
        )

        error = response["error"]
        assert error["code"] == CONFIGURATION_ERROR
        assert error["message"] == "No channels configured"
        assert error["data"]["channels_notified"] == []
        assert error["data"]["status"] == "error"

    def test_all_channels_failed_is_a_result(self, all_enabled):
        adapters = {
            cid: SpyAdapter(cid, error=RuntimeError("down")) for cid in defaults.CANONICAL_CHANNELS
        }
        handler = ProtocolHandler(all_enabled, adapters)

        response = handler.handle_request(_request("notify", {"message": "hi"}))

        result = response["result"]
        assert result["status"] == "error"
        assert result["error"] == "All channels failed"
        assert result["details"]["line"] == {"status": "error", "error": "down"}

    def test_dispatch_timeout(self, all_enabled):
        adapters = {"slack": SpyAdapter("slack", delay=0.5)}
        handler = ProtocolHandler(all_enabled, adapters, dispatch_timeout=0.05)

        response = handler.handle_request(_request("notify", {"message": "hi", "channels": ["slack"]}))

        assert response["error"]["code"] == INTERNAL_ERROR
        assert "timeout" in response["error"]["message"]


class TestHealthAndConfig:
    def test_health_uses_clock(self, spies):
        ticks = iter([100.0, 112.5])
        registry = make_registry({"slack": True, "line": False})
        handler = ProtocolHandler(registry, spies, clock=lambda: next(ticks))

        result = handler.handle_request(_request("health"))["result"]

        assert result["status"] == "healthy"
        assert result["uptime_seconds"] == 12.5
        assert result["channels"] == {"slack": True, "line": False}

    def test_config_never_exposes_credentials(self, spies):
        registry = make_registry(
            {"slack": True, "line": True, "feishu": False},
            credentials={"slack": {"token": "xoxb-secret"}, "line": {}},
        )
        handler = ProtocolHandler(registry, spies)

        response = handler.handle_request(_request("config"))

        result = response["result"]
        assert result["source"] == "test"
        assert result["channels"]["slack"] == {"enabled": True, "configured": True}
        assert result["channels"]["line"] == {"enabled": True, "configured": False}
        assert result["channels"]["feishu"] == {"enabled": False, "configured": True}
        assert "xoxb-secret" not in json.dumps(response)

    def test_initialize_request(self, handler):
        response = handler.handle_request(_request("initialize"))
        assert response["result"] == {"initialized": True}
        assert handler.state == ShellState.READY
