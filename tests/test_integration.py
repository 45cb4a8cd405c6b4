"""Integration tests for the proxy"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch

from agent_proxy.api.app import create_app
from agent_proxy.models.config import AppConfig, GatewayConfig, ServerConfig

from conftest import parse_sse


PING = {"messages": [{"role": "user", "content": "ping"}]}


class TestHealthEndpoint:
    """Test health check endpoint"""

    @pytest.mark.parametrize("path", ["/health", "/", "/v1"])
    def test_health_check(self, client, path):
        response = client.get(path)
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "ok"
        assert data["gateway"] == "gateway.test:18800"
        assert data["model"] == "openclaw-agent"
        assert data["uptime"] >= 0
        assert "version" in data


class TestModelsEndpoints:
    """Test model listing endpoints"""

    def test_list_models(self, client):
        response = client.get("/v1/models")
        assert response.status_code == 200

        data = response.json()
        assert data["object"] == "list"
        assert [m["id"] for m in data["data"]] == ["openclaw-agent"]
        assert data["data"][0]["object"] == "model"

    def test_ollama_tags(self, client):
        response = client.get("/api/tags")
        assert response.status_code == 200

        model = response.json()["models"][0]
        assert model["name"] == "openclaw-agent"
        assert model["details"]["format"] == "agent"


class TestChatCompletionsEndpoint:
    """Test OpenAI chat completions"""

    def test_round_trip(self, client, gateway):
        response = client.post("/v1/chat/completions", json=PING)
        assert response.status_code == 200

        data = response.json()
        assert data["object"] == "chat.completion"
        assert data["id"].startswith("chatcmpl-")
        assert data["model"] == "openclaw-agent"
        assert data["choices"][0]["message"] == {"role": "assistant", "content": "pong"}
        assert data["choices"][0]["finish_reason"] == "stop"
        assert data["usage"] == {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2}

    def test_gateway_request(self, client, gateway):
        client.post("/v1/chat/completions", json=PING)

        assert len(gateway.requests) == 1
        request = gateway.requests[0]
        assert request.url.path == "/api/sessions/send"
        assert request.headers["Authorization"] == "Bearer secret"
        assert gateway.last_payload == {
            "message": "ping",
            "label": "proxy-openclaw-agent",
            "timeoutSeconds": 120,
        }

    def test_model_is_echoed_not_routed(self, client, gateway):
        response = client.post(
            "/v1/chat/completions",
            json={"model": "gpt-4", "messages": [{"role": "user", "content": "ping"}]},
        )

        assert response.json()["model"] == "gpt-4"
        assert gateway.last_payload["label"] == "proxy-gpt-4"
        assert len(gateway.requests) == 1

    def test_session_label_from_user(self, client, gateway):
        client.post("/v1/chat/completions", json={**PING, "user": "alice-thread"})
        assert gateway.last_payload["label"] == "alice-thread"

    def test_session_label_from_header(self, client, gateway):
        client.post("/v1/chat/completions", json=PING, headers={"X-Session-Label": "thread-7"})
        assert gateway.last_payload["label"] == "thread-7"

    def test_multi_turn_prompt(self, client, gateway):
        client.post("/v1/chat/completions", json={
            "messages": [
                {"role": "system", "content": "Be terse."},
                {"role": "user", "content": "What is 2+2?"},
                {"role": "assistant", "content": "4"},
                {"role": "user", "content": [
                    {"type": "text", "text": "And 3+3?"},
                    {"type": "image_url", "image_url": {"url": "http://example.com/a.png"}},
                ]},
            ]
        })

        assert gateway.last_payload["message"] == (
            "[System] Be terse.\n\nWhat is 2+2?\n\n[Assistant] 4\n\nAnd 3+3?"
        )

    def test_untyped_content_parts_are_ignored(self, client, gateway):
        response = client.post("/v1/chat/completions", json={
            "messages": [{"role": "user", "content": [
                {"type": "text", "text": "hi"},
                {"image_url": {"url": "x"}},
                "raw",
            ]}]
        })

        assert response.status_code == 200
        assert gateway.last_payload["message"] == "hi"

    def test_null_role_is_user(self, client, gateway):
        response = client.post("/v1/chat/completions", json={
            "messages": [{"role": None, "content": "hi"}]
        })

        assert response.status_code == 200
        assert gateway.last_payload["message"] == "hi"

    def test_identical_requests_differ_only_in_id_and_time(self, client):

        first = client.post("/v1/chat/completions", json=PING).json()
        second = client.post("/v1/chat/completions", json=PING).json()

        assert first["id"] != second["id"]
        for body in (first, second):
            body.pop("id")
            body.pop("created")
        assert first == second

    def test_reply_fallback_serializes_document(self, client, gateway):
        gateway.body = {"status": "ok", "result": 3}

        content = client.post("/v1/chat/completions", json=PING).json()["choices"][0]["message"]["content"]

        assert json.loads(content) == {"status": "ok", "result": 3}


class TestChatCompletionsStreaming:
    """Test OpenAI SSE streaming"""

    def test_stream_reassembles_reply(self, client, gateway):
        gateway.body = {"reply": "Hello there, this reply arrives in pieces."}

        response = client.post("/v1/chat/completions", json={**PING, "stream": True})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse(response.text)
        assert events[-1] == "[DONE]"
        chunks = [json.loads(e) for e in events[:-1]]
        assert chunks[-1]["choices"][0]["finish_reason"] == "stop"
        assert chunks[-1]["choices"][0]["delta"] == {}
        content = "".join(c["choices"][0]["delta"]["content"] for c in chunks[:-1])
        assert content == "Hello there, this reply arrives in pieces."
        assert all(c["choices"][0]["finish_reason"] is None for c in chunks[:-1])
        assert len({c["id"] for c in chunks}) == 1

    def test_stream_gateway_failure_terminates_cleanly(self, client, gateway):
        gateway.status = 500
        gateway.text = "kaboom"

        response = client.post("/v1/chat/completions", json={**PING, "stream": True})

        assert response.status_code == 200
        events = parse_sse(response.text)
        assert events[-1] == "[DONE]"
        chunks = [json.loads(e) for e in events[:-1]]
        assert len(chunks) == 2
        assert chunks[0]["choices"][0]["delta"]["content"] == "Error: Gateway returned 500: kaboom"
        assert chunks[1]["choices"][0]["finish_reason"] == "stop"

    def test_stream_gateway_unreachable(self, client, gateway):
        gateway.exception = httpx.ConnectError("refused")

        events = parse_sse(client.post("/v1/chat/completions", json={**PING, "stream": True}).text)

        assert json.loads(events[0])["choices"][0]["delta"]["content"] == "Error: Gateway is unavailable"
        assert events[-1] == "[DONE]"


class TestOllamaChat:
    """Test Ollama chat endpoint"""

    def test_prompt_shape(self, client, gateway):
        response = client.post("/api/chat", json={"model": "llama3", "prompt": "hi"})

        assert response.status_code == 200
        data = response.json()
        assert data["model"] == "llama3"
        assert data["message"] == {"role": "assistant", "content": "pong"}
        assert data["done"] is True
        assert data["done_reason"] == "stop"
        assert gateway.last_payload["message"] == "hi"

    def test_prompt_and_messages_are_equivalent(self, client, gateway):
        client.post("/api/chat", json={"prompt": "hi"})
        from_prompt = gateway.last_payload["message"]
        client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})
        from_messages = gateway.last_payload["message"]

        assert from_prompt == from_messages == "hi"

    def test_prompt_appended_to_messages(self, client, gateway):
        client.post("/api/chat", json={
            "messages": [{"role": "system", "content": "ctx"}],
            "prompt": "question",
        })

        assert gateway.last_payload["message"] == "[System] ctx\n\nquestion"

    def test_stream_ends_with_sentinel(self, client, gateway):
        gateway.body = {"message": "Ollama streams end like OpenAI ones."}

        response = client.post("/api/chat", json={"prompt": "hi", "stream": True})

        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse(response.text)
        assert events[-1] == "[DONE]"
        records = [json.loads(e) for e in events[:-1]]
        assert records[-1]["done"] is True
        assert all(r["done"] is False for r in records[:-1])
        content = "".join(r["message"]["content"] for r in records[:-1])
        assert content == "Ollama streams end like OpenAI ones."

    def test_stream_failure_counts_no_reply_tokens(self, client, gateway):
        gateway.exception = httpx.ConnectError("refused")

        events = parse_sse(client.post("/api/chat", json={"prompt": "hi", "stream": True}).text)

        assert json.loads(events[0])["message"]["content"] == "Error: Gateway is unavailable"
        assert json.loads(events[-2])["eval_count"] == 0
        assert events[-1] == "[DONE]"


    def test_missing_input(self, client, gateway):
        response = client.post("/api/chat", json={"model": "llama3"})

        assert response.status_code == 400
        assert response.json() == {"error": "messages or prompt is required"}
        assert gateway.requests == []

    def test_gateway_failure_shape(self, client, gateway):
        gateway.status = 503
        gateway.text = "busy"

        response = client.post("/api/chat", json={"prompt": "hi"})

        assert response.status_code == 502
        assert response.json() == {"error": "Gateway returned 503: busy"}


class TestErrorHandling:
    """Test error handling"""

    def test_missing_messages(self, client, gateway):
        response = client.post("/v1/chat/completions", json={"model": "gpt-4"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["type"] == "invalid_request_error"
        assert error["param"] is None
        assert error["code"] is None
        assert gateway.requests == []

    def test_empty_messages(self, client, gateway):
        response = client.post("/v1/chat/completions", json={"messages": []})

        assert response.status_code == 400
        assert gateway.requests == []

    def test_invalid_json(self, client, gateway):
        response = client.post(
            "/v1/chat/completions",
            content="invalid json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Request body is not valid JSON"
        assert gateway.requests == []

    def test_non_object_json(self, client):
        response = client.post("/v1/chat/completions", json=[PING])
        assert response.status_code == 400

    def test_oversized_body_rejected_before_parsing(self, gateway):
        config = AppConfig(
            server=ServerConfig(max_body_bytes=256),
            gateway=GatewayConfig(host="gateway.test"),
        )
        app = create_app(config, transport=httpx.MockTransport(gateway))
        big = {"messages": [{"role": "user", "content": "x" * 1000}]}

        with TestClient(app) as client:
            with patch("agent_proxy.api.endpoints.decode_json") as mock_decode:
                response = client.post("/v1/chat/completions", json=big)

        assert response.status_code == 413
        assert response.json()["error"]["type"] == "invalid_request_error"
        mock_decode.assert_not_called()
        assert gateway.requests == []

    def test_unknown_openai_path(self, client):
        response = client.get("/v1/nothing")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["message"] == "Unknown endpoint: GET /v1/nothing"
        assert error["type"] == "invalid_request_error"

    def test_unknown_ollama_path(self, client):
        response = client.post("/api/generate", json={"prompt": "hi"})

        assert response.status_code == 404
        assert response.json() == {"error": "Unknown endpoint: POST /api/generate"}

    def test_wrong_method_is_not_found(self, client):
        response = client.get("/v1/chat/completions")

        assert response.status_code == 404
        assert "error" in response.json()

    def test_gateway_500_is_rejected_not_passed_through(self, client, gateway):
        gateway.status = 500
        gateway.text = "Traceback (most recent call last): " + "frame\n" * 500

        response = client.post("/v1/chat/completions", json=PING)

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["type"] == "api_error"
        assert error["message"].startswith("Gateway returned 500: ")
        assert len(error["message"]) < 300

    def test_gateway_unreachable(self, client, gateway):
        gateway.exception = httpx.ConnectError("refused")

        response = client.post("/v1/chat/completions", json=PING)

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["type"] == "upstream_unavailable"
        assert "gateway.test" not in error["message"]

    def test_gateway_timeout(self, client, gateway):
        gateway.exception = httpx.ReadTimeout("slow")

        response = client.post("/v1/chat/completions", json=PING)

        assert response.status_code == 504
        assert response.json()["error"]["type"] == "upstream_unavailable"

    def test_internal_fault_is_contained(self, client):
        with patch(
            "agent_proxy.api.endpoints.build_envelope",
            side_effect=RuntimeError("boom at 10.1.2.3"),
        ):
            response = client.post("/v1/chat/completions", json=PING)

        assert response.status_code == 500
        assert response.json()["error"] == {
            "message": "Internal server error",
            "type": "server_error",
            "param": None,
            "code": None,
        }
        assert "10.1.2.3" not in response.text

        # the next request is unaffected
        assert client.post("/v1/chat/completions", json=PING).status_code == 200


class TestCors:
    """Test cross-origin handling"""

    def test_preflight(self, client, gateway):
        response = client.options(
            "/v1/chat/completions",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status_code == 204
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]
        assert gateway.requests == []

    def test_preflight_on_unknown_path(self, client):
        response = client.options("/anything")
        assert response.status_code == 204

    def test_cross_origin_response_headers(self, client):
        response = client.get("/v1/models", headers={"Origin": "http://example.com"})
        assert response.headers["access-control-allow-origin"] == "*"

    def test_cross_origin_error_headers(self, client):
        response = client.get("/v1/missing", headers={"Origin": "http://example.com"})

        assert response.status_code == 404
        assert response.headers["access-control-allow-origin"] == "*"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
