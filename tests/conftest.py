"""Shared fixtures"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from agent_proxy.api.app import create_app
from agent_proxy.models.config import AppConfig, GatewayConfig


class FakeGateway:
    """Scripted agent gateway for httpx.MockTransport"""

    def __init__(self):
        self.requests = []
        self.status = 200
        self.body = {"reply": "pong"}
        self.text = None
        self.exception = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exception is not None:
            raise self.exception
        if self.text is not None:
            return httpx.Response(self.status, text=self.text)
        return httpx.Response(self.status, json=self.body)

    @property
    def last_payload(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def config():
    """Test configuration"""
    return AppConfig(gateway=GatewayConfig(host="gateway.test", token="secret"))


@pytest.fixture
def gateway():
    """Fake gateway answering {"reply": "pong"} by default"""
    return FakeGateway()


@pytest.fixture
def client(config, gateway):
    """Create a test client wired to the fake gateway"""
    app = create_app(config, transport=httpx.MockTransport(gateway))
    with TestClient(app) as test_client:
        yield test_client


def parse_sse(text: str):
    """Split an SSE body into its data payloads"""
    return [
        block[len("data: "):]
        for block in text.split("\n\n")
        if block.startswith("data: ")
    ]
