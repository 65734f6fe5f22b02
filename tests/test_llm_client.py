"""
Tests for the generation client, rate limiter and LLM manager
"""

import json

import httpx
import pytest
from conftest import StaticConfig

from companion_backend.core.exceptions import LLMUnavailableError
from companion_backend.llm.client import OllamaClient, RateLimiter
from companion_backend.llm.manager import LLMManager


class FakeOllama:
    def __init__(self, generate_response=None, status=200):
        self.generate_response = generate_response if generate_response is not None else {
            "response": '{"current_state": "productive"}'
        }
        self.status = status
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))

        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": [{"name": "mistral:latest"}, {"name": "llama3"}]})
        if request.url.path == "/api/generate":
            if body and "keep_alive" in body:
                return httpx.Response(200, json={"done": True})
            return httpx.Response(self.status, json=self.generate_response)
        return httpx.Response(404)

    def client(self, **kwargs) -> OllamaClient:
        kwargs.setdefault("min_call_interval", 0)
        return OllamaClient(transport=httpx.MockTransport(self.handler), **kwargs)


@pytest.mark.asyncio
async def test_generate_sends_non_streaming_request():
    server = FakeOllama()
    client = server.client(model="mistral", temperature=0.2, num_predict=120, keep_model_loaded=True)

    text = await client.generate("How focused am I?", system="Reply in JSON")

    assert text == '{"current_state": "productive"}'
    assert len(server.requests) == 1
    method, path, body = server.requests[0]
    assert (method, path) == ("POST", "/api/generate")
    assert body["model"] == "mistral"
    assert body["prompt"] == "How focused am I?"
    assert body["system"] == "Reply in JSON"
    assert body["stream"] is False
    assert body["options"]["temperature"] == 0.2
    assert body["options"]["num_predict"] == 120
    await client.aclose()


@pytest.mark.asyncio
async def test_generate_unloads_model_afterwards():
    server = FakeOllama()
    client = server.client(model="llama3")

    await client.generate("prompt")
    await client.aclose()

    assert server.requests[-1] == ("POST", "/api/generate", {"model": "llama3", "keep_alive": 0})


@pytest.mark.asyncio
async def test_error_status_raises():
    client = FakeOllama(status=500).client(keep_model_loaded=True)
    with pytest.raises(LLMUnavailableError):
        await client.generate("prompt")


@pytest.mark.asyncio
async def test_payload_without_response_raises():
    client = FakeOllama(generate_response={"error": "model not found"}).client(keep_model_loaded=True)
    with pytest.raises(LLMUnavailableError):
        await client.generate("prompt")


@pytest.mark.asyncio
async def test_transport_errors_raise():
    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    for handler in (timeout, refuse):
        client = OllamaClient(transport=httpx.MockTransport(handler), min_call_interval=0)
        with pytest.raises(LLMUnavailableError):
            await client.generate("prompt")


@pytest.mark.asyncio
async def test_list_models_and_health():
    client = FakeOllama().client(model="mistral")

    assert await client.list_models() == ["mistral:latest", "llama3"]
    health = await client.health_check()
    assert health["available"] is True
    assert health["model"] == "mistral"


@pytest.mark.asyncio
async def test_health_check_unreachable():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = OllamaClient(transport=httpx.MockTransport(refuse))
    health = await client.health_check()

    assert health["available"] is False
    assert "connection refused" in health["error"]
    with pytest.raises(LLMUnavailableError):
        await client.list_models()


@pytest.mark.asyncio
async def test_rate_limiter_spaces_calls():
    limiter = RateLimiter(min_interval=0.05)

    assert await limiter.acquire() == 0.0
    waited = await limiter.acquire()

    assert 0.0 < waited <= 0.05


def test_client_from_config():
    client = OllamaClient.from_config(
        StaticConfig({"llm": {"host": "gpu-box", "port": 11500, "model": "llama3", "keep_model_loaded": True}})
    )

    assert client.base_url == "http://gpu-box:11500"
    assert client.model == "llama3"
    assert client.keep_model_loaded is True


class TestLLMManager:
    @pytest.mark.asyncio
    async def test_disabled_manager(self):
        manager = LLMManager(client=FakeOllama().client(), enabled=False)

        with pytest.raises(LLMUnavailableError):
            await manager.generate("prompt")
        health = await manager.health_check()
        assert health == {"available": False, "latency_ms": 0, "error": "LLM disabled"}

    @pytest.mark.asyncio
    async def test_enabled_flag_read_from_config(self):
        manager = LLMManager(client=FakeOllama().client(), config=StaticConfig({"llm": {"enabled": False}}))
        assert manager.enabled is False

    @pytest.mark.asyncio
    async def test_generate_through_manager(self):
        server = FakeOllama()
        manager = LLMManager(client=server.client(keep_model_loaded=True), enabled=True)

        assert await manager.generate("prompt") == '{"current_state": "productive"}'
        assert manager.get_active_model_info() == {
            "model": "mistral",
            "base_url": "http://localhost:11434",
        }
        await manager.aclose()

    @pytest.mark.asyncio
    async def test_force_reload_rebuilds_client_from_config(self):
        manager = LLMManager(
            client=FakeOllama().client(),
            config=StaticConfig({"llm": {"model": "llama3"}}),
        )

        await manager.force_reload()

        assert manager.get_active_model_info()["model"] == "llama3"
