"""Unit tests for the generative model gateway client.

Uses httpx.MockTransport; no network access.
"""

import json

import httpx
import pytest

from cement_ops.clients.gemini import ChatMessage, GeminiClient, create_gemini_client
from cement_ops.clients.protocols import ChatModelProtocol, ModelGatewayProtocol
from cement_ops.core.exceptions import ModelTransportError


def envelope(text: str) -> dict:
    return {
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}
        ]
    }


def make_client(handler) -> GeminiClient:
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url="https://generativelanguage.test/v1beta",
    )
    return GeminiClient(api_key="secret", model="gemini-1.5-flash", http_client=http_client)


class TestGeminiClientProtocols:
    def test_implements_gateway_protocols(self) -> None:
        client = GeminiClient(api_key=None)

        assert isinstance(client, ModelGatewayProtocol)
        assert isinstance(client, ChatModelProtocol)


class TestGenerate:
    @pytest.mark.asyncio
    async def test_posts_prompt_and_returns_text(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=envelope('{"issues": []}'))

        client = make_client(handler)

        text = await client.generate("Return JSON ONLY")

        assert text == '{"issues": []}'
        request = seen[0]
        assert request.url.path == "/v1beta/models/gemini-1.5-flash:generateContent"
        assert request.url.params["key"] == "secret"
        body = json.loads(request.content)
        assert body == {"contents": [{"role": "user", "parts": [{"text": "Return JSON ONLY"}]}]}

    @pytest.mark.asyncio
    async def test_joins_multiple_parts(self) -> None:
        payload = {"candidates": [{"content": {"parts": [{"text": "{\"a\":"}, {"text": " 1}"}]}}]}
        client = make_client(lambda request: httpx.Response(200, json=payload))

        assert await client.generate("x") == '{"a": 1}'

    @pytest.mark.asyncio
    async def test_http_error_raises_transport_error(self) -> None:
        client = make_client(lambda request: httpx.Response(503, json={"error": "overloaded"}))

        with pytest.raises(ModelTransportError) as exc_info:
            await client.generate("x")

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_timeout_raises_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)

        with pytest.raises(ModelTransportError, match="timed out"):
            await client.generate("x")

    @pytest.mark.asyncio
    async def test_no_candidates_raises_transport_error(self) -> None:
        client = make_client(lambda request: httpx.Response(200, json={"candidates": []}))

        with pytest.raises(ModelTransportError, match="no candidate text"):
            await client.generate("x")

    @pytest.mark.asyncio
    async def test_non_json_body_raises_transport_error(self) -> None:
        client = make_client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(ModelTransportError):
            await client.generate("x")

    @pytest.mark.asyncio
    async def test_unexpected_envelope_raises_transport_error(self) -> None:
        client = make_client(lambda request: httpx.Response(200, json={"candidates": "nope"}))

        with pytest.raises(ModelTransportError, match="unexpected shape"):
            await client.generate("x")


class TestChat:
    @pytest.mark.asyncio
    async def test_maps_assistant_role_to_model(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=envelope("All good."))

        client = make_client(handler)

        reply = await client.chat(
            [
                ChatMessage(role="user", content="context"),
                ChatMessage(role="assistant", content="Understood."),
                ChatMessage(role="user", content="How is the kiln?"),
            ]
        )

        assert reply == "All good."
        assert [turn["role"] for turn in bodies[0]["contents"]] == ["user", "model", "user"]


class TestFactory:
    def test_create_from_settings(self, test_settings) -> None:
        client = create_gemini_client(test_settings)

        assert client.model == test_settings.gemini_model
        assert client.timeout == test_settings.llm_timeout_seconds

    @pytest.mark.asyncio
    async def test_close_releases_client(self) -> None:
        client = make_client(lambda request: httpx.Response(200, json=envelope("x")))

        await client.close()

        assert client._client is None
