"""Tests for the HTTP generation gateway and JSON extraction."""

import json

import httpx
import pytest

from src.blueprint.core.config import get_settings
from src.blueprint.models.enums import GenerationKind
from src.blueprint.services.errors import MalformedResult, TransportFailure
from src.blueprint.services.generation import HttpGenerationGateway, build_prompt, extract_json

pytestmark = pytest.mark.unit


def _message(text: str, input_tokens: int = 120, output_tokens: int = 380) -> dict:
    return {
        "id": "msg_1",
        "type": "message",
        "content": [{"type": "text", "text": text}],
        "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
    }


def _gateway(handler) -> HttpGenerationGateway:
    return HttpGenerationGateway(transport=httpx.MockTransport(handler))


class TestExtractJson:
    def test_prefers_json_fence(self):
        text = 'Here you go:\n```json\n{"appName": "Farm Market"}\n```\nEnjoy.'
        assert extract_json(text) == {"appName": "Farm Market"}

    def test_accepts_plain_fence(self):
        assert extract_json('```\n{"layout": "column"}\n```') == {"layout": "column"}

    def test_accepts_bare_json(self):
        assert extract_json('  {"features": []}  ') == {"features": []}

    def test_rejects_prose(self):
        with pytest.raises(MalformedResult):
            extract_json("Sorry, I cannot help with that.")

    def test_rejects_broken_fenced_json(self):
        with pytest.raises(MalformedResult):
            extract_json('```json\n{"appName": \n```')


class TestBuildPrompt:
    def test_analysis_prompt_embeds_description(self):
        prompt = build_prompt(GenerationKind.ANALYSIS, "A marketplace for local farmers")
        assert "A marketplace for local farmers" in prompt

    def test_wireframe_prompt_embeds_screen(self):
        prompt = build_prompt(
            GenerationKind.WIREFRAME,
            {
                "screen_name": "Checkout",
                "screen_type": "FORM",
                "description": "A marketplace for local farmers",
                "feature_names": ["Cart", "Payments"],
            },
        )
        assert "Checkout" in prompt
        assert "Payments" in prompt


class TestHttpGenerationGateway:
    async def test_returns_parsed_data_and_token_sum(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json=_message('```json\n{"appName": "Farm Market", "features": []}\n```')
            )

        result = await _gateway(handler).generate(GenerationKind.ANALYSIS, "Farm marketplace")

        assert result.data == {"appName": "Farm Market", "features": []}
        assert result.tokens == 500

    async def test_request_shape(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_message("{}"))

        await _gateway(handler).generate(GenerationKind.ANALYSIS, "Farm marketplace")

        request = seen[0]
        settings = get_settings()
        body = json.loads(request.content)
        assert request.method == "POST"
        assert request.url.path == "/v1/messages"
        assert request.headers["anthropic-version"] == settings.ai_api_version
        assert body["model"] == settings.ai_model
        assert body["max_tokens"] == settings.ai_max_tokens
        assert body["messages"][0]["role"] == "user"
        assert "Farm marketplace" in body["messages"][0]["content"]

    async def test_concatenates_text_blocks(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "content": [
                        {"type": "text", "text": '{"layout": '},
                        {"type": "tool_use", "id": "t1"},
                        {"type": "text", "text": '"row"}'},
                    ],
                    "usage": {"input_tokens": 1, "output_tokens": 2},
                },
            )

        result = await _gateway(handler).generate(GenerationKind.ANALYSIS, "x" * 20)

        assert result.data == {"layout": "row"}
        assert result.tokens == 3

    async def test_missing_usage_counts_zero(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"content": [{"type": "text", "text": "{}"}]})

        result = await _gateway(handler).generate(GenerationKind.ANALYSIS, "x" * 20)

        assert result.tokens == 0

    @pytest.mark.parametrize("status_code", [400, 401, 429, 500, 529])
    async def test_error_status_is_transport_failure(self, status_code: int):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json={"error": {"type": "api_error"}})

        with pytest.raises(TransportFailure) as exc_info:
            await _gateway(handler).generate(GenerationKind.ANALYSIS, "x" * 20)
        assert str(status_code) in str(exc_info.value)

    async def test_network_error_is_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportFailure):
            await _gateway(handler).generate(GenerationKind.ANALYSIS, "x" * 20)

    async def test_non_json_body_is_malformed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>Bad gateway</html>")

        with pytest.raises(MalformedResult):
            await _gateway(handler).generate(GenerationKind.ANALYSIS, "x" * 20)

    async def test_unparseable_text_is_malformed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_message("I could not design this app."))

        with pytest.raises(MalformedResult):
            await _gateway(handler).generate(GenerationKind.ANALYSIS, "x" * 20)
