"""Gateway to the external generation capability."""

import json
import re
import time
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from src.blueprint.core.config import get_settings
from src.blueprint.core.logging import get_logger
from src.blueprint.models.enums import GenerationKind
from src.blueprint.services.errors import MalformedResult, TransportFailure
from src.blueprint.services.prompts import build_analysis_prompt, build_wireframe_prompt

logger = get_logger(__name__)

_FENCED_JSON = re.compile(r"```json\n?([\s\S]*?)\n?```")
_FENCED_ANY = re.compile(r"```\n?([\s\S]*?)\n?```")


@dataclass(frozen=True)
class GenerationResult:
    data: Any
    tokens: int


class GenerationGateway(Protocol):
    async def generate(self, kind: GenerationKind, payload: Any) -> GenerationResult: ...


def extract_json(text: str) -> Any:
    """Parse JSON from model output, preferring a fenced ```json block.

    Raises:
        MalformedResult: If no valid JSON can be read
    """
    match = _FENCED_JSON.search(text) or _FENCED_ANY.search(text)
    candidate = match.group(1) if match else text
    try:
        return json.loads(candidate.strip())
    except json.JSONDecodeError as e:
        raise MalformedResult(f"Generated text is not valid JSON: {e.msg}") from e


def build_prompt(kind: GenerationKind, payload: Any) -> str:
    if kind is GenerationKind.ANALYSIS:
        return build_analysis_prompt(str(payload))
    return build_wireframe_prompt(dict(payload))


class HttpGenerationGateway:
    """GenerationGateway over an Anthropic-style messages endpoint.

    Each call is a single request with no retry. Token cost is the sum of
    input and output tokens reported by the provider.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    async def generate(self, kind: GenerationKind, payload: Any) -> GenerationResult:
        settings = get_settings()
        body = {
            "model": settings.ai_model,
            "max_tokens": settings.ai_max_tokens,
            "messages": [{"role": "user", "content": build_prompt(kind, payload)}],
        }
        headers = {
            "x-api-key": settings.ai_api_key or "",
            "anthropic-version": settings.ai_api_version,
            "content-type": "application/json",
        }

        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(
                base_url=settings.ai_base_url,
                timeout=settings.ai_request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post("/v1/messages", json=body, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportFailure(
                f"Generation provider returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"Generation provider unreachable: {e}") from e
        duration_ms = round((time.perf_counter() - start) * 1000, 2)

        try:
            message = response.json()
        except ValueError as e:
            raise MalformedResult("Generation provider returned a non-JSON body") from e

        text = "".join(
            block.get("text", "")
            for block in message.get("content") or []
            if block.get("type") == "text"
        )
        usage = message.get("usage") or {}
        tokens = int(usage.get("input_tokens", 0)) + int(usage.get("output_tokens", 0))

        logger.info(
            "Generation call completed",
            kind=kind.value,
            model=settings.ai_model,
            tokens=tokens,
            duration_ms=duration_ms,
        )
        return GenerationResult(data=extract_json(text), tokens=tokens)
