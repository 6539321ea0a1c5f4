"""Generative model gateway client.

HTTP client for the generative language REST API (generateContent).
It is the only place the service talks to the model: the proposal pipeline
and the plant advisor both depend on ``generate()`` through
ModelGatewayProtocol.

The client owns no state beyond its lazily created httpx.AsyncClient and
never caches responses; every call is a fresh request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

import httpx
from pydantic import BaseModel, Field, ValidationError

from cement_ops.core.exceptions import ModelTransportError
from cement_ops.core.logging import get_logger


if TYPE_CHECKING:
    from cement_ops.core.config import Settings


logger = get_logger(__name__)


# =============================================================================
# Request/Response Models
# =============================================================================

class ChatMessage(BaseModel):
    """One turn of an operations chat."""

    role: Literal["user", "assistant"] = Field(..., description="Message author")
    content: str = Field(..., description="Message text")


class ContentPart(BaseModel):
    text: str = ""


class Content(BaseModel):
    role: str = "user"
    parts: list[ContentPart] = Field(default_factory=list)


class Candidate(BaseModel):
    content: Content | None = None
    finish_reason: str | None = Field(default=None, alias="finishReason")


class GenerateContentResponse(BaseModel):
    """Subset of the generateContent response the service reads."""

    candidates: list[Candidate] = Field(default_factory=list)

    def first_text(self) -> str | None:
        for candidate in self.candidates:
            if candidate.content is None:
                continue
            texts = [part.text for part in candidate.content.parts if part.text]
            if texts:
                return "".join(texts)
        return None


# =============================================================================
# Gemini Client
# =============================================================================

class GeminiClient:
    """Async client for the generateContent endpoint.

    Usage:
        client = GeminiClient(api_key="...", model="gemini-1.5-flash")
        text = await client.generate("Return JSON ONLY: {}")
        await client.close()

    Attributes:
        model: Model name used in the request path
        base_url: API base URL
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: API key sent as the ``key`` query parameter
            model: Model name
            base_url: API base URL
            timeout: Request timeout in seconds
            http_client: Pre-built client (tests inject a MockTransport client)
        """
        self._api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = http_client

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Release HTTP client resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def generate(self, prompt: str) -> str:
        """Generate text for a single user prompt.

        Raises:
            ModelTransportError: On HTTP, network or timeout failure, or when
                the response carries no candidate text
        """
        contents = [{"role": "user", "parts": [{"text": prompt}]}]
        return await self.generate_content(contents)

    async def chat(self, messages: list[ChatMessage]) -> str:
        """Generate the next assistant turn; assistant turns map to ``model``."""
        contents = [
            {
                "role": "model" if message.role == "assistant" else "user",
                "parts": [{"text": message.content}],
            }
            for message in messages
        ]
        return await self.generate_content(contents)

    async def generate_content(self, contents: list[dict[str, Any]]) -> str:
        """POST a generateContent request and return the first candidate text."""
        path = f"/models/{self.model}:generateContent"
        params = {"key": self._api_key} if self._api_key else None

        logger.debug("Calling generative model", model=self.model, turns=len(contents))

        try:
            response = await self._get_client().post(
                path,
                params=params,
                json={"contents": contents},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as exc:
            logger.error("Model request timed out", model=self.model, timeout=self.timeout)
            raise ModelTransportError(
                f"Model request timed out after {self.timeout:.1f}s", cause=exc
            ) from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            logger.error("Model request failed", model=self.model, http_status=status_code)
            raise ModelTransportError(
                f"Model request failed with HTTP {status_code}",
                status_code=status_code,
                cause=exc,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Model transport error", model=self.model, error=str(exc))
            raise ModelTransportError(f"Model transport error: {exc}", cause=exc) from exc
        except ValueError as exc:
            raise ModelTransportError(
                "Model response was not a JSON envelope", cause=exc
            ) from exc

        try:
            envelope = GenerateContentResponse.model_validate(payload)
        except ValidationError as exc:
            raise ModelTransportError(
                "Model response envelope has an unexpected shape", cause=exc
            ) from exc

        text = envelope.first_text()
        if text is None:
            raise ModelTransportError("Model response contained no candidate text")
        return text


# =============================================================================
# Factory Function
# =============================================================================

def create_gemini_client(settings: Settings) -> GeminiClient:
    """Create the model gateway client from settings."""
    api_key = settings.gemini_api_key.get_secret_value() if settings.gemini_api_key else None
    if api_key is None:
        logger.warning("No generative model API key configured")
    return GeminiClient(
        api_key=api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_api_url,
        timeout=settings.llm_timeout_seconds,
    )
