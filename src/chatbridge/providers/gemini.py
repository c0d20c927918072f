"""Gemini provider adapter using the API-key REST endpoint."""

from collections.abc import AsyncIterator

import httpx

from chatbridge.errors import ProviderError, ProviderTimeoutError, ProviderUnavailableError
from chatbridge.providers._gemini_common import (
    EmptyResponseError,
    build_request_body,
    parse_response,
)
from chatbridge.providers.base import GenerationParams, GenerationRequest


class GeminiProvider:
    """Cloud provider. One multimodal model serves both text and image requests.

    Streaming is not used against the cloud API: ``stream_text`` performs a
    regular generation and yields the whole reply as a single fragment.
    """

    name = "gemini"
    supports_streaming = False

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        text_timeout_seconds: float = 30.0,
        vision_timeout_seconds: float = 90.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._text_timeout = text_timeout_seconds
        self._vision_timeout = vision_timeout_seconds
        self._transport = transport

    def text_model(self) -> str:
        return self.model

    def vision_model(self) -> str:
        return self.model

    async def _generate(self, request: GenerationRequest, timeout: float) -> str:
        if not self._api_key:
            raise ProviderUnavailableError("gemini api key is missing")
        url = f"{self._base_url}/models/{self.model}:generateContent"
        headers = {"x-goog-api-key": self._api_key, "Content-Type": "application/json"}
        body = build_request_body(request)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(url, headers=headers, json=body)
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(f"gemini request timed out after {timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"gemini HTTP {exc.response.status_code}: {exc.response.text[:200]}",
                retryable=exc.response.status_code >= 500 or exc.response.status_code == 429,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"gemini request failed: {exc}") from exc
        payload = response.json()
        if not isinstance(payload, dict):
            raise ProviderError("gemini response is not an object")
        return parse_response(payload)

    async def generate_text(self, request: GenerationRequest) -> str:
        return await self._generate(request, self._text_timeout)

    async def generate_multimodal(self, request: GenerationRequest) -> str:
        return await self._generate(request, self._vision_timeout)

    async def stream_text(self, request: GenerationRequest) -> AsyncIterator[str]:
        timeout = self._vision_timeout if request.image is not None else self._text_timeout
        yield await self._generate(request, timeout)

    async def probe(self, timeout_seconds: float) -> None:
        """Minimal generation call; raises on network, auth or quota failure."""
        request = GenerationRequest(
            prompt="ping", params=GenerationParams(temperature=0.0, max_tokens=1)
        )
        try:
            await self._generate(request, timeout_seconds)
        except EmptyResponseError:
            # A one-token reply may carry no text; the call itself succeeded.
            return
