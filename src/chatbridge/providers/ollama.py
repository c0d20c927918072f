"""Ollama provider adapter for a local inference server."""

import base64
import json
from collections.abc import AsyncIterator
from typing import Any

import httpx

from chatbridge.errors import ProviderError, ProviderTimeoutError
from chatbridge.providers.base import GenerationRequest


class OllamaProvider:
    """Local provider: a text model for chat and a vision model for images."""

    name = "ollama"
    supports_streaming = True

    def __init__(
        self,
        base_url: str,
        text_model: str,
        vision_model: str,
        *,
        text_timeout_seconds: float = 30.0,
        vision_timeout_seconds: float = 90.0,
        stream_timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._text_model = text_model
        self._vision_model = vision_model
        self._text_timeout = text_timeout_seconds
        self._vision_timeout = vision_timeout_seconds
        self._stream_timeout = stream_timeout_seconds
        self._transport = transport

    def text_model(self) -> str:
        return self._text_model

    def vision_model(self) -> str:
        return self._vision_model

    @staticmethod
    def _options(request: GenerationRequest) -> dict[str, object]:
        options: dict[str, object] = {"temperature": request.params.temperature}
        if request.params.max_tokens is not None:
            options["num_predict"] = request.params.max_tokens
        return options

    def _chat_body(self, request: GenerationRequest, *, stream: bool) -> dict[str, object]:
        messages: list[dict[str, Any]] = list(request.messages())
        model = self._text_model
        if request.image is not None:
            model = self._vision_model
            messages[-1] = {
                **messages[-1],
                "images": [base64.b64encode(request.image.data).decode("ascii")],
            }
        return {
            "model": model,
            "messages": messages,
            "stream": stream,
            "options": self._options(request),
        }

    @staticmethod
    def _parse_chat_response(payload: object) -> str:
        if not isinstance(payload, dict):
            raise ProviderError("ollama response is not an object")
        if payload.get("error"):
            raise ProviderError(f"ollama error: {payload['error']}")
        message = payload.get("message")
        if not isinstance(message, dict):
            raise ProviderError("ollama response missing 'message'")
        content = message.get("content")
        if not isinstance(content, str):
            raise ProviderError("ollama response missing 'message.content'")
        return content

    async def _chat(self, request: GenerationRequest, timeout: float) -> str:
        endpoint = f"{self.base_url}/api/chat"
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(endpoint, json=self._chat_body(request, stream=False))
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(f"ollama timeout ({timeout}s) on {endpoint}") from exc
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"ollama HTTP {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"ollama: could not reach {self.base_url}: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("ollama response is not valid JSON") from exc
        return self._parse_chat_response(payload)

    async def generate_text(self, request: GenerationRequest) -> str:
        return await self._chat(request, self._text_timeout)

    async def generate_multimodal(self, request: GenerationRequest) -> str:
        return await self._chat(request, self._vision_timeout)

    async def stream_text(self, request: GenerationRequest) -> AsyncIterator[str]:
        """Yield content fragments from a streaming chat call.

        The stream is complete only when the server sends ``"done": true``.
        A transport that ends before that is reported as a ProviderError.
        """
        endpoint = f"{self.base_url}/api/chat"
        body = self._chat_body(request, stream=True)
        done = False
        try:
            async with httpx.AsyncClient(
                timeout=self._stream_timeout, transport=self._transport
            ) as client:
                async with client.stream("POST", endpoint, json=body) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        try:
                            data = json.loads(line)
                        except json.JSONDecodeError as exc:
                            raise ProviderError("ollama stream sent malformed JSON") from exc
                        if not isinstance(data, dict):
                            continue
                        if data.get("error"):
                            raise ProviderError(f"ollama error: {data['error']}")
                        message = data.get("message")
                        fragment = message.get("content") if isinstance(message, dict) else None
                        if isinstance(fragment, str) and fragment:
                            yield fragment
                        if data.get("done"):
                            done = True
                            break
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(
                f"ollama stream timeout ({self._stream_timeout}s) on {endpoint}"
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise ProviderError(f"ollama HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"ollama stream failed: {exc}") from exc
        if not done:
            raise ProviderError("stream ended before completion")

    async def list_models(self, timeout_seconds: float) -> list[str]:
        endpoint = f"{self.base_url}/api/tags"
        try:
            async with httpx.AsyncClient(
                timeout=timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(endpoint)
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(f"ollama not reachable within {timeout_seconds}s") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"ollama: could not reach {self.base_url}: {exc}") from exc
        payload = response.json()
        models = payload.get("models") if isinstance(payload, dict) else None
        if not isinstance(models, list):
            return []
        names: list[str] = []
        for item in models:
            if isinstance(item, dict):
                name = item.get("name") or item.get("model")
                if isinstance(name, str) and name:
                    names.append(name)
        return names
