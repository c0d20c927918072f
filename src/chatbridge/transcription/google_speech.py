"""Google Cloud Speech-to-Text (v1 REST) recognition backend."""

import base64
from typing import Any

import httpx

from chatbridge.errors import ProviderError, ProviderTimeoutError
from chatbridge.transcription.cascade import RecognitionConfig


class GoogleSpeechBackend:
    name = "google-speech"

    def __init__(
        self,
        api_key: str,
        *,
        language: str = "en-US",
        timeout_seconds: float = 30.0,
        base_url: str = "https://speech.googleapis.com/v1",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self.language = language
        self._timeout = timeout_seconds
        self._base_url = base_url.rstrip("/")
        self._transport = transport

    def build_request_body(self, audio: bytes, config: RecognitionConfig) -> dict[str, object]:
        return {
            "config": {
                "encoding": config.encoding,
                "sampleRateHertz": config.sample_rate_hertz,
                "languageCode": self.language,
                "enableAutomaticPunctuation": True,
            },
            "audio": {"content": base64.b64encode(audio).decode("ascii")},
        }

    @staticmethod
    def parse_response(payload: dict[str, Any]) -> str:
        results = payload.get("results")
        if not isinstance(results, list):
            return ""
        parts: list[str] = []
        for result in results:
            if not isinstance(result, dict):
                continue
            alternatives = result.get("alternatives")
            if not isinstance(alternatives, list) or not alternatives:
                continue
            best = alternatives[0]
            if isinstance(best, dict):
                transcript = best.get("transcript")
                if isinstance(transcript, str) and transcript.strip():
                    parts.append(transcript.strip())
        return " ".join(parts)

    async def recognize(self, audio: bytes, config: RecognitionConfig) -> str:
        endpoint = f"{self._base_url}/speech:recognize"
        body = self.build_request_body(audio, config)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(endpoint, params={"key": self._api_key}, json=body)
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(f"speech recognition timed out ({self._timeout}s)") from exc
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"speech HTTP {exc.response.status_code}: {exc.response.text[:200]}",
                retryable=False,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"speech request failed: {exc}") from exc
        payload = response.json()
        if not isinstance(payload, dict):
            raise ProviderError("speech response is not an object")
        return self.parse_response(payload)
