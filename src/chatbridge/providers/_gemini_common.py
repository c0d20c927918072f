"""Shared helpers for the Gemini REST API (request building + response parsing)."""

from __future__ import annotations

import base64
from typing import Any

from chatbridge.errors import ProviderError
from chatbridge.providers.base import GenerationRequest, ImagePayload


class EmptyResponseError(ProviderError):
    """Gemini answered successfully but produced no usable text."""


def to_contents(
    messages: list[dict[str, str]], image: ImagePayload | None = None
) -> list[dict[str, object]]:
    contents: list[dict[str, object]] = []
    last_index = len(messages) - 1
    for index, msg in enumerate(messages):
        role = msg.get("role", "user")
        text = msg.get("content", "")
        gemini_role = "model" if role == "assistant" else "user"
        parts: list[dict[str, object]] = [{"text": text}]
        # The image travels with the final user turn.
        if image is not None and index == last_index:
            parts.append(
                {
                    "inline_data": {
                        "mime_type": image.mime_type,
                        "data": base64.b64encode(image.data).decode("ascii"),
                    }
                }
            )
        contents.append({"role": gemini_role, "parts": parts})
    return contents


def build_request_body(request: GenerationRequest) -> dict[str, object]:
    system_parts: list[str] = []
    non_system_messages: list[dict[str, str]] = []
    for item in request.messages():
        role = str(item.get("role", "user")).strip().lower()
        content = str(item.get("content", ""))
        if role == "system":
            if content.strip():
                system_parts.append(content)
            continue
        non_system_messages.append({"role": role, "content": content})

    generation_config: dict[str, object] = {"temperature": request.params.temperature}
    if request.params.max_tokens is not None:
        generation_config["maxOutputTokens"] = request.params.max_tokens
    body: dict[str, object] = {
        "contents": to_contents(non_system_messages, request.image),
        "generationConfig": generation_config,
    }
    if system_parts:
        body["systemInstruction"] = {"parts": [{"text": "\n\n".join(system_parts)}]}
    return body


def parse_response(payload: dict[str, Any]) -> str:
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        feedback = payload.get("promptFeedback")
        if isinstance(feedback, dict) and feedback.get("blockReason"):
            raise ProviderError(f"gemini blocked prompt: {feedback['blockReason']}")
        raise EmptyResponseError("gemini response missing candidates")
    first = candidates[0]
    if not isinstance(first, dict):
        raise ProviderError("gemini response candidate malformed")
    content = first.get("content")
    if not isinstance(content, dict):
        raise ProviderError("gemini response content missing")
    parts = content.get("parts", [])
    text_parts: list[str] = []
    if isinstance(parts, list):
        for part in parts:
            if not isinstance(part, dict) or part.get("thought"):
                continue
            text = part.get("text")
            if isinstance(text, str) and text:
                text_parts.append(text)
    if not text_parts:
        raise EmptyResponseError("gemini response contained no text")
    return "\n".join(text_parts)
