"""Prompt composition: template substitution and conversation context."""

from __future__ import annotations

from collections.abc import Sequence

from chatbridge.chat.stores import StoredMessage
from chatbridge.providers.base import GenerationParams, GenerationRequest, ImagePayload, Turn

# Synonymous placeholders, substituted in this order.
PLACEHOLDER_TOKENS = ("{user_prompt}", "{prompt}")
USER_TEXT_LABEL = "User request:"
DEFAULT_CONTEXT_LIMIT = 10


def apply_template(user_text: str, template_text: str | None) -> str:
    """Merge user text into a reusable instruction template.

    Only the first occurrence of each placeholder is replaced, and only
    placeholders present in the template itself: user text is never
    re-scanned. Without a placeholder the user text follows the template
    after a blank line and a fixed label.
    """
    if not template_text or not template_text.strip():
        return user_text

    positions: list[tuple[int, str]] = []
    for token in PLACEHOLDER_TOKENS:
        index = template_text.find(token)
        if index >= 0:
            positions.append((index, token))
    if not positions:
        return f"{template_text.rstrip()}\n\n{USER_TEXT_LABEL} {user_text}"

    pieces: list[str] = []
    cursor = 0
    for index, token in sorted(positions):
        pieces.append(template_text[cursor:index])
        pieces.append(user_text)
        cursor = index + len(token)
    pieces.append(template_text[cursor:])
    return "".join(pieces)


def build_context(messages: Sequence[StoredMessage], limit: int) -> list[Turn]:
    """Map persisted messages to prior turns, oldest first.

    The input is typically the store's newest-first page; it is never
    mutated. Only the ``limit`` most recent messages are kept.
    """
    if limit <= 0:
        return []
    ordered = sorted(reversed(list(messages)), key=lambda item: item.created_at)
    return [
        Turn(role="user" if item.is_user_message else "assistant", content=item.content)
        for item in ordered[-limit:]
    ]


class PromptComposer:
    def __init__(self, *, context_limit: int = DEFAULT_CONTEXT_LIMIT) -> None:
        self.context_limit = context_limit

    def apply_template(self, user_text: str, template_text: str | None) -> str:
        return apply_template(user_text, template_text)

    def build_context(
        self, messages: Sequence[StoredMessage], limit: int | None = None
    ) -> list[Turn]:
        return build_context(messages, self.context_limit if limit is None else limit)

    def compose(
        self,
        user_text: str,
        *,
        template_text: str | None = None,
        context: Sequence[Turn] = (),
        image: ImagePayload | None = None,
        params: GenerationParams | None = None,
    ) -> GenerationRequest:
        return GenerationRequest(
            prompt=apply_template(user_text, template_text),
            image=image,
            context=tuple(context),
            params=params or GenerationParams(),
        )
