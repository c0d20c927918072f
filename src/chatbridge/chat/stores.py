"""Collaborator interfaces for message and template storage.

Persistent storage lives outside chatbridge. The in-memory stores here back
the CLI, local development and tests.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class StoredMessage:
    session_id: str
    content: str
    is_user_message: bool
    message_type: str = "text"
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_now)
    id: str = field(default_factory=lambda: f"msg_{uuid.uuid4().hex}")


@dataclass(slots=True)
class PromptTemplate:
    id: str
    name: str
    template: str
    description: str = ""
    category: str = "custom"
    is_system_template: bool = False
    usage_count: int = 0


class MessageStore(Protocol):
    async def find_recent_messages(self, session_id: str, limit: int) -> list[StoredMessage]: ...

    async def save_message(self, message: StoredMessage) -> StoredMessage: ...


class TemplateStore(Protocol):
    async def find_template(self, template_id: str) -> PromptTemplate | None: ...

    async def increment_usage(self, template_id: str) -> None: ...


class InMemoryMessageStore:
    def __init__(self) -> None:
        self._messages: dict[str, list[StoredMessage]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def find_recent_messages(self, session_id: str, limit: int) -> list[StoredMessage]:
        """Newest first, like a ``sort(createdAt: -1).limit(n)`` query."""
        async with self._lock:
            items = list(reversed(self._messages.get(session_id, [])))
        items.sort(key=lambda item: item.created_at, reverse=True)
        return items[: max(0, limit)]

    async def save_message(self, message: StoredMessage) -> StoredMessage:
        async with self._lock:
            self._messages[message.session_id].append(message)
        return message


class InMemoryTemplateStore:
    def __init__(self, templates: list[PromptTemplate] | None = None) -> None:
        self._templates = {item.id: item for item in templates or []}

    async def find_template(self, template_id: str) -> PromptTemplate | None:
        return self._templates.get(template_id)

    async def increment_usage(self, template_id: str) -> None:
        template = self._templates.get(template_id)
        if template is not None:
            template.usage_count += 1
