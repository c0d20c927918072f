from datetime import UTC, datetime, timedelta

import pytest

from chatbridge.chat.stores import InMemoryMessageStore, StoredMessage
from chatbridge.prompts.composer import PromptComposer, apply_template, build_context
from chatbridge.prompts.defaults import DEFAULT_TEMPLATES, default_templates
from chatbridge.providers.base import GenerationParams, Turn


def _message(content: str, *, user: bool, minutes: int) -> StoredMessage:
    base = datetime(2024, 1, 1, tzinfo=UTC)
    return StoredMessage(
        session_id="s1",
        content=content,
        is_user_message=user,
        created_at=base + timedelta(minutes=minutes),
    )


def test_apply_template_without_template_returns_text() -> None:
    assert apply_template("hello", None) == "hello"
    assert apply_template("hello", "") == "hello"
    assert apply_template("hello", "   \n") == "hello"


def test_apply_template_substitutes_user_prompt_placeholder() -> None:
    template = "Explain like I'm five: {user_prompt}. Keep it short."
    assert apply_template("gravity", template) == "Explain like I'm five: gravity. Keep it short."


def test_apply_template_accepts_prompt_synonym() -> None:
    assert apply_template("tides", "Topic: {prompt}") == "Topic: tides"


def test_apply_template_replaces_only_first_occurrence() -> None:
    result = apply_template("x", "{user_prompt} and {user_prompt}")
    assert result == "x and {user_prompt}"


def test_apply_template_does_not_rescan_user_text() -> None:
    result = apply_template("say {prompt}", "A: {user_prompt} B: {prompt}")
    assert result == "A: say {prompt} B: say {prompt}"


def test_apply_template_without_placeholder_appends_labelled_text() -> None:
    result = apply_template("what is rust?", "Be technical.  \n")
    assert result == "Be technical.\n\nUser request: what is rust?"


def test_build_context_orders_oldest_first_and_limits() -> None:
    newest_first = [
        _message("a3", user=False, minutes=5),
        _message("q3", user=True, minutes=4),
        _message("a2", user=False, minutes=3),
        _message("q2", user=True, minutes=2),
        _message("q1", user=True, minutes=1),
    ]
    snapshot = list(newest_first)

    turns = build_context(newest_first, 3)

    assert turns == [Turn("assistant", "a2"), Turn("user", "q3"), Turn("assistant", "a3")]
    assert newest_first == snapshot


def test_build_context_keeps_same_timestamp_messages_in_order() -> None:
    newest_first = [
        _message("a1", user=False, minutes=0),
        _message("q1", user=True, minutes=0),
    ]
    assert build_context(newest_first, 10) == [Turn("user", "q1"), Turn("assistant", "a1")]


@pytest.mark.asyncio
async def test_store_page_with_equal_timestamps_builds_chronological_context() -> None:
    store = InMemoryMessageStore()
    for content, user in [("q1", True), ("a1", False), ("q2", True), ("a2", False)]:
        await store.save_message(_message(content, user=user, minutes=0))

    page = await store.find_recent_messages("s1", 3)

    assert [item.content for item in page] == ["a2", "q2", "a1"]
    assert build_context(page, 3) == [
        Turn("assistant", "a1"),
        Turn("user", "q2"),
        Turn("assistant", "a2"),
    ]


def test_build_context_non_positive_limit_is_empty() -> None:
    assert build_context([_message("q", user=True, minutes=0)], 0) == []


def test_composer_uses_configured_context_limit() -> None:
    composer = PromptComposer(context_limit=1)
    messages = [_message("old", user=True, minutes=0), _message("new", user=False, minutes=1)]
    assert composer.build_context(messages) == [Turn("assistant", "new")]
    assert len(composer.build_context(messages, limit=5)) == 2


def test_compose_builds_request() -> None:
    composer = PromptComposer()
    request = composer.compose(
        "cats",
        template_text="Write a poem about {user_prompt}",
        context=[Turn("user", "hi")],
        params=GenerationParams(temperature=0.2, max_tokens=50),
    )
    assert request.prompt == "Write a poem about cats"
    assert request.context == (Turn("user", "hi"),)
    assert request.messages()[-1] == {"role": "user", "content": "Write a poem about cats"}
    assert request.params.max_tokens == 50


def test_default_templates_are_fresh_system_copies() -> None:
    first = default_templates()
    first[0].usage_count = 99
    second = default_templates()
    assert second[0].usage_count == 0
    assert len(second) == len(DEFAULT_TEMPLATES) == 5
    assert all(item.is_system_template for item in second)
    composed = apply_template("photosynthesis", second[0].template)
    assert composed.endswith("\n\nUser request: photosynthesis")
