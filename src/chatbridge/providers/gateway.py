"""Single entry point for model generation.

The gateway reads the service mode settled by the startup probe, dispatches
to the active provider and always answers with a GenerationResult. Provider
failures, timeouts, missing media and total unavailability all come back as
``success=False`` results carrying fixed, user-safe copy; nothing is raised
to callers. A cloud failure after startup never switches a running process
over to the local provider.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from contextlib import aclosing
from pathlib import Path

from chatbridge.errors import ErrorKind, error_kind_of
from chatbridge.media import load_image
from chatbridge.prompts.composer import PromptComposer
from chatbridge.providers.base import (
    ContentKind,
    GenerationParams,
    GenerationRequest,
    GenerationResult,
    ModelProvider,
    ProviderKind,
    Turn,
)
from chatbridge.providers.probe import ProviderHealthProbe
from chatbridge.providers.state import ProviderState, ServiceMode

logger = logging.getLogger(__name__)

FALLBACK_MODEL = "fallback"
FALLBACK_RESPONSES: dict[ContentKind, str] = {
    ContentKind.TEXT: "I'm currently offline. Please try again in a little while.",
    ContentKind.IMAGE_CAPTION: "I'm unable to analyze images right now. Please try again later.",
    ContentKind.IMAGE_QA: (
        "I can't answer questions about images at the moment. Please try again later."
    ),
    ContentKind.STREAM: "Streaming is unavailable right now. Please try again later.",
}
MEDIA_NOT_FOUND_RESPONSE = "I couldn't find the image you sent. Please try uploading it again."
GENERIC_FALLBACK_RESPONSE = "AI service is currently unavailable."
EMPTY_CONTENT_ERROR = "provider returned empty content"
KNOWN_FALLBACK_MESSAGES = frozenset(
    [*FALLBACK_RESPONSES.values(), MEDIA_NOT_FOUND_RESPONSE, GENERIC_FALLBACK_RESPONSE]
)

DEFAULT_CAPTION_PROMPT = (
    "Please describe this image in detail. "
    "Focus on the main subjects, objects, activities, and setting."
)
DEFAULT_PARAMS: dict[ContentKind, GenerationParams] = {
    ContentKind.TEXT: GenerationParams(temperature=0.7, max_tokens=1000),
    ContentKind.IMAGE_CAPTION: GenerationParams(temperature=0.5, max_tokens=500),
    ContentKind.IMAGE_QA: GenerationParams(temperature=0.6, max_tokens=800),
    ContentKind.STREAM: GenerationParams(temperature=0.7),
}

ChunkSink = Callable[[str], None]
ContextInput = Sequence[Turn | Mapping[str, str]]


def fallback_result(
    kind: ContentKind, error: str, error_kind: ErrorKind = ErrorKind.UNAVAILABLE
) -> GenerationResult:
    if error_kind is ErrorKind.NOT_FOUND:
        content = MEDIA_NOT_FOUND_RESPONSE
    else:
        content = FALLBACK_RESPONSES.get(kind, GENERIC_FALLBACK_RESPONSE)
    return GenerationResult(
        success=False,
        content=content,
        model=FALLBACK_MODEL,
        kind=kind,
        error=error,
        error_kind=error_kind,
    )


def _to_turns(context: ContextInput | None) -> tuple[Turn, ...]:
    turns: list[Turn] = []
    for item in context or ():
        if isinstance(item, Turn):
            turns.append(item)
        else:
            role = "user" if item.get("role", "user") == "user" else "assistant"
            turns.append(Turn(role=role, content=str(item.get("content", ""))))
    return tuple(turns)


class AIProviderGateway:
    def __init__(
        self,
        state: ProviderState,
        *,
        cloud: ModelProvider | None = None,
        local: ModelProvider | None = None,
        probe: ProviderHealthProbe | None = None,
        composer: PromptComposer | None = None,
        params: Mapping[ContentKind, GenerationParams] | None = None,
        local_url: str | None = None,
    ) -> None:
        self.state = state
        self.cloud = cloud
        self.local = local
        self.probe = probe
        self.composer = composer or PromptComposer()
        self.params = {**DEFAULT_PARAMS, **(params or {})}
        self.local_url = local_url

    async def initialize(self) -> ServiceMode:
        if self.probe is not None:
            return await self.probe.run()
        return self.state.select_mode()

    @property
    def mode(self) -> ServiceMode:
        return self.state.mode

    def is_ready(self) -> bool:
        return self.active_provider() is not None

    def active_provider(self) -> ModelProvider | None:
        if self.state.mode is ServiceMode.CLOUD_ACTIVE:
            return self.cloud
        if self.state.mode is ServiceMode.LOCAL_ACTIVE:
            return self.local
        return None

    def vision_available(self) -> bool:
        if self.state.mode is ServiceMode.CLOUD_ACTIVE:
            return self.state.is_available(ProviderKind.CLOUD_MULTIMODAL)
        if self.state.mode is ServiceMode.LOCAL_ACTIVE:
            return self.state.is_available(ProviderKind.LOCAL_VISION)
        return False

    async def generate(self, request: GenerationRequest, kind: ContentKind) -> GenerationResult:
        """Run an already composed request on the active provider."""
        provider = self.active_provider()
        if provider is None:
            return fallback_result(kind, f"no AI provider available (mode={self.mode.value})")
        if request.image is not None and not self.vision_available():
            return fallback_result(kind, f"{provider.name} has no vision model available")
        try:
            if request.image is None:
                content = await provider.generate_text(request)
                model = provider.text_model()
            else:
                content = await provider.generate_multimodal(request)
                model = provider.vision_model()
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            logger.warning("%s generation via %s failed: %s", kind.value, provider.name, error)
            return fallback_result(kind, error, error_kind_of(exc))
        if not content.strip():
            logger.warning("%s generation via %s returned no text", kind.value, provider.name)
            return fallback_result(kind, EMPTY_CONTENT_ERROR, ErrorKind.PROVIDER_ERROR)
        return GenerationResult(success=True, content=content, model=model, kind=kind)

    async def generate_text(
        self, prompt: str, context: ContextInput | None = None
    ) -> GenerationResult:
        request = GenerationRequest(
            prompt=prompt, context=_to_turns(context), params=self.params[ContentKind.TEXT]
        )
        return await self.generate(request, ContentKind.TEXT)

    async def generate_multimodal(
        self,
        prompt: str,
        image_path: str | Path | None = None,
        context: ContextInput | None = None,
    ) -> GenerationResult:
        if not image_path:
            return await self.generate_text(prompt, context)
        kind = ContentKind.IMAGE_QA if prompt.strip() else ContentKind.IMAGE_CAPTION
        if self.active_provider() is None:
            return fallback_result(kind, f"no AI provider available (mode={self.mode.value})")
        try:
            image = await load_image(image_path)
        except Exception as exc:
            logger.warning("Image load failed for %s: %s", image_path, exc)
            return fallback_result(kind, str(exc), error_kind_of(exc))
        request = GenerationRequest(
            prompt=prompt if prompt.strip() else DEFAULT_CAPTION_PROMPT,
            image=image,
            context=_to_turns(context),
            params=self.params[kind],
        )
        return await self.generate(request, kind)

    async def generate_templated(
        self,
        prompt: str,
        template_text: str | None = None,
        image_path: str | Path | None = None,
        context: ContextInput | None = None,
    ) -> GenerationResult:
        composed = self.composer.apply_template(prompt, template_text)
        if image_path:
            return await self.generate_multimodal(composed, image_path, context)
        return await self.generate_text(composed, context)

    async def stream_text(
        self,
        prompt: str,
        image_path: str | Path | None = None,
        on_chunk: ChunkSink | None = None,
    ) -> GenerationResult:
        """Forward fragments to ``on_chunk`` and return the joined text.

        Cloud providers do not stream; they deliver the full reply as one
        fragment. A transport error or a stream that ends without its done
        signal yields the stream fallback result; fragments already
        forwarded are not retracted.
        """
        kind = ContentKind.STREAM
        provider = self.active_provider()
        if provider is None:
            return fallback_result(kind, f"no AI provider available (mode={self.mode.value})")
        request = GenerationRequest(prompt=prompt, params=self.params[kind])
        if image_path:
            if not self.vision_available():
                return fallback_result(kind, f"{provider.name} has no vision model available")
            try:
                request = request.with_image(await load_image(image_path))
            except Exception as exc:
                logger.warning("Image load failed for %s: %s", image_path, exc)
                return fallback_result(kind, str(exc), error_kind_of(exc))

        fragments: list[str] = []
        try:
            async with aclosing(provider.stream_text(request)) as stream:
                async for fragment in stream:
                    fragments.append(fragment)
                    if on_chunk is not None:
                        on_chunk(fragment)
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            logger.warning(
                "Stream via %s failed after %d fragments: %s", provider.name, len(fragments), error
            )
            return fallback_result(kind, error, error_kind_of(exc))
        content = "".join(fragments)
        if not content.strip():
            return fallback_result(kind, EMPTY_CONTENT_ERROR, ErrorKind.PROVIDER_ERROR)
        model = provider.vision_model() if request.image is not None else provider.text_model()
        return GenerationResult(success=True, content=content, model=model, kind=kind)

    def get_status(self) -> dict[str, object]:
        provider = self.active_provider()
        vision = self.vision_available()
        return {
            "available": provider is not None,
            "active_mode": self.mode.value,
            "provider": provider.name if provider is not None else None,
            "current_model": provider.text_model() if provider is not None else None,
            "vision_model": provider.vision_model() if provider is not None and vision else None,
            "models": self.state.live_models(),
            "providers": [item.to_dict() for item in self.state.descriptors.values()],
            "use_cloud": self.state.use_cloud,
            "local_url": self.local_url,
        }
