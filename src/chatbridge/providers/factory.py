"""Provider and gateway construction helpers."""

from chatbridge.config import Settings
from chatbridge.prompts.composer import PromptComposer
from chatbridge.providers.base import ContentKind, GenerationParams
from chatbridge.providers.gateway import DEFAULT_PARAMS, AIProviderGateway
from chatbridge.providers.gemini import GeminiProvider
from chatbridge.providers.ollama import OllamaProvider
from chatbridge.providers.probe import ProviderHealthProbe
from chatbridge.providers.state import ProviderState


def build_cloud_provider(settings: Settings) -> GeminiProvider | None:
    api_key = settings.gemini_api_key.strip()
    if not api_key:
        return None
    return GeminiProvider(
        settings.gemini_model,
        api_key=api_key,
        base_url=settings.gemini_base_url,
        text_timeout_seconds=settings.text_timeout_seconds,
        vision_timeout_seconds=settings.vision_timeout_seconds,
    )


def build_local_provider(settings: Settings) -> OllamaProvider | None:
    base_url = settings.ollama_base_url.strip()
    if not base_url:
        return None
    return OllamaProvider(
        base_url,
        settings.ollama_text_model,
        settings.ollama_vision_model,
        text_timeout_seconds=settings.text_timeout_seconds,
        vision_timeout_seconds=settings.vision_timeout_seconds,
        stream_timeout_seconds=settings.stream_timeout_seconds,
    )


def build_generation_params(settings: Settings) -> dict[ContentKind, GenerationParams]:
    params = dict(DEFAULT_PARAMS)
    params[ContentKind.TEXT] = GenerationParams(
        temperature=settings.text_temperature, max_tokens=settings.text_max_tokens
    )
    caption_defaults = DEFAULT_PARAMS[ContentKind.IMAGE_CAPTION]
    params[ContentKind.IMAGE_CAPTION] = GenerationParams(
        temperature=settings.vision_temperature,
        max_tokens=min(caption_defaults.max_tokens or 500, settings.vision_max_tokens),
    )
    params[ContentKind.IMAGE_QA] = GenerationParams(
        temperature=DEFAULT_PARAMS[ContentKind.IMAGE_QA].temperature,
        max_tokens=settings.vision_max_tokens,
    )
    params[ContentKind.STREAM] = GenerationParams(temperature=settings.text_temperature)
    return params


def build_gateway(
    settings: Settings,
    *,
    cloud: GeminiProvider | None = None,
    local: OllamaProvider | None = None,
) -> AIProviderGateway:
    """Wire state, probe and providers; call ``initialize()`` before use."""
    state = ProviderState.from_settings(settings)
    cloud = cloud if cloud is not None else build_cloud_provider(settings)
    local = local if local is not None else build_local_provider(settings)
    probe = ProviderHealthProbe(
        state,
        cloud=cloud,
        local=local,
        timeout_seconds=settings.probe_timeout_seconds,
    )
    return AIProviderGateway(
        state,
        cloud=cloud,
        local=local,
        probe=probe,
        composer=PromptComposer(context_limit=settings.context_message_limit),
        params=build_generation_params(settings),
        local_url=local.base_url if local is not None else None,
    )
