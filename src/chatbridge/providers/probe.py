"""Startup reachability probes for the configured providers."""

import logging

from chatbridge.providers.base import ProviderKind
from chatbridge.providers.gemini import GeminiProvider
from chatbridge.providers.ollama import OllamaProvider
from chatbridge.providers.state import ProviderState, ServiceMode

logger = logging.getLogger(__name__)


def _base_name(name: str) -> str:
    return name.split(":", 1)[0].strip().lower()


def model_installed(expected: str, installed: list[str]) -> bool:
    """Loose name match against the local registry.

    Local registries tag names (``llava:7b``, ``llama3.2:latest``), so a match
    is an exact name, or the same base name ignoring the ``:tag`` suffix.
    This is an approximation: ``llava`` also matches ``llava:13b``.
    """
    wanted = expected.strip().lower()
    if not wanted:
        return False
    wanted_base = _base_name(wanted)
    for name in installed:
        candidate = name.strip().lower()
        if candidate == wanted or _base_name(candidate) == wanted_base:
            return True
    return False


class ProviderHealthProbe:
    """Single-attempt availability checks. Never raises; results land in ``state``."""

    def __init__(
        self,
        state: ProviderState,
        *,
        cloud: GeminiProvider | None,
        local: OllamaProvider | None,
        timeout_seconds: float = 5.0,
    ) -> None:
        self.state = state
        self.cloud = cloud
        self.local = local
        self.timeout_seconds = timeout_seconds

    def _mark_cloud(self, available: bool, reason: str = "") -> None:
        self.state.mark(ProviderKind.CLOUD_TEXT, available=available, reason=reason)
        self.state.mark(ProviderKind.CLOUD_MULTIMODAL, available=available, reason=reason)

    async def probe_cloud_provider(self) -> bool:
        if not self.state.use_cloud:
            self._mark_cloud(False, "cloud disabled by USE_CLOUD_AI")
            return False
        if self.cloud is None:
            self._mark_cloud(False, "GEMINI_API_KEY not configured")
            logger.warning("Cloud provider not configured; skipping probe")
            return False
        try:
            await self.cloud.probe(self.timeout_seconds)
        except Exception as exc:
            reason = f"{type(exc).__name__}: {exc}"
            self._mark_cloud(False, reason)
            logger.warning("Cloud provider probe failed: %s", reason)
            return False
        self._mark_cloud(True)
        logger.info("Cloud provider available (model=%s)", self.cloud.model)
        return True

    async def probe_local_provider(self) -> bool:
        if self.local is None:
            reason = "local provider not configured"
            self.state.mark(ProviderKind.LOCAL_TEXT, available=False, reason=reason)
            self.state.mark(ProviderKind.LOCAL_VISION, available=False, reason=reason)
            return False
        try:
            installed = await self.local.list_models(self.timeout_seconds)
        except Exception as exc:
            reason = f"{type(exc).__name__}: {exc}"
            self.state.mark(ProviderKind.LOCAL_TEXT, available=False, reason=reason)
            self.state.mark(ProviderKind.LOCAL_VISION, available=False, reason=reason)
            logger.warning("Local provider at %s not reachable: %s", self.local.base_url, reason)
            return False

        text_model = self.local.text_model()
        if not model_installed(text_model, installed):
            self.state.mark(
                ProviderKind.LOCAL_TEXT,
                available=False,
                reason=f"model {text_model} not installed",
            )
            self.state.mark(
                ProviderKind.LOCAL_VISION,
                available=False,
                reason=f"text model {text_model} not installed",
            )
            logger.warning(
                "Text model %s not found (installed: %s); run `ollama pull %s`",
                text_model,
                ", ".join(installed) or "none",
                text_model,
            )
            return False
        self.state.mark(ProviderKind.LOCAL_TEXT, available=True)

        vision_model = self.local.vision_model()
        if model_installed(vision_model, installed):
            self.state.mark(ProviderKind.LOCAL_VISION, available=True)
        else:
            self.state.mark(
                ProviderKind.LOCAL_VISION,
                available=False,
                reason=f"model {vision_model} not installed",
            )
            logger.warning(
                "Vision model %s not found (installed: %s); image requests will use fallback",
                vision_model,
                ", ".join(installed) or "none",
            )
        logger.info("Local provider available (text=%s)", text_model)
        return True

    async def run(self) -> ServiceMode:
        """Probe every provider once and settle the service mode."""
        self.state.mode = ServiceMode.PROBING
        await self.probe_cloud_provider()
        await self.probe_local_provider()
        mode = self.state.select_mode()
        logger.info("Provider selection settled: mode=%s", mode.value)
        return mode
