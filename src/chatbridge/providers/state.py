"""Process-wide provider availability state.

One ProviderState is built at startup and handed to the probe and the
gateway. The probe writes it once during initialization; afterwards every
request only reads it.
"""

from enum import StrEnum

from chatbridge.config import Settings
from chatbridge.providers.base import ProviderDescriptor, ProviderKind


class ServiceMode(StrEnum):
    UNINITIALIZED = "uninitialized"
    PROBING = "probing"
    CLOUD_ACTIVE = "cloud_active"
    LOCAL_ACTIVE = "local_active"
    UNAVAILABLE = "unavailable"


class ProviderState:
    def __init__(self, descriptors: list[ProviderDescriptor], *, use_cloud: bool) -> None:
        self.descriptors: dict[ProviderKind, ProviderDescriptor] = {
            item.kind: item for item in descriptors
        }
        self.use_cloud = use_cloud
        self.mode = ServiceMode.UNINITIALIZED

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderState":
        use_cloud = int(settings.use_cloud_ai) == 1
        cloud_rank, local_rank = (1, 2) if use_cloud else (2, 1)
        return cls(
            [
                ProviderDescriptor(
                    ProviderKind.CLOUD_TEXT, settings.gemini_model, priority=cloud_rank
                ),
                ProviderDescriptor(
                    ProviderKind.CLOUD_MULTIMODAL, settings.gemini_model, priority=cloud_rank
                ),
                ProviderDescriptor(
                    ProviderKind.LOCAL_TEXT, settings.ollama_text_model, priority=local_rank
                ),
                ProviderDescriptor(
                    ProviderKind.LOCAL_VISION, settings.ollama_vision_model, priority=local_rank
                ),
            ],
            use_cloud=use_cloud,
        )

    def get(self, kind: ProviderKind) -> ProviderDescriptor | None:
        return self.descriptors.get(kind)

    def is_available(self, kind: ProviderKind) -> bool:
        descriptor = self.descriptors.get(kind)
        return descriptor is not None and descriptor.available

    def mark(self, kind: ProviderKind, *, available: bool, reason: str = "") -> None:
        descriptor = self.descriptors.get(kind)
        if descriptor is None:
            return
        descriptor.available = available
        descriptor.reason = reason

    def select_mode(self) -> ServiceMode:
        """Cloud when requested and live, else local, else fallback-only."""
        if self.use_cloud and self.is_available(ProviderKind.CLOUD_TEXT):
            self.mode = ServiceMode.CLOUD_ACTIVE
        elif self.is_available(ProviderKind.LOCAL_TEXT):
            self.mode = ServiceMode.LOCAL_ACTIVE
        else:
            self.mode = ServiceMode.UNAVAILABLE
        return self.mode

    def live_models(self) -> dict[str, str]:
        return {
            kind.value: descriptor.model
            for kind, descriptor in sorted(
                self.descriptors.items(), key=lambda item: item[1].priority
            )
            if descriptor.available
        }

    def snapshot(self) -> dict[str, object]:
        return {
            "mode": self.mode.value,
            "use_cloud": self.use_cloud,
            "providers": [item.to_dict() for item in self.descriptors.values()],
        }
