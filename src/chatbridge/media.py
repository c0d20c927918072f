"""Image file loading for multimodal requests."""

import asyncio
from pathlib import Path

from chatbridge.errors import MediaNotFoundError
from chatbridge.providers.base import ImagePayload

IMAGE_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


def image_mime_type(path: str | Path) -> str:
    return IMAGE_MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_IMAGE_MIME_TYPE)


async def load_image(path: str | Path) -> ImagePayload:
    file_path = Path(path)
    if not file_path.is_file():
        raise MediaNotFoundError(str(file_path))
    data = await asyncio.to_thread(file_path.read_bytes)
    return ImagePayload(data=data, mime_type=image_mime_type(file_path))
