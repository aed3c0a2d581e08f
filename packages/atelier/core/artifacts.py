"""Image payload helpers.

Decoding and sniffing is delegated to Pillow; nothing here touches the
network.
"""

from __future__ import annotations

from io import BytesIO
import logging
from pathlib import Path
import re

from PIL import Image, UnidentifiedImageError

from atelier.core.models import ImagePayload

logger = logging.getLogger(__name__)

EXPORT_PREFIX = "AtelierMuse_"
_SAFE_NAME_MAX = 30
_UNSAFE_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)

_FORMAT_MIME: dict[str, str] = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
}

_MIME_EXTENSION: dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/bmp": "bmp",
}


def inspect_image(data: bytes) -> tuple[str, int, int]:
    """Decode image bytes and report (mime_type, width, height).

    Raises:
        ValueError: If the bytes are not a decodable image.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
            fmt = img.format or ""
            width, height = img.size
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValueError(f"Not a decodable image: {e}") from e

    mime_type = _FORMAT_MIME.get(fmt.upper())
    if mime_type is None:
        raise ValueError(f"Unsupported image format: {fmt or 'unknown'}")
    return mime_type, width, height


def payload_from_bytes(data: bytes, mime_type: str | None = None) -> ImagePayload:
    """Build a validated ImagePayload, sniffing the mime type if not given.

    Raises:
        ValueError: If the bytes do not decode as an image.
    """
    sniffed, width, height = inspect_image(data)
    if mime_type and mime_type != sniffed:
        logger.debug("Declared mime %s differs from sniffed %s; using sniffed", mime_type, sniffed)
    logger.debug("Image payload %s %dx%d (%d bytes)", sniffed, width, height, len(data))
    return ImagePayload(data=data, mime_type=sniffed)


def load_image_file(path: Path | str) -> ImagePayload:
    """Read a reference image from disk.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If it is not a supported image.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Image file not found: {file_path}")
    return payload_from_bytes(file_path.read_bytes())


def extension_for(mime_type: str) -> str:
    return _MIME_EXTENSION.get(mime_type, "png")


def safe_export_name(subject: str, mime_type: str = "image/png") -> str:
    """Filename used when exporting an artifact.

    Example:
        >>> safe_export_name("A jazz musician!")
        'AtelierMuse_a_jazz_musician_.png'
    """
    safe = _UNSAFE_CHARS.sub("_", subject).lower()[:_SAFE_NAME_MAX]
    return f"{EXPORT_PREFIX}{safe}.{extension_for(mime_type)}"


def write_image(payload: ImagePayload, output_path: Path) -> Path:
    """Write image bytes to disk, creating parent directories."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(payload.data)
    return output_path
