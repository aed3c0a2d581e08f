"""Google Gemini backend.

Async implementation over `google.genai.Client.aio`:
- Image synthesis / editing via the native image model (IMAGE + TEXT modalities)
- Commentary via a JSON-schema constrained multimodal call that receives the
  generated pixels alongside the prompt

Each method makes a single remote call; retries are handled by the caller.
"""

from __future__ import annotations

import logging
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from atelier.core.api.errors import MalformedResultError, ProviderError
from atelier.core.models import ArtStyle, AspectRatio, ImagePayload, Inspiration
from atelier.core.providers.base import ProviderType, decode_image_result, parse_inspiration
from atelier.core.styles import build_commentary_prompt

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_COMMENTARY_MODEL = "gemini-3-flash-preview"

# Finish / block reasons that mean the request was refused on policy grounds
_SAFETY_REASONS = frozenset(
    {
        "SAFETY",
        "IMAGE_SAFETY",
        "PROHIBITED_CONTENT",
        "BLOCKLIST",
        "SPII",
        "IMAGE_PROHIBITED_CONTENT",
    }
)

COMMENTARY_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "technique": {
            "type": "STRING",
            "description": "A specific technique related to the style to try.",
        },
        "palette": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "A list of 3-5 pigment names or color descriptions.",
        },
        "mood": {"type": "STRING", "description": "The emotional tone of the piece."},
        "challenge": {"type": "STRING", "description": "A creative challenge for the artist."},
    },
    "required": ["technique", "palette", "mood", "challenge"],
}


def _reason_name(value: Any) -> str | None:
    """Normalize an SDK enum/string reason to its upper-case name."""
    if value is None:
        return None
    name = getattr(value, "name", None) or str(value)
    return name.rsplit(".", 1)[-1].upper()


def _extract_image(response: Any) -> tuple[bytes | str | None, str | None]:
    """Return (data, mime_type) of the first inline image part, if any."""
    candidates = getattr(response, "candidates", None) or []
    for candidate in candidates:
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or []
        for part in parts:
            inline_data = getattr(part, "inline_data", None)
            if inline_data is not None and getattr(inline_data, "data", None):
                return inline_data.data, getattr(inline_data, "mime_type", None)
    return None, None


def _refusal_reason(response: Any) -> str | None:
    """Safety block/finish reason for an empty response, if any."""
    feedback = getattr(response, "prompt_feedback", None)
    block_reason = _reason_name(getattr(feedback, "block_reason", None))
    if block_reason and block_reason not in ("BLOCK_REASON_UNSPECIFIED", "NONE"):
        return block_reason
    for candidate in getattr(response, "candidates", None) or []:
        finish_reason = _reason_name(getattr(candidate, "finish_reason", None))
        if finish_reason in _SAFETY_REASONS:
            return finish_reason
    return None


class GeminiBackend:
    """Generation backend using Google's Gemini models.

    Args:
        client: Optional pre-built `genai.Client` (tests inject fakes).
        api_key: API key used when no client is supplied.
        image_model: Model for synthesis and editing.
        commentary_model: Model for inspiration notes.
    """

    def __init__(
        self,
        *,
        client: Any | None = None,
        api_key: str | None = None,
        image_model: str = DEFAULT_IMAGE_MODEL,
        commentary_model: str = DEFAULT_COMMENTARY_MODEL,
    ) -> None:
        if client is None:
            if not api_key:
                raise ValueError("No Gemini API key. Set GEMINI_API_KEY or configure gemini.api_key")
            client = genai.Client(api_key=api_key)
        self._client = client
        self.image_model = image_model
        self.commentary_model = commentary_model

    @property
    def provider_type(self) -> ProviderType:
        """Provider type identifier."""
        return ProviderType.GEMINI

    async def synthesize_image(self, prompt: str, aspect_ratio: AspectRatio) -> ImagePayload:
        """Generate an image from text."""
        parts = [types.Part.from_text(text=prompt)]
        return await self._generate_image(parts, aspect_ratio, operation="synthesize_image")

    async def edit_image(
        self,
        reference: ImagePayload,
        prompt: str,
        aspect_ratio: AspectRatio,
    ) -> ImagePayload:
        """Re-imagine a reference image; the reference goes first, then the prompt."""
        parts = [
            types.Part.from_bytes(data=reference.data, mime_type=reference.mime_type),
            types.Part.from_text(text=prompt),
        ]
        return await self._generate_image(parts, aspect_ratio, operation="edit_image")

    async def synthesize_commentary(
        self,
        image: ImagePayload,
        subject: str,
        style: ArtStyle,
    ) -> Inspiration:
        """Multimodal commentary on the generated image."""
        parts = [
            types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
            types.Part.from_text(text=build_commentary_prompt(subject, style)),
        ]
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=COMMENTARY_SCHEMA,
        )
        logger.debug("gemini commentary: model=%s subject=%s", self.commentary_model, subject[:60])
        response = await self._call(
            operation="synthesize_commentary",
            model=self.commentary_model,
            contents=[types.Content(role="user", parts=parts)],
            config=config,
        )

        text = getattr(response, "text", None)
        if not text:
            reason = _refusal_reason(response)
            if reason:
                raise ProviderError(
                    message=f"Commentary blocked by safety filters ({reason})",
                    provider=ProviderType.GEMINI.value,
                    operation="synthesize_commentary",
                )
        return parse_inspiration(text, ProviderType.GEMINI.value)

    async def _generate_image(
        self,
        parts: list[Any],
        aspect_ratio: AspectRatio,
        *,
        operation: str,
    ) -> ImagePayload:
        config = types.GenerateContentConfig(
            response_modalities=["IMAGE", "TEXT"],
            image_config=types.ImageConfig(aspect_ratio=aspect_ratio.value),
        )
        logger.debug(
            "gemini %s: model=%s aspectRatio=%s parts=%d",
            operation,
            self.image_model,
            aspect_ratio.value,
            len(parts),
        )
        response = await self._call(
            operation=operation,
            model=self.image_model,
            contents=[types.Content(role="user", parts=parts)],
            config=config,
        )

        data, mime_type = _extract_image(response)
        if not data:
            reason = _refusal_reason(response)
            if reason:
                raise ProviderError(
                    message=f"Image generation blocked by safety filters ({reason})",
                    provider=ProviderType.GEMINI.value,
                    operation=operation,
                )
            raise MalformedResultError("No image data returned from Gemini API")
        return decode_image_result(data, mime_type, ProviderType.GEMINI.value)

    async def _call(self, *, operation: str, model: str, contents: Any, config: Any) -> Any:
        """Single remote call with SDK errors mapped to ProviderError."""
        try:
            return await self._client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as e:
            raise ProviderError(
                message=f"Gemini API error: {e.message or e}",
                provider=ProviderType.GEMINI.value,
                operation=operation,
                status_code=e.code,
                cause=e,
            ) from e
