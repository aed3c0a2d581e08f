"""OpenAI backend.

Async implementation over `AsyncOpenAI`:
- images.generate / images.edit for synthesis and editing (gpt-image-1 family,
  base64 output by default)
- Responses API with an `input_image` part for commentary, JSON object output

gpt-image models only support 1024x1024, 1536x1024 and 1024x1536, so each
aspect ratio maps to the supported size with the same orientation.
"""

from __future__ import annotations

import logging
from typing import Any

from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI

from atelier.core.api.errors import MalformedResultError, ProviderError
from atelier.core.artifacts import extension_for
from atelier.core.models import ArtStyle, AspectRatio, ImagePayload, Inspiration
from atelier.core.providers.base import ProviderType, decode_image_result, parse_inspiration
from atelier.core.styles import build_commentary_prompt

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "gpt-image-1"
DEFAULT_COMMENTARY_MODEL = "gpt-4.1-mini"

_ORIENTATION_SIZES: dict[str, str] = {
    "square": "1024x1024",
    "landscape": "1536x1024",
    "portrait": "1024x1536",
}


def select_api_size(aspect_ratio: AspectRatio) -> str:
    """Map an aspect ratio to the closest supported gpt-image size.

    Args:
        aspect_ratio: Requested aspect ratio.

    Returns:
        API size string (e.g., '1536x1024').
    """
    return _ORIENTATION_SIZES[aspect_ratio.orientation]


class OpenAIBackend:
    """Generation backend using the OpenAI API.

    Args:
        client: Optional pre-built AsyncOpenAI client (tests inject mocks).
        api_key: API key used when no client is supplied.
        image_model: Model for generation and editing.
        commentary_model: Vision-capable model for inspiration notes.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        *,
        client: AsyncOpenAI | Any | None = None,
        api_key: str | None = None,
        image_model: str = DEFAULT_IMAGE_MODEL,
        commentary_model: str = DEFAULT_COMMENTARY_MODEL,
        timeout: float = 120.0,
    ) -> None:
        if client is None:
            if not api_key:
                raise ValueError("No OpenAI API key. Set OPENAI_API_KEY or configure openai.api_key")
            # Retries are owned by the retry policy, not the SDK
            client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self._client = client
        self.image_model = image_model
        self.commentary_model = commentary_model

    @property
    def provider_type(self) -> ProviderType:
        """Provider type identifier."""
        return ProviderType.OPENAI

    async def synthesize_image(self, prompt: str, aspect_ratio: AspectRatio) -> ImagePayload:
        """Generate an image via images.generate."""
        size = select_api_size(aspect_ratio)
        logger.debug("openai synthesize_image: model=%s size=%s", self.image_model, size)
        response = await self._call(
            "synthesize_image",
            self._client.images.generate,
            model=self.image_model,
            prompt=prompt,
            n=1,
            size=size,
        )
        return self._image_from_response(response, "synthesize_image")

    async def edit_image(
        self,
        reference: ImagePayload,
        prompt: str,
        aspect_ratio: AspectRatio,
    ) -> ImagePayload:
        """Re-imagine a reference image via images.edit."""
        size = select_api_size(aspect_ratio)
        filename = f"reference.{extension_for(reference.mime_type)}"
        logger.debug("openai edit_image: model=%s size=%s", self.image_model, size)
        response = await self._call(
            "edit_image",
            self._client.images.edit,
            model=self.image_model,
            image=(filename, reference.data, reference.mime_type),
            prompt=prompt,
            n=1,
            size=size,
        )
        return self._image_from_response(response, "edit_image")

    async def synthesize_commentary(
        self,
        image: ImagePayload,
        subject: str,
        style: ArtStyle,
    ) -> Inspiration:
        """Multimodal commentary via the Responses API."""
        response = await self._call(
            "synthesize_commentary",
            self._client.responses.create,
            model=self.commentary_model,
            input=[
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": build_commentary_prompt(subject, style)},
                        {"type": "input_image", "image_url": image.to_data_url()},
                    ],
                }
            ],
            text={"format": {"type": "json_object"}},
        )
        return parse_inspiration(getattr(response, "output_text", None), ProviderType.OPENAI.value)

    def _image_from_response(self, response: Any, operation: str) -> ImagePayload:
        data = getattr(response, "data", None)
        if not data:
            raise MalformedResultError(f"OpenAI {operation} returned empty data list")
        b64_data = getattr(data[0], "b64_json", None)
        output_format = getattr(response, "output_format", None)
        mime_type = f"image/{output_format}" if output_format else None
        return decode_image_result(b64_data, mime_type, ProviderType.OPENAI.value)

    async def _call(self, operation: str, method: Any, **kwargs: Any) -> Any:
        """Single remote call with SDK errors mapped to ProviderError."""
        try:
            return await method(**kwargs)
        except APIStatusError as e:
            raise ProviderError(
                message=f"OpenAI API error: {e.message}",
                provider=ProviderType.OPENAI.value,
                operation=operation,
                status_code=e.status_code,
                cause=e,
            ) from e
        except (APIConnectionError, APITimeoutError) as e:
            raise ProviderError(
                message=f"OpenAI connection error: {e}",
                provider=ProviderType.OPENAI.value,
                operation=operation,
                cause=e,
            ) from e
