"""Base types and protocol for generation backends."""

from __future__ import annotations

import base64
import binascii
from enum import Enum
import json
from typing import Any, Protocol

from pydantic import ValidationError

from atelier.core.api.errors import MalformedResultError
from atelier.core.artifacts import payload_from_bytes
from atelier.core.models import ArtStyle, AspectRatio, ImagePayload, Inspiration


class ProviderType(str, Enum):
    """Supported provider types."""

    GEMINI = "gemini"
    OPENAI = "openai"


class GenerationBackend(Protocol):
    """Protocol for the three remote operations the orchestrator consumes.

    Implementations make exactly one remote call per method invocation and
    never retry; retries belong to the orchestrator's retry policy.

    Failures must be classifiable:
    - Safety/policy rejections carry a moderation marker in their message
    - HTTP failures expose `status_code`
    - Missing/invalid payloads raise MalformedResultError
    """

    @property
    def provider_type(self) -> ProviderType:
        """Provider type identifier."""
        ...

    async def synthesize_image(self, prompt: str, aspect_ratio: AspectRatio) -> ImagePayload:
        """Generate an image from a text prompt.

        Args:
            prompt: Full prompt (subject + style modifiers)
            aspect_ratio: Requested aspect ratio

        Returns:
            Generated image payload

        Raises:
            ProviderError: On remote failure
            MalformedResultError: If no decodable image was returned
        """
        ...

    async def edit_image(
        self,
        reference: ImagePayload,
        prompt: str,
        aspect_ratio: AspectRatio,
    ) -> ImagePayload:
        """Re-imagine a reference image according to a prompt.

        Args:
            reference: Uploaded reference image
            prompt: Edit prompt (subject + style modifiers)
            aspect_ratio: Requested aspect ratio

        Returns:
            Edited image payload

        Raises:
            ProviderError: On remote failure
            MalformedResultError: If no decodable image was returned
        """
        ...

    async def synthesize_commentary(
        self,
        image: ImagePayload,
        subject: str,
        style: ArtStyle,
    ) -> Inspiration:
        """Describe a generated image as painter's inspiration notes.

        The image itself is sent (multimodal), not just the prompt.

        Args:
            image: Image produced by synthesize_image / edit_image
            subject: Display subject
            style: Art style

        Returns:
            Inspiration with all four fields present

        Raises:
            ProviderError: On remote failure
            MalformedResultError: If any field is missing or invalid
        """
        ...


def decode_image_result(data: bytes | str | None, mime_type: str | None, provider: str) -> ImagePayload:
    """Turn raw image data from a provider into a validated payload.

    Accepts raw bytes or a base64 string.

    Raises:
        MalformedResultError: If data is missing or not a decodable image.
    """
    if not data:
        raise MalformedResultError(f"{provider} returned no image data")
    if isinstance(data, str):
        try:
            data = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedResultError(f"{provider} returned invalid base64 image data") from e
    try:
        return payload_from_bytes(data, mime_type)
    except ValueError as e:
        raise MalformedResultError(f"{provider} returned an undecodable image: {e}") from e


def parse_inspiration(raw: str | dict[str, Any] | None, provider: str) -> Inspiration:
    """Validate commentary JSON into an Inspiration.

    Raises:
        MalformedResultError: On empty output, invalid JSON, or missing/invalid fields.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise MalformedResultError(f"{provider} returned empty commentary")

    if isinstance(raw, str):
        text = raw.strip()
        # Some models wrap JSON in a markdown fence
        if text.startswith("```"):
            text = text.strip("`")
            if text.lower().startswith("json"):
                text = text[4:]
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedResultError(f"{provider} returned non-JSON commentary: {e}") from e

    if not isinstance(raw, dict):
        raise MalformedResultError(f"{provider} commentary is not a JSON object")

    try:
        return Inspiration.model_validate(raw)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise MalformedResultError(
            f"{provider} commentary missing or invalid fields: {', '.join(fields) or 'unknown'}"
        ) from e
