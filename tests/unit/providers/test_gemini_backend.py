"""Tests for the Gemini backend against a faked google-genai client."""

from __future__ import annotations

import base64
import json
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

from google.genai import errors as genai_errors
import pytest

from atelier.core.api.errors import MalformedResultError, ProviderError
from atelier.core.api.retry import is_client_error, is_moderation_failure
from atelier.core.models import ArtStyle, AspectRatio, ImagePayload
from atelier.core.providers.gemini import GeminiBackend
from tests.conftest import make_png


def _image_response(data: bytes | str | None, mime_type: str = "image/png") -> SimpleNamespace:
    parts: list[Any] = [SimpleNamespace(text="Here is your portrait", inline_data=None)]
    if data is not None:
        parts.append(SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type)))
    candidate = SimpleNamespace(content=SimpleNamespace(parts=parts), finish_reason="STOP")
    return SimpleNamespace(candidates=[candidate], prompt_feedback=None, text=None)


def _text_response(text: str | None) -> SimpleNamespace:
    candidate = SimpleNamespace(content=SimpleNamespace(parts=[]), finish_reason="STOP")
    return SimpleNamespace(candidates=[candidate], prompt_feedback=None, text=text)


def _fake_client(*responses: Any) -> tuple[SimpleNamespace, AsyncMock]:
    generate_content = AsyncMock(side_effect=list(responses))
    client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)))
    return client, generate_content


COMMENTARY = {
    "technique": "Glazing thin layers",
    "palette": ["Cadmium Red", "Titanium White", "Raw Umber"],
    "mood": "Warm nostalgia",
    "challenge": "Paint only with a palette knife",
}


class TestGeminiBackend:
    def test_requires_key_or_client(self) -> None:
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            GeminiBackend()

    @pytest.mark.asyncio
    async def test_synthesize_image(self) -> None:
        png = make_png(11)
        client, generate_content = _fake_client(_image_response(png))
        backend = GeminiBackend(client=client, image_model="image-model")

        payload = await backend.synthesize_image("A sailor, oil", AspectRatio.LANDSCAPE_16_9)

        assert payload.data == png
        assert payload.mime_type == "image/png"
        kwargs = generate_content.call_args.kwargs
        assert kwargs["model"] == "image-model"
        assert kwargs["config"].response_modalities == ["IMAGE", "TEXT"]
        assert kwargs["config"].image_config.aspect_ratio == "16:9"
        assert kwargs["contents"][0].parts[0].text == "A sailor, oil"

    @pytest.mark.asyncio
    async def test_base64_inline_data_is_decoded(self) -> None:
        png = make_png(12)
        client, _ = _fake_client(_image_response(base64.b64encode(png).decode()))
        payload = await GeminiBackend(client=client).synthesize_image("x", AspectRatio.SQUARE)
        assert payload.data == png

    @pytest.mark.asyncio
    async def test_edit_sends_reference_first(self) -> None:
        reference = ImagePayload(data=make_png(13))
        client, generate_content = _fake_client(_image_response(make_png(14)))

        await GeminiBackend(client=client).edit_image(reference, "Re-imagine", AspectRatio.PORTRAIT_9_16)

        parts = generate_content.call_args.kwargs["contents"][0].parts
        assert parts[0].inline_data.data == reference.data
        assert parts[1].text == "Re-imagine"

    @pytest.mark.asyncio
    async def test_safety_finish_reason_is_moderation(self) -> None:
        candidate = SimpleNamespace(content=None, finish_reason="IMAGE_SAFETY")
        client, _ = _fake_client(SimpleNamespace(candidates=[candidate], prompt_feedback=None, text=None))

        with pytest.raises(ProviderError) as exc_info:
            await GeminiBackend(client=client).synthesize_image("x", AspectRatio.SQUARE)

        assert is_moderation_failure(exc_info.value)

    @pytest.mark.asyncio
    async def test_prompt_block_is_moderation(self) -> None:
        response = SimpleNamespace(
            candidates=[],
            prompt_feedback=SimpleNamespace(block_reason="PROHIBITED_CONTENT"),
            text=None,
        )
        client, _ = _fake_client(response)

        with pytest.raises(ProviderError) as exc_info:
            await GeminiBackend(client=client).synthesize_image("x", AspectRatio.SQUARE)

        assert "PROHIBITED_CONTENT" in str(exc_info.value)
        assert is_moderation_failure(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_image_is_malformed(self) -> None:
        client, _ = _fake_client(_image_response(None))
        with pytest.raises(MalformedResultError):
            await GeminiBackend(client=client).synthesize_image("x", AspectRatio.SQUARE)

    @pytest.mark.asyncio
    async def test_undecodable_image_is_malformed(self) -> None:
        client, _ = _fake_client(_image_response(b"not an image"))
        with pytest.raises(MalformedResultError):
            await GeminiBackend(client=client).synthesize_image("x", AspectRatio.SQUARE)

    @pytest.mark.asyncio
    async def test_api_error_is_wrapped_with_status(self) -> None:
        error = genai_errors.ClientError(
            400, {"error": {"code": 400, "message": "Invalid argument", "status": "INVALID_ARGUMENT"}}
        )
        client, _ = _fake_client(error)

        with pytest.raises(ProviderError) as exc_info:
            await GeminiBackend(client=client).synthesize_image("x", AspectRatio.SQUARE)

        assert exc_info.value.status_code == 400
        assert exc_info.value.cause is error
        assert is_client_error(exc_info.value)

    @pytest.mark.asyncio
    async def test_commentary_sends_image_and_schema(self) -> None:
        image = ImagePayload(data=make_png(15))
        client, generate_content = _fake_client(_text_response(json.dumps(COMMENTARY)))
        backend = GeminiBackend(client=client, commentary_model="text-model")

        notes = await backend.synthesize_commentary(image, "A sailor", ArtStyle.OIL)

        assert notes.palette == ("Cadmium Red", "Titanium White", "Raw Umber")
        kwargs = generate_content.call_args.kwargs
        assert kwargs["model"] == "text-model"
        assert kwargs["config"].response_mime_type == "application/json"
        parts = kwargs["contents"][0].parts
        assert parts[0].inline_data.data == image.data
        assert "Oil" in parts[1].text

    @pytest.mark.asyncio
    async def test_commentary_missing_field_is_malformed(self) -> None:
        incomplete = {k: v for k, v in COMMENTARY.items() if k != "palette"}
        client, _ = _fake_client(_text_response(json.dumps(incomplete)))

        with pytest.raises(MalformedResultError, match="palette"):
            await GeminiBackend(client=client).synthesize_commentary(
                ImagePayload(data=make_png(16)), "A sailor", ArtStyle.OIL
            )
