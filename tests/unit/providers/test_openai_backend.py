"""Tests for the OpenAI backend against a mocked AsyncOpenAI client."""

from __future__ import annotations

import base64
import json
from unittest.mock import AsyncMock, MagicMock

from openai import APIConnectionError, APIStatusError, BadRequestError
import pytest

from atelier.core.api.errors import MalformedResultError, ProviderError
from atelier.core.api.retry import is_client_error, is_moderation_failure
from atelier.core.models import ArtStyle, AspectRatio, ImagePayload
from atelier.core.providers.openai import OpenAIBackend, select_api_size
from tests.conftest import make_png


def _image_response(data: bytes | None = None, output_format: str | None = "png") -> MagicMock:
    item = MagicMock()
    item.b64_json = base64.b64encode(data if data is not None else make_png(21)).decode()
    response = MagicMock()
    response.data = [item]
    response.output_format = output_format
    return response


def _make_client() -> MagicMock:
    client = MagicMock()
    client.images.generate = AsyncMock(return_value=_image_response())
    client.images.edit = AsyncMock(return_value=_image_response())
    client.responses.create = AsyncMock()
    return client


class TestSelectApiSize:
    def test_square(self) -> None:
        assert select_api_size(AspectRatio.SQUARE) == "1024x1024"

    def test_landscape(self) -> None:
        assert select_api_size(AspectRatio.LANDSCAPE_4_3) == "1536x1024"
        assert select_api_size(AspectRatio.LANDSCAPE_16_9) == "1536x1024"

    def test_portrait(self) -> None:
        assert select_api_size(AspectRatio.PORTRAIT_3_4) == "1024x1536"
        assert select_api_size(AspectRatio.PORTRAIT_9_16) == "1024x1536"


class TestOpenAIBackend:
    def test_requires_key_or_client(self) -> None:
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            OpenAIBackend()

    @pytest.mark.asyncio
    async def test_synthesize_image(self) -> None:
        png = make_png(22)
        client = _make_client()
        client.images.generate.return_value = _image_response(png)
        backend = OpenAIBackend(client=client, image_model="test-model")

        payload = await backend.synthesize_image("A sailor, oil", AspectRatio.PORTRAIT_3_4)

        assert payload.data == png
        kwargs = client.images.generate.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["size"] == "1024x1536"
        assert kwargs["prompt"] == "A sailor, oil"

    @pytest.mark.asyncio
    async def test_edit_uploads_reference(self) -> None:
        client = _make_client()
        reference = ImagePayload(data=make_png(23))

        await OpenAIBackend(client=client).edit_image(reference, "Re-imagine", AspectRatio.SQUARE)

        kwargs = client.images.edit.call_args.kwargs
        assert kwargs["image"] == ("reference.png", reference.data, "image/png")
        assert kwargs["prompt"] == "Re-imagine"

    @pytest.mark.asyncio
    async def test_empty_data_is_malformed(self) -> None:
        client = _make_client()
        response = MagicMock()
        response.data = []
        client.images.generate.return_value = response

        with pytest.raises(MalformedResultError):
            await OpenAIBackend(client=client).synthesize_image("x", AspectRatio.SQUARE)

    @pytest.mark.asyncio
    async def test_invalid_base64_is_malformed(self) -> None:
        client = _make_client()
        item = MagicMock()
        item.b64_json = "%%% not base64 %%%"
        client.images.generate.return_value.data = [item]

        with pytest.raises(MalformedResultError):
            await OpenAIBackend(client=client).synthesize_image("x", AspectRatio.SQUARE)

    @pytest.mark.asyncio
    async def test_status_error_is_wrapped(self) -> None:
        client = _make_client()
        client.images.generate.side_effect = APIStatusError(
            "Service unavailable", response=MagicMock(status_code=503, headers={}), body=None
        )

        with pytest.raises(ProviderError) as exc_info:
            await OpenAIBackend(client=client).synthesize_image("x", AspectRatio.SQUARE)

        assert exc_info.value.status_code == 503
        assert not is_client_error(exc_info.value)

    @pytest.mark.asyncio
    async def test_content_policy_rejection_is_moderation(self) -> None:
        client = _make_client()
        client.images.generate.side_effect = BadRequestError(
            "Your request was rejected as a result of our safety system. code: moderation_blocked",
            response=MagicMock(status_code=400, headers={}),
            body=None,
        )

        with pytest.raises(ProviderError) as exc_info:
            await OpenAIBackend(client=client).synthesize_image("x", AspectRatio.SQUARE)

        assert is_moderation_failure(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_error_is_wrapped(self) -> None:
        client = _make_client()
        client.images.generate.side_effect = APIConnectionError(request=MagicMock())

        with pytest.raises(ProviderError) as exc_info:
            await OpenAIBackend(client=client).synthesize_image("x", AspectRatio.SQUARE)

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_commentary_via_responses_api(self) -> None:
        client = _make_client()
        client.responses.create.return_value = MagicMock(
            output_text=json.dumps(
                {
                    "technique": "Scumbling",
                    "palette": ["Prussian Blue", "Naples Yellow", "Ivory Black", "Rose Madder"],
                    "mood": "Stormy",
                    "challenge": "Work from dark to light",
                }
            )
        )
        image = ImagePayload(data=make_png(24))

        notes = await OpenAIBackend(client=client, commentary_model="vision").synthesize_commentary(
            image, "A sailor", ArtStyle.OIL
        )

        assert notes.technique == "Scumbling"
        kwargs = client.responses.create.call_args.kwargs
        assert kwargs["model"] == "vision"
        assert kwargs["text"] == {"format": {"type": "json_object"}}
        content = kwargs["input"][0]["content"]
        assert content[1] == {"type": "input_image", "image_url": image.to_data_url()}

    @pytest.mark.asyncio
    async def test_commentary_palette_bounds(self) -> None:
        client = _make_client()
        client.responses.create.return_value = MagicMock(
            output_text=json.dumps({"technique": "t", "palette": ["one", "two"], "mood": "m", "challenge": "c"})
        )

        with pytest.raises(MalformedResultError, match="palette"):
            await OpenAIBackend(client=client).synthesize_commentary(
                ImagePayload(data=make_png(25)), "A sailor", ArtStyle.OIL
            )
