"""Shared pytest fixtures for atelier tests."""

from __future__ import annotations

import asyncio
from io import BytesIO
from itertools import count

from PIL import Image
import pytest

from atelier.core.api.retry import RetryPolicy
from atelier.core.caching import InFlightRegistry, MemoryResultCache
from atelier.core.guard import StaleResponseGuard
from atelier.core.history import HistoryStore, MemoryHistoryStorage
from atelier.core.models import (
    ArtStyle,
    AspectRatio,
    GenerationResult,
    ImagePayload,
    Inspiration,
)
from atelier.core.orchestrator import GenerationOrchestrator
from atelier.core.providers.base import ProviderType
from atelier.core.session import StudioSession

# Auto seeds start high so they never collide with explicit small seeds
_colours = count(10_000)


def make_png(seed: int | None = None, size: tuple[int, int] = (8, 8)) -> bytes:
    """Small valid PNG; distinct seeds give distinct bytes."""
    if seed is None:
        seed = next(_colours)
    colour = (seed % 256, (seed // 256) % 256, 128)
    img = Image.new("RGB", size, colour)
    buf = BytesIO()
    img.save(buf, "PNG")
    return buf.getvalue()


def make_inspiration(**overrides: object) -> Inspiration:
    fields: dict[str, object] = {
        "technique": "Wet-on-wet washes for the sky",
        "palette": ["Ultramarine", "Burnt Sienna", "Payne's Grey"],
        "mood": "Quiet and contemplative",
        "challenge": "Leave the highlights as untouched paper",
    }
    fields.update(overrides)
    return Inspiration.model_validate(fields)


def make_result(subject: str = "A sailor", seed: int | None = None, **overrides: object) -> GenerationResult:
    fields: dict[str, object] = {
        "artifact": ImagePayload(data=make_png(seed)),
        "subject": subject,
        "style": ArtStyle.WATERCOLOR,
        "aspect_ratio": AspectRatio.SQUARE,
        "inspiration": make_inspiration(),
    }
    fields.update(overrides)
    return GenerationResult.model_validate(fields)


class FakeBackend:
    """In-process GenerationBackend.

    Every image call returns a fresh, distinct PNG. Optional gates hold a
    stage open until the test releases it; queued errors are raised in order
    before calls start succeeding.
    """

    provider_type = ProviderType.GEMINI

    def __init__(self) -> None:
        self.image_calls: list[tuple[str, AspectRatio]] = []
        self.edit_calls: list[tuple[ImagePayload, str, AspectRatio]] = []
        self.commentary_calls: list[tuple[ImagePayload, str, ArtStyle]] = []
        self.image_errors: list[BaseException] = []
        self.commentary_errors: list[BaseException] = []
        self.image_gate: asyncio.Event | None = None
        self.commentary_gate: asyncio.Event | None = None
        self.inspiration = make_inspiration()

    @property
    def remote_calls(self) -> int:
        return len(self.image_calls) + len(self.edit_calls) + len(self.commentary_calls)

    async def synthesize_image(self, prompt: str, aspect_ratio: AspectRatio) -> ImagePayload:
        self.image_calls.append((prompt, aspect_ratio))
        return await self._image()

    async def edit_image(
        self,
        reference: ImagePayload,
        prompt: str,
        aspect_ratio: AspectRatio,
    ) -> ImagePayload:
        self.edit_calls.append((reference, prompt, aspect_ratio))
        return await self._image()

    async def synthesize_commentary(
        self,
        image: ImagePayload,
        subject: str,
        style: ArtStyle,
    ) -> Inspiration:
        self.commentary_calls.append((image, subject, style))
        if self.commentary_gate is not None:
            await self.commentary_gate.wait()
        if self.commentary_errors:
            raise self.commentary_errors.pop(0)
        return self.inspiration

    async def _image(self) -> ImagePayload:
        if self.image_gate is not None:
            await self.image_gate.wait()
        if self.image_errors:
            raise self.image_errors.pop(0)
        return ImagePayload(data=make_png())


class RecordingSleep:
    """Injectable backoff sleep that records delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def png_bytes() -> bytes:
    return make_png(7)


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def history_storage() -> MemoryHistoryStorage:
    return MemoryHistoryStorage()


@pytest.fixture
def orchestrator(
    fake_backend: FakeBackend,
    history_storage: MemoryHistoryStorage,
    recording_sleep: RecordingSleep,
) -> GenerationOrchestrator:
    return GenerationOrchestrator(
        backend=fake_backend,
        cache=MemoryResultCache(),
        registry=InFlightRegistry(),
        guard=StaleResponseGuard(),
        history=HistoryStore(history_storage),
        retry_policy=RetryPolicy(max_retries=3, initial_delay_s=1.0),
        sleep=recording_sleep,
    )


@pytest.fixture
def session(orchestrator: GenerationOrchestrator) -> StudioSession:
    return StudioSession(orchestrator)
