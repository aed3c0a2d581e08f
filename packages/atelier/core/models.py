"""Core data models for Atelier Muse.

Defines the request/result vocabulary shared by every layer:
- ArtStyle / AspectRatio: Fixed enumerations offered to the user
- ImagePayload: Binary image plus mime type (reference uploads and artifacts)
- GenerationRequest: Immutable user request
- Inspiration: Structured painter's commentary for a generated image
- GenerationResult: Artifact + commentary for one completed request
- HistoryEntry: Persisted gallery record (result + replay fields)
- GenerationStatus / StatusUpdate: Presentation-facing progress stream
"""

from __future__ import annotations

import base64
from datetime import datetime, timezone
from enum import Enum
import hashlib

from pydantic import BaseModel, ConfigDict, Field, field_validator

REFERENCE_PLACEHOLDER_SUBJECT = "Re-imagined Study"
GENESIS_PLACEHOLDER_SUBJECT = "Creative Genesis"


class ArtStyle(str, Enum):
    """Artistic medium / style applied to a portrait."""

    PENCIL = "Pencil"
    CHARCOAL = "Charcoal"
    INK_PEN = "Ink / Pen"
    WATERCOLOR = "Watercolor"
    ACRYLIC = "Acrylic"
    OIL = "Oil"
    PASTEL = "Pastel"
    GOUACHE = "Gouache"
    ABSTRACT = "Abstract"
    REALISTIC = "Realistic"
    MINIMALIST = "Minimalist"
    LINE_ART = "Line Art"
    SILHOUETTE = "Silhouette"
    SKETCH = "Sketch"
    CARTOON = "Cartoon / Stylized"
    DIGITAL_ART = "Digital Art"

    @classmethod
    def parse(cls, value: str) -> ArtStyle:
        """Resolve a style from its display value or member name (case-insensitive).

        Raises:
            ValueError: If nothing matches.
        """
        needle = value.strip().lower()
        for style in cls:
            if needle in (style.value.lower(), style.name.lower()):
                return style
        raise ValueError(f"Unknown art style: {value!r}")


class AspectRatio(str, Enum):
    """Supported output aspect ratios."""

    SQUARE = "1:1"
    LANDSCAPE_4_3 = "4:3"
    LANDSCAPE_16_9 = "16:9"
    PORTRAIT_3_4 = "3:4"
    PORTRAIT_9_16 = "9:16"

    @property
    def orientation(self) -> str:
        """'square', 'landscape' or 'portrait'."""
        width, height = (int(part) for part in self.value.split(":"))
        if width == height:
            return "square"
        return "landscape" if width > height else "portrait"


class ImagePayload(BaseModel):
    """Binary image data with its mime type.

    Serialized to JSON with base64-encoded bytes so it can live inside the
    persisted history document.
    """

    model_config = ConfigDict(
        frozen=True,
        ser_json_bytes="base64",
        val_json_bytes="base64",
    )

    data: bytes = Field(min_length=1)
    mime_type: str = Field(default="image/png", pattern=r"^image/[\w.+-]+$")

    @property
    def content_hash(self) -> str:
        """SHA-256 hex digest of the image bytes (artifact identity)."""
        return hashlib.sha256(self.data).hexdigest()

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        """Render as a `data:` URL (for multimodal request payloads)."""
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    @classmethod
    def from_data_url(cls, url: str) -> ImagePayload:
        """Parse a `data:<mime>;base64,<payload>` URL.

        Raises:
            ValueError: If the URL is not a base64 data URL.
        """
        if not url.startswith("data:") or ";base64," not in url:
            raise ValueError("Expected a base64 data URL")
        header, encoded = url[5:].split(";base64,", 1)
        return cls(data=base64.b64decode(encoded), mime_type=header or "image/png")


class GenerationRequest(BaseModel):
    """Immutable user request for one portrait.

    Attributes:
        subject: Free-text subject (may be empty; a placeholder is substituted).
        style: Art style.
        aspect_ratio: Output aspect ratio.
        reference: Optional reference image; requests carrying one are edits
            and are never cached or coalesced.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    subject: str = ""
    style: ArtStyle = ArtStyle.WATERCOLOR
    aspect_ratio: AspectRatio = AspectRatio.SQUARE
    reference: ImagePayload | None = None

    @property
    def has_reference(self) -> bool:
        return self.reference is not None

    @property
    def is_cache_eligible(self) -> bool:
        """Only text-to-image requests are safe to memoize."""
        return self.reference is None

    @property
    def display_subject(self) -> str:
        """Subject shown to the user and used in prompts, never empty."""
        subject = self.subject.strip()
        if subject:
            return subject
        if self.has_reference:
            return REFERENCE_PLACEHOLDER_SUBJECT
        return GENESIS_PLACEHOLDER_SUBJECT


class Inspiration(BaseModel):
    """Painter's commentary for a generated image.

    All four fields are required; the palette holds 3-5 colour names.
    """

    model_config = ConfigDict(frozen=True)

    technique: str = Field(min_length=1)
    palette: tuple[str, ...] = Field(min_length=3, max_length=5)
    mood: str = Field(min_length=1)
    challenge: str = Field(min_length=1)

    @field_validator("technique", "mood", "challenge")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("palette")
    @classmethod
    def _palette_entries(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        cleaned = tuple(colour.strip() for colour in value)
        if any(not colour for colour in cleaned):
            raise ValueError("palette entries must not be blank")
        return cleaned


class GenerationResult(BaseModel):
    """Completed, immutable result of one generation.

    `cache_hit` is presentation metadata only and is never persisted.
    """

    model_config = ConfigDict(frozen=True)

    artifact: ImagePayload
    subject: str
    style: ArtStyle
    aspect_ratio: AspectRatio
    inspiration: Inspiration
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    cache_hit: bool = Field(default=False, exclude=True)

    @property
    def artifact_id(self) -> str:
        return self.artifact.content_hash

    def as_cache_hit(self) -> GenerationResult:
        return self.model_copy(update={"cache_hit": True})


class HistoryEntry(BaseModel):
    """One gallery record: the result plus what is needed to replay it.

    `source_subject` keeps the user's raw text (possibly empty) while
    `result.subject` holds the display subject.
    """

    model_config = ConfigDict(frozen=True)

    result: GenerationResult
    source_subject: str = ""
    had_reference: bool = False

    @property
    def artifact_id(self) -> str:
        return self.result.artifact_id

    @classmethod
    def from_result(cls, result: GenerationResult, request: GenerationRequest) -> HistoryEntry:
        return cls(
            result=result,
            source_subject=request.subject,
            had_reference=request.has_reference,
        )

    def to_request(self, reference: ImagePayload | None = None) -> GenerationRequest:
        """Rebuild the original request for replay.

        The raw subject is kept as entered so an empty one re-derives its
        placeholder and keys the same as the original. Reference uploads are
        not stored, so replaying an edit needs the reference supplied again.

        Raises:
            ValueError: If the entry was an edit and no reference is given,
                or a reference is given for a text-to-image entry
        """
        if self.had_reference and reference is None:
            raise ValueError("Replaying an edited portrait needs its reference image")
        if not self.had_reference and reference is not None:
            raise ValueError("Entry was generated without a reference image")
        return GenerationRequest(
            subject=self.source_subject,
            style=self.result.style,
            aspect_ratio=self.result.aspect_ratio,
            reference=reference,
        )


class HistoryDocument(BaseModel):
    """The whole persisted gallery, stored as one unit."""

    schema_version: int = 1
    entries: list[HistoryEntry] = Field(default_factory=list)


class GenerationStatus(str, Enum):
    """Presentation status, in pipeline order."""

    IDLE = "idle"
    GENERATING_IDEA = "generating_idea"
    LOADING_IMAGE = "loading_image"
    LOADING_INSPIRATION = "loading_inspiration"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (GenerationStatus.SUCCESS, GenerationStatus.ERROR)

    @property
    def is_loading(self) -> bool:
        return self in (
            GenerationStatus.GENERATING_IDEA,
            GenerationStatus.LOADING_IMAGE,
            GenerationStatus.LOADING_INSPIRATION,
        )


class StatusUpdate(BaseModel):
    """One element of the `submit()` status stream."""

    model_config = ConfigDict(frozen=True)

    status: GenerationStatus
    token: int
    result: GenerationResult | None = None
    cache_hit: bool = False
    error_kind: str | None = None
    error_message: str | None = None
