"""Style vocabulary and prompt builders.

Maps each ArtStyle to the prompt modifiers sent to the image model and builds
the text prompts for the three remote operations.
"""

from __future__ import annotations

import random

from atelier.core.models import ArtStyle

SAMPLE_SUBJECTS: tuple[str, ...] = (
    "A thoughtful elderly sailor with a weathered face",
    "A young woman with flowers woven into her hair",
    "A mysterious traveler in a wide-brimmed hat",
    "A child laughing in a rain-drenched street",
    "A portrait of a ballet dancer in mid-motion",
    "A jazz musician lost in their saxophone solo",
    "A scholar surrounded by ancient manuscripts",
)

STYLE_MODIFIERS: dict[ArtStyle, str] = {
    ArtStyle.PENCIL: (
        "detailed pencil sketch, professional graphite shading, cross-hatching, fine lines, "
        "white paper background, hand-drawn look, realistic sketching"
    ),
    ArtStyle.CHARCOAL: (
        "expressive charcoal drawing, smudged tonal values, deep blacks, textured paper, "
        "dramatic chiaroscuro, loose gestural marks"
    ),
    ArtStyle.INK_PEN: (
        "fine ink pen illustration, precise linework, stippling and hatching, "
        "high contrast black ink on cream paper"
    ),
    ArtStyle.WATERCOLOR: (
        "soft watercolor painting, heavy paper texture, delicate washes, translucent layering, "
        "artistic bleeds, high quality, ethereal lighting, loose brushwork"
    ),
    ArtStyle.ACRYLIC: (
        "vibrant acrylic painting, bold colors, clean edges, modern art style, smooth gradients, "
        "satin finish, layered pigments"
    ),
    ArtStyle.OIL: (
        "thick oil painting, impasto technique, visible heavy brushstrokes, rich textures, "
        "deep dramatic colors, classic masterpiece style, canvas texture, oil on canvas"
    ),
    ArtStyle.PASTEL: (
        "soft pastel drawing, powdery blended strokes, muted luminous colors, "
        "toothy pastel paper, gentle highlights"
    ),
    ArtStyle.GOUACHE: (
        "opaque gouache painting, flat matte color fields, crisp shapes, "
        "illustrative storybook quality, subtle brush texture"
    ),
    ArtStyle.ABSTRACT: (
        "abstract expressionist portrait, fragmented shapes, bold color blocking, "
        "energetic brushwork, non-literal interpretation"
    ),
    ArtStyle.REALISTIC: (
        "photorealistic painted portrait, lifelike skin tones, accurate anatomy, "
        "natural lighting, fine detail, gallery quality"
    ),
    ArtStyle.MINIMALIST: (
        "minimalist portrait, very few elements, generous negative space, "
        "limited palette, clean simple forms"
    ),
    ArtStyle.LINE_ART: (
        "continuous line art, single weight clean contour lines, no shading, "
        "white background, elegant simplicity"
    ),
    ArtStyle.SILHOUETTE: (
        "minimalist silhouette art, high contrast, solid black figure, atmospheric "
        "single-color background, clean sharp edges, graphic vector style"
    ),
    ArtStyle.SKETCH: (
        "loose sketchbook study, quick construction lines, rough hatching, "
        "unfinished edges, artist's notebook feel"
    ),
    ArtStyle.CARTOON: (
        "stylized cartoon portrait, exaggerated proportions, clean outlines, "
        "flat cel shading, playful character design"
    ),
    ArtStyle.DIGITAL_ART: (
        "polished digital painting, smooth rendering, dynamic lighting, "
        "concept art quality, crisp details, vivid colors"
    ),
}


def style_modifiers(style: ArtStyle) -> str:
    """Prompt modifiers for a style."""
    return STYLE_MODIFIERS[style]


def build_image_prompt(subject: str, style: ArtStyle) -> str:
    """Text-to-image prompt: subject followed by the style modifiers."""
    return f"{subject}, {style_modifiers(style)}"


def build_edit_prompt(subject: str, style: ArtStyle) -> str:
    """Prompt for re-imagining an uploaded reference image."""
    return (
        f"Re-imagine the provided reference image as a portrait of {subject}. "
        f"Keep the composition recognisable but render it as: {style_modifiers(style)}"
    )


def build_commentary_prompt(subject: str, style: ArtStyle) -> str:
    """Prompt asking for painter's inspiration notes about the attached image."""
    return (
        f'Analyze this portrait of "{subject}" created in "{style.value}" style. '
        "Provide artistic inspiration notes for a painter as a JSON object with the keys "
        f'"technique" (a specific {style.value} technique to try), '
        '"palette" (a list of 3-5 pigment names or color descriptions), '
        '"mood" (the emotional tone of the piece) and '
        '"challenge" (a creative challenge for the artist).'
    )


def surprise_subject(rng: random.Random | None = None) -> str:
    """Pick a random sample subject."""
    chooser = rng or random
    return chooser.choice(SAMPLE_SUBJECTS)
