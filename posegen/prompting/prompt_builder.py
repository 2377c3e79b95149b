"""Request assembly for pose generation.

This module is intentionally narrow: it only builds the multimodal request from
already encoded images and already validated options. Aspect-ratio detection,
encoding, transport and response handling happen outside this module.

Design constraints:
    - Deterministic construction for identical inputs.
    - Fixed ordering of image parts and instruction fragments.
    - No hidden side effects (no I/O, no global state mutation).

Part ordering guarantee:
    character image, pose reference (if any), additional references in list
    order, then exactly one text part. The service reads the text last, after
    every image it refers to.

Prompt safety model:
    User text is interpolated as a raw string. Content policy is enforced by
    the remote service, not here.
"""

from dataclasses import dataclass, field

from posegen.core.types import EncodedImage, Quality
from posegen.llm.provider_config import RESPONSE_MODALITIES


# =========================================================
# INSTRUCTION FRAGMENTS
# =========================================================

POSE_PRIORITY_DIRECTIVE = (
    "PRIORITY ONE: Replicate the exact pose from the provided pose reference image. "
    "The final character's posture, limb positions, and angle must precisely match "
    "the reference pose. This is the most critical instruction. "
)

BACKGROUND_DIRECTIVE = "Place the character on a solid white background. "

QUALITY_TEMPLATES = {
    Quality.STANDARD: (
        "The output must be a clear, good quality, {ratio_text} "
        "with simple, clean lighting."
    ),
    Quality.HIGH: (
        "The output must be a high-resolution, detailed, {ratio_text} "
        "with professional studio lighting. The focus should be sharp."
    ),
    Quality.ULTRA: (
        "The output must be a photorealistic, ultra-detailed, 8k resolution, {ratio_text}. "
        "The lighting should be cinematic and dramatic, highlighting the character's "
        "form and texture. The focus must be razor-sharp. Colors must be rich and "
        "perfectly balanced."
    ),
}


# =========================================================
# REQUEST SHAPES
# =========================================================

@dataclass(frozen=True)
class ImagePart:
    """Inline image part."""

    image: EncodedImage

    def to_payload(self) -> dict:
        return {
            "inline_data": {
                "mime_type": self.image.mime_type,
                "data": self.image.data,
            }
        }


@dataclass(frozen=True)
class TextPart:
    """Text instruction part."""

    text: str

    def to_payload(self) -> dict:
        return {"text": self.text}


@dataclass(frozen=True)
class GenerationRequest:
    """Ordered parts plus requested response modalities."""

    parts: tuple
    response_modalities: tuple[str, ...] = field(default=RESPONSE_MODALITIES)

    @property
    def instruction(self) -> str:
        """Text of the trailing instruction part."""
        return self.parts[-1].text

    def to_payload(self) -> dict:
        """Serialize to the `generateContent` REST body."""
        return {
            "contents": [{"parts": [part.to_payload() for part in self.parts]}],
            "generationConfig": {"responseModalities": list(self.response_modalities)},
        }


# =========================================================
# BUILDERS
# =========================================================

def build_quality_instructions(quality, aspect_ratio: str) -> str:
    """Return the fixed quality template for `quality` at `aspect_ratio`.

    Unrecognized quality values use the Ultra template.
    """
    ratio_text = f"an image with a {aspect_ratio} aspect ratio"
    template = QUALITY_TEMPLATES[Quality.parse(quality)]
    return template.format(ratio_text=ratio_text)


def build_pose_instruction(
    has_pose_reference: bool,
    prompt: str,
    quality,
    aspect_ratio: str,
) -> str:
    """Concatenate the text instruction.

    Component order:
        1) pose priority directive (only with a pose reference)
        2) trimmed user prompt plus ". " (only when non-empty)
        3) background directive
        4) quality template
    """
    instruction = ""

    if has_pose_reference:
        instruction += POSE_PRIORITY_DIRECTIVE

    cleaned = (prompt or "").strip()
    if cleaned:
        instruction += f"{cleaned}. "

    instruction += BACKGROUND_DIRECTIVE
    instruction += build_quality_instructions(quality, aspect_ratio)
    return instruction


def build_generation_request(
    character: EncodedImage,
    pose_reference: EncodedImage | None,
    references: list[EncodedImage],
    prompt: str,
    quality,
    aspect_ratio: str,
) -> GenerationRequest:
    """Build the full multimodal request.

    Args:
        character: Encoded character image (always first).
        pose_reference: Encoded pose reference or `None`.
        references: Encoded additional references, in user order.
        prompt: Raw user prompt; may be empty.
        quality: `Quality` or raw value.
        aspect_ratio: `"W:H"` string embedded in the quality template.

    Returns:
        `GenerationRequest` with image parts first and the text part last.
    """
    images = [character]
    if pose_reference is not None:
        images.append(pose_reference)
    images.extend(references)

    instruction = build_pose_instruction(
        pose_reference is not None,
        prompt,
        quality,
        aspect_ratio,
    )

    parts = tuple(ImagePart(image) for image in images) + (TextPart(instruction),)
    return GenerationRequest(parts=parts)
