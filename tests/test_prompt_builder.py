"""Tests for request construction."""

import pytest

from posegen.core.types import EncodedImage, Quality
from posegen.prompting.prompt_builder import (
    BACKGROUND_DIRECTIVE,
    POSE_PRIORITY_DIRECTIVE,
    ImagePart,
    TextPart,
    build_generation_request,
    build_pose_instruction,
    build_quality_instructions,
)

CHARACTER = EncodedImage(data="Y2hhcmFjdGVy", mime_type="image/png")
POSE = EncodedImage(data="cG9zZQ==", mime_type="image/jpeg")
REFERENCES = [
    EncodedImage(data="cmVmMQ==", mime_type="image/webp"),
    EncodedImage(data="cmVmMg==", mime_type="image/png"),
]


@pytest.mark.parametrize("pose", [None, POSE])
@pytest.mark.parametrize("references", [[], REFERENCES[:1], REFERENCES])
def test_parts_are_ordered_images_then_single_text(pose, references):
    request = build_generation_request(CHARACTER, pose, references, "", Quality.HIGH, "1:1")

    expected_images = [CHARACTER] + ([pose] if pose else []) + references
    image_parts = request.parts[:-1]

    assert [part.image for part in image_parts] == expected_images
    assert all(isinstance(part, ImagePart) for part in image_parts)
    assert isinstance(request.parts[-1], TextPart)
    assert sum(isinstance(part, TextPart) for part in request.parts) == 1


def test_pose_directive_leads_instruction_when_pose_present():
    request = build_generation_request(CHARACTER, POSE, [], "kneeling", Quality.HIGH, "4:3")

    assert request.instruction.startswith(POSE_PRIORITY_DIRECTIVE)


def test_pose_directive_absent_without_pose_reference():
    instruction = build_pose_instruction(False, "kneeling", Quality.HIGH, "4:3")

    assert "PRIORITY ONE" not in instruction
    assert instruction.startswith("kneeling. ")


def test_user_prompt_is_trimmed_and_terminated():
    instruction = build_pose_instruction(False, "  holding a glowing sword  ", Quality.STANDARD, "1:1")

    assert instruction.startswith("holding a glowing sword. " + BACKGROUND_DIRECTIVE)


@pytest.mark.parametrize("prompt", ["", "   ", None])
def test_blank_prompt_is_omitted(prompt):
    instruction = build_pose_instruction(False, prompt, Quality.HIGH, "1:1")

    assert instruction.startswith(BACKGROUND_DIRECTIVE)


def test_instruction_fragments_follow_fixed_order():
    instruction = build_pose_instruction(True, "jumping", Quality.ULTRA, "16:9")

    pose_at = instruction.index("PRIORITY ONE")
    prompt_at = instruction.index("jumping.")
    background_at = instruction.index("solid white background")
    quality_at = instruction.index("photorealistic")

    assert pose_at < prompt_at < background_at < quality_at


def test_quality_templates_are_exclusive():
    standard = build_quality_instructions(Quality.STANDARD, "1:1")
    high = build_quality_instructions(Quality.HIGH, "1:1")
    ultra = build_quality_instructions(Quality.ULTRA, "1:1")

    assert "photorealistic" not in standard and "8k" not in standard
    assert "photorealistic" in ultra and "8k" in ultra
    assert "simple, clean lighting" not in ultra
    assert "professional studio lighting" in high
    assert len({standard, high, ultra}) == 3


@pytest.mark.parametrize("quality", ["Cinematic", "", None, "ultra"])
def test_unrecognized_quality_uses_ultra_template(quality):
    assert build_quality_instructions(quality, "3:2") == build_quality_instructions(Quality.ULTRA, "3:2")


def test_quality_template_embeds_aspect_ratio():
    assert "an image with a 16:9 aspect ratio" in build_quality_instructions("Standard", "16:9")


def test_to_payload_matches_service_shape():
    request = build_generation_request(CHARACTER, None, [], "", Quality.HIGH, "1:1")

    payload = request.to_payload()

    assert payload["generationConfig"] == {"responseModalities": ["IMAGE", "TEXT"]}
    parts = payload["contents"][0]["parts"]
    assert parts[0] == {"inline_data": {"mime_type": "image/png", "data": "Y2hhcmFjdGVy"}}
    assert parts[1] == {"text": request.instruction}
