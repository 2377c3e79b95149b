"""Generation orchestrator used by the state controller.

Role in pipeline:
    - Receives one fully built `GenerationRequest` and an image count N.
    - Issues N identical calls concurrently (N independent samples).
    - Reduces the N responses to the list of items that carry an image.

Concurrency model:
    Fan-out/fan-in inside one `asyncio.TaskGroup`. Each task captures its own
    call failure, so the group always waits for every call to settle and no
    partial result is returned early. Output order follows submission order.

Error handling strategy:
    - A failed call counts as "no image" for that sample.
    - Every call failed -> `GenerationFailedError` with the first failure.
    - Otherwise no image in any response -> `GenerationEmptyError`.
    - No retries.

Determinism:
    Aggregation is deterministic for fixed responses. Generated content is not.
"""

import asyncio
import logging
from typing import Protocol

from posegen.core.errors import GenerationEmptyError, GenerationFailedError, ValidationError
from posegen.core.types import GeneratedItem
from posegen.llm.client import GeminiImageClient
from posegen.llm.provider_config import MAX_IMAGE_COUNT, MIN_IMAGE_COUNT
from posegen.prompting.prompt_builder import GenerationRequest


logger = logging.getLogger(__name__)


class GenerationClient(Protocol):
    """Minimal async interface required from the transport."""

    async def generate_content(self, payload: dict) -> dict:
        ...


def extract_generated_item(response: dict) -> GeneratedItem:
    """Pull the first inline image and the first text part out of a response.

    Both the REST spelling (`inlineData`/`mimeType`) and the snake_case
    spelling (`inline_data`/`mime_type`) are accepted. Responses without
    candidates, or with only text, yield an item whose `image` is `None`.
    """
    if not isinstance(response, dict):
        return GeneratedItem()

    candidates = response.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return GeneratedItem()

    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return GeneratedItem()

    parts = content.get("parts")
    if not isinstance(parts, list):
        return GeneratedItem()

    image = None
    caption = None

    for part in parts:
        if not isinstance(part, dict):
            continue

        blob = part.get("inlineData") or part.get("inline_data")
        if blob:
            if image is None and isinstance(blob, dict) and blob.get("data"):
                mime_type = blob.get("mimeType") or blob.get("mime_type") or "image/png"
                image = f"data:{mime_type};base64,{blob['data']}"
            continue

        text = part.get("text")
        if isinstance(text, str) and text and caption is None:
            caption = text

    return GeneratedItem(image=image, caption=caption)


class PoseGenerationService:
    """Fan-out/fan-in wrapper around the generation transport.

    Args:
        client: Transport implementing `generate_content`; defaults to a
            `GeminiImageClient` configured from the environment.
    """

    def __init__(self, client: GenerationClient | None = None) -> None:
        self.client = client if client is not None else GeminiImageClient()

    async def _sample(self, payload: dict, index: int):
        try:
            response = await self.client.generate_content(payload)
        except Exception as err:
            logger.warning("Generation call %d failed: %s", index + 1, err)
            return err

        try:
            return extract_generated_item(response)
        except Exception as err:
            logger.warning("Generation response %d could not be read: %s", index + 1, err)
            return GeneratedItem()

    async def generate(self, request: GenerationRequest, image_count: int) -> list[GeneratedItem]:
        """Run `image_count` generation calls and return the usable items.

        Raises:
            ValidationError: `image_count` outside the supported range.
            GenerationFailedError: Every call failed at the transport level.
            GenerationEmptyError: No response contained an image.
        """
        if not MIN_IMAGE_COUNT <= image_count <= MAX_IMAGE_COUNT:
            raise ValidationError(
                f"Number of images must be between {MIN_IMAGE_COUNT} and {MAX_IMAGE_COUNT}."
            )

        payload = request.to_payload()
        logger.info("Issuing %d generation call(s) with %d part(s)", image_count, len(request.parts))

        async with asyncio.TaskGroup() as group:
            tasks = [
                group.create_task(self._sample(payload, index))
                for index in range(image_count)
            ]

        outcomes = [task.result() for task in tasks]
        failures = [outcome for outcome in outcomes if isinstance(outcome, Exception)]
        items = [
            outcome
            for outcome in outcomes
            if isinstance(outcome, GeneratedItem) and outcome.image is not None
        ]

        logger.info(
            "Generation settled: %d image(s), %d empty, %d failed",
            len(items),
            len(outcomes) - len(items) - len(failures),
            len(failures),
        )

        if items:
            return items

        if len(failures) == len(outcomes):
            raise GenerationFailedError(str(failures[0]) or type(failures[0]).__name__)

        raise GenerationEmptyError()
