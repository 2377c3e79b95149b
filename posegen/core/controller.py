"""Application state controller for the pose generator.

Architectural role:
    Owns every user-facing value (selected images, prompt, options, request
    state) and wires the image, prompting and generation layers together when
    the user asks for a generation. API/CLI adapters call the action methods
    and render the returned snapshots.

Control-flow model (`generate`):
    1. Reject re-submission while a generation is in flight.
    2. Validate that a character image is selected; otherwise fail before I/O.
    3. Enter `loading` (clears previous results and error together).
    4. Resolve the aspect ratio (failures fall back to "1:1").
    5. Encode all selected images, build the request, run the orchestrator.
    6. Settle into `success(results)` or `error(message)`.

State model:
    `RequestState` snapshots are immutable. The transition helpers below are
    pure functions; the controller only swaps `self._state` at the start of a
    generate action and when it settles.

Resource ownership:
    Preview handles are acquired when an image is selected and released when
    it is replaced, removed, or when the controller is closed.

Error handling strategy:
    `PoseGenerationError` messages are shown verbatim. Anything else is
    logged with traceback and shown as a generic message.
"""

import logging
from dataclasses import dataclass, replace

from posegen.core.errors import PoseGenerationError, ValidationError
from posegen.core.types import (
    GeneratedItem,
    GenerationOptions,
    ImageResource,
    Quality,
    RequestState,
)
from posegen.image.aspect_ratio import resolve_aspect_ratio
from posegen.image.encoder import encode_images
from posegen.image.service import PoseGenerationService
from posegen.prompting.prompt_builder import build_generation_request


logger = logging.getLogger(__name__)

MISSING_CHARACTER_MESSAGE = "Please upload a character image to begin."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."


# =========================================================
# STATE TRANSITIONS
# =========================================================

def begin_generation() -> RequestState:
    return RequestState(is_loading=True)


def finish_success(results) -> RequestState:
    return RequestState(results=tuple(results))


def finish_error(message: str) -> RequestState:
    return RequestState(error=message)


# =========================================================
# SELECTED ASSETS
# =========================================================

@dataclass
class ImageAsset:
    """A selected resource and the preview handle created for it, if any."""

    resource: ImageResource
    preview: object | None = None

    @property
    def preview_url(self) -> str | None:
        return getattr(self.preview, "url", None)

    def release(self) -> None:
        if self.preview is not None:
            self.preview.release()


@dataclass(frozen=True)
class StudioSnapshot:
    """Everything an adapter needs to render the current screen."""

    state: RequestState
    options: GenerationOptions
    has_character: bool
    character_preview: str | None
    has_pose_reference: bool
    pose_reference_preview: str | None
    reference_previews: tuple[str | None, ...]

    @property
    def can_generate(self) -> bool:
        return self.has_character and not self.state.is_loading


class PoseStudioController:
    """Explicit state machine behind the pose generator UI.

    Args:
        service: Generation orchestrator; defaults to `PoseGenerationService()`.
        previews: Optional `PreviewStore`-like object with `acquire(resource)`.
            Without it no preview handles are created.
    """

    def __init__(self, service: PoseGenerationService | None = None, *, previews=None) -> None:
        self.service = service if service is not None else PoseGenerationService()
        self.previews = previews

        self._character: ImageAsset | None = None
        self._pose_reference: ImageAsset | None = None
        self._references: list[ImageAsset] = []
        self._options = GenerationOptions()
        self._state = RequestState()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # -----------------------------------------------------
    # Read access
    # -----------------------------------------------------

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def options(self) -> GenerationOptions:
        return self._options

    @property
    def character(self) -> ImageAsset | None:
        return self._character

    @property
    def pose_reference(self) -> ImageAsset | None:
        return self._pose_reference

    @property
    def references(self) -> tuple[ImageAsset, ...]:
        return tuple(self._references)

    def snapshot(self) -> StudioSnapshot:
        return StudioSnapshot(
            state=self._state,
            options=self._options,
            has_character=self._character is not None,
            character_preview=self._character.preview_url if self._character else None,
            has_pose_reference=self._pose_reference is not None,
            pose_reference_preview=(
                self._pose_reference.preview_url if self._pose_reference else None
            ),
            reference_previews=tuple(asset.preview_url for asset in self._references),
        )

    # -----------------------------------------------------
    # Image selection
    # -----------------------------------------------------

    def _make_asset(self, resource: ImageResource) -> ImageAsset:
        preview = None
        if self.previews is not None:
            try:
                preview = self.previews.acquire(resource)
            except (OSError, ValueError):
                logger.warning("Could not create preview for %s", resource.name, exc_info=True)
        return ImageAsset(resource=resource, preview=preview)

    def select_character_image(self, resource: ImageResource) -> StudioSnapshot:
        previous, self._character = self._character, self._make_asset(resource)
        if previous is not None:
            previous.release()
        return self.snapshot()

    def select_pose_reference_image(self, resource: ImageResource) -> StudioSnapshot:
        previous, self._pose_reference = self._pose_reference, self._make_asset(resource)
        if previous is not None:
            previous.release()
        return self.snapshot()

    def clear_pose_reference_image(self) -> StudioSnapshot:
        previous, self._pose_reference = self._pose_reference, None
        if previous is not None:
            previous.release()
        return self.snapshot()

    def add_reference_image(self, resource: ImageResource) -> StudioSnapshot:
        self._references.append(self._make_asset(resource))
        return self.snapshot()

    def remove_reference_image(self, index: int) -> StudioSnapshot:
        """Remove the additional reference at `index`; later ones shift down.

        Raises:
            ValidationError: `index` does not address an existing reference.
        """
        if not 0 <= index < len(self._references):
            raise ValidationError(f"No reference image at position {index}.")
        removed = self._references.pop(index)
        removed.release()
        return self.snapshot()

    # -----------------------------------------------------
    # Options
    # -----------------------------------------------------

    def set_prompt(self, text: str) -> StudioSnapshot:
        self._options = replace(self._options, prompt=text or "")
        return self.snapshot()

    def set_image_count(self, count: int) -> StudioSnapshot:
        try:
            count = int(count)
        except (TypeError, ValueError) as err:
            raise ValidationError(f"Invalid number of images: {count!r}") from err
        self._options = replace(self._options, image_count=count)
        return self.snapshot()

    def set_quality(self, quality) -> StudioSnapshot:
        self._options = replace(self._options, quality=Quality.parse(quality))
        return self.snapshot()

    # -----------------------------------------------------
    # Generate action
    # -----------------------------------------------------

    async def generate(self) -> RequestState:
        """Run one generate action and return the settled `RequestState`.

        Inputs are captured when the action starts; changes made while it is
        in flight apply to the next action only.
        """
        if self._state.is_loading:
            logger.warning("Generate requested while a generation is already in flight")
            return self._state

        if self._character is None:
            self._state = finish_error(MISSING_CHARACTER_MESSAGE)
            return self._state

        character = self._character.resource
        pose_reference = self._pose_reference.resource if self._pose_reference else None
        references = [asset.resource for asset in self._references]
        options = self._options

        self._state = begin_generation()
        logger.info(
            "Generation started: pose_reference=%s references=%d count=%d quality=%s",
            pose_reference is not None,
            len(references),
            options.image_count,
            options.quality.value,
        )

        try:
            results = await self._run_generation(character, pose_reference, references, options)
        except PoseGenerationError as err:
            self._state = finish_error(str(err))
        except Exception:
            logger.exception("Pose generation failed")
            self._state = finish_error(UNEXPECTED_ERROR_MESSAGE)
        else:
            self._state = finish_success(results)

        return self._state

    async def _run_generation(
        self,
        character: ImageResource,
        pose_reference: ImageResource | None,
        references: list[ImageResource],
        options: GenerationOptions,
    ) -> list[GeneratedItem]:
        aspect_ratio = await resolve_aspect_ratio(character, pose_reference)

        sources = [character]
        if pose_reference is not None:
            sources.append(pose_reference)
        sources.extend(references)

        encoded = await encode_images(sources)
        offset = 2 if pose_reference is not None else 1

        request = build_generation_request(
            encoded[0],
            encoded[1] if pose_reference is not None else None,
            encoded[offset:],
            options.prompt,
            options.quality,
            aspect_ratio,
        )
        return await self.service.generate(request, options.image_count)

    # -----------------------------------------------------
    # Teardown
    # -----------------------------------------------------

    def close(self) -> None:
        """Release every preview handle still held by the controller."""
        assets = [self._character, self._pose_reference, *self._references]
        self._character = None
        self._pose_reference = None
        self._references = []

        for asset in assets:
            if asset is None:
                continue
            try:
                asset.release()
            except Exception:
                logger.exception("Failed to release preview for %s", asset.resource.name)
