"""Error taxonomy for the pose generation pipeline.

Architectural role:
    Defines the exceptions raised by lower layers and interpreted by the state
    controller and the API adapters.

Surfacing model:
    - `ValidationError`: blocks an action before any I/O; shown to the user.
    - `DecodeError`: aspect-ratio failure; recovered locally, never shown.
    - `EncodeError`: fatal to the current action; shown to the user.
    - `GenerationFailedError`: transport/service failure; shown with a fixed
      prefix.
    - `GenerationEmptyError`: no usable image came back; shown with a fixed
      prefix.

Retry behavior:
    None of these errors is retried automatically.
"""

GENERATION_ERROR_PREFIX = "Failed to generate pose(s): "

EMPTY_GENERATION_MESSAGE = (
    "API did not return any images. This could be due to a safety policy "
    "violation or an issue with the prompt."
)


class PoseGenerationError(Exception):
    """Base class for every error the controller turns into a user message."""


class ValidationError(PoseGenerationError):
    """Required input is missing or out of range."""


class DecodeError(PoseGenerationError):
    """Image could not be decoded to read its pixel dimensions."""


class EncodeError(PoseGenerationError):
    """Image resource could not be read or base64-encoded."""


class GenerationFailedError(PoseGenerationError):
    """Transport or service failure while generating.

    Args:
        detail: Underlying error message, kept on `self.detail`.
    """

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"{GENERATION_ERROR_PREFIX}{detail}")


class GenerationEmptyError(PoseGenerationError):
    """The service answered but none of the responses carried an image.

    Safety-policy rejection, an unusable prompt and transient faults all look
    the same from here.
    """

    def __init__(self, detail: str = EMPTY_GENERATION_MESSAGE):
        self.detail = detail
        super().__init__(f"{GENERATION_ERROR_PREFIX}{detail}")
