"""Data contracts shared by the controller, image, prompting and API layers.

Architectural role:
    Defines the immutable values that flow through one generate action:
    user-selected resources, their encoded form, generation options, generated
    items and the RequestState snapshot rendered by adapters.

Mutation model:
    Every dataclass here is frozen. The controller replaces values instead of
    mutating them, so a snapshot handed to an adapter never changes under it.

Determinism:
    Purely structural, no I/O beyond `ImageResource.read_bytes`.
"""

import mimetypes
import os
from dataclasses import dataclass, field
from enum import Enum

from posegen.core.errors import ValidationError
from posegen.llm.provider_config import MAX_IMAGE_COUNT, MIN_IMAGE_COUNT


class Quality(str, Enum):
    """Output quality levels offered to the user."""

    STANDARD = "Standard"
    HIGH = "High"
    ULTRA = "Ultra"

    @classmethod
    def parse(cls, value) -> "Quality":
        """Map a raw value to a level; anything unrecognized becomes `ULTRA`."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.ULTRA


@dataclass(frozen=True)
class ImageResource:
    """Binary image resource selected by the user.

    Exactly one of `data` / `path` is expected. `mime_type` is the declared
    media type and is carried through to the encoded form unchanged.
    """

    name: str
    mime_type: str
    data: bytes | None = field(default=None, repr=False)
    path: str | None = None

    @classmethod
    def from_path(cls, path: str, mime_type: str | None = None) -> "ImageResource":
        """Build a path-backed resource, guessing the media type from the suffix."""
        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(path)
        return cls(
            name=os.path.basename(path),
            mime_type=mime_type or "application/octet-stream",
            path=path,
        )

    def read_bytes(self) -> bytes:
        """Return the resource content.

        Raises:
            OSError: Backing file is missing or unreadable.
            ValueError: Resource has neither in-memory data nor a path.
        """
        if self.data is not None:
            return self.data
        if not self.path:
            raise ValueError(f"Image resource {self.name!r} has no content")
        with open(self.path, "rb") as f:
            return f.read()


@dataclass(frozen=True)
class EncodedImage:
    """Base64 payload (no data-URI prefix) plus its media type."""

    data: str = field(repr=False)
    mime_type: str


@dataclass(frozen=True)
class GenerationOptions:
    """User-controlled generation options.

    Raises:
        ValidationError: `image_count` outside the supported range.
    """

    prompt: str = ""
    image_count: int = 1
    quality: Quality = Quality.HIGH

    def __post_init__(self):
        if not MIN_IMAGE_COUNT <= self.image_count <= MAX_IMAGE_COUNT:
            raise ValidationError(
                f"Number of images must be between {MIN_IMAGE_COUNT} and {MAX_IMAGE_COUNT}."
            )


@dataclass(frozen=True)
class GeneratedItem:
    """One generation outcome: a data-URI image and an optional caption."""

    image: str | None = None
    caption: str | None = None


@dataclass(frozen=True)
class RequestState:
    """Snapshot of the generate action as shown to the user.

    Exactly one display condition is active at any time:
    `loading`, `error`, `success` or `initial`.
    """

    is_loading: bool = False
    error: str | None = None
    results: tuple[GeneratedItem, ...] | None = None

    @property
    def status(self) -> str:
        if self.is_loading:
            return "loading"
        if self.error is not None:
            return "error"
        if self.results is not None:
            return "success"
        return "initial"
