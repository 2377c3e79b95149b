"""Aspect-ratio estimation for the generated image.

Processing flow:
    1. Read the selected resource bytes.
    2. Decode only the image header with Pillow to get width/height.
    3. Reduce `width:height` by their greatest common divisor.

Resource handling:
    The Pillow image is opened in a `with` block, so the decoder handle is
    closed on both success and failure paths. Decoding runs in a worker thread
    to keep the event loop free.

Error handling strategy:
    Any decode failure, including degenerate (0-sized) images, raises
    `DecodeError`. `resolve_aspect_ratio` recovers from it with `"1:1"`.
"""

import asyncio
import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from posegen.core.errors import DecodeError
from posegen.core.types import ImageResource


logger = logging.getLogger(__name__)

DEFAULT_ASPECT_RATIO = "1:1"


def _gcd(a: int, b: int) -> int:
    while b:
        a, b = b, a % b
    return a


def reduce_ratio(width: int, height: int) -> str:
    """Return `"W:H"` in lowest terms.

    Raises:
        DecodeError: Either dimension is not positive.
    """
    if width <= 0 or height <= 0:
        raise DecodeError(f"Degenerate image dimensions {width}x{height}")
    divisor = _gcd(width, height)
    return f"{width // divisor}:{height // divisor}"


def _read_dimensions(resource: ImageResource) -> tuple[int, int]:
    try:
        content = resource.read_bytes()
        with Image.open(BytesIO(content)) as img:
            return img.size
    except (OSError, ValueError, UnidentifiedImageError, Image.DecompressionBombError) as err:
        raise DecodeError(f"Could not decode {resource.name!r}: {err}") from err


async def estimate_aspect_ratio(resource: ImageResource) -> str:
    """Decode `resource` and return its reduced aspect ratio.

    Examples:
        1920x1080 -> "16:9", 640x480 -> "4:3", 500x500 -> "1:1".

    Raises:
        DecodeError: Resource is not a decodable image or has no area.
    """
    width, height = await asyncio.to_thread(_read_dimensions, resource)
    return reduce_ratio(width, height)


async def resolve_aspect_ratio(
    character: ImageResource,
    pose_reference: ImageResource | None = None,
) -> str:
    """Pick the ratio for a generate action.

    The pose reference wins when present, otherwise the character image is
    used. A failed decode is not retried against the other image; it falls
    straight back to `DEFAULT_ASPECT_RATIO`.
    """
    source = pose_reference if pose_reference is not None else character
    try:
        return await estimate_aspect_ratio(source)
    except DecodeError as err:
        logger.warning(
            "Could not determine aspect ratio automatically, falling back to %s: %s",
            DEFAULT_ASPECT_RATIO,
            err,
        )
        return DEFAULT_ASPECT_RATIO
