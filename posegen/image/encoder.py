"""Base64 encoding of selected image resources.

Processing flow:
    resource -> bytes (worker thread) -> base64 text -> `EncodedImage`.

Base64 handling:
    - Raw bytes are encoded with the standard alphabet.
    - Resources that already hold a `data:<type>;base64,` URI are stripped of
      the prefix instead of being encoded twice.
    - The media type is always the resource's declared type.

Caching:
    None. Every call re-reads and re-encodes the resource.

Error handling strategy:
    Read failures raise `EncodeError`, which aborts the generate action before
    any network call.
"""

import asyncio
import base64

from posegen.core.errors import EncodeError
from posegen.core.types import EncodedImage, ImageResource


DATA_URI_PREFIX = b"data:"


def _encode(resource: ImageResource) -> EncodedImage:
    try:
        content = resource.read_bytes()
    except (OSError, ValueError) as err:
        raise EncodeError(f"Could not read image {resource.name!r}: {err}") from err

    if not content:
        raise EncodeError(f"Image {resource.name!r} is empty")

    if content.startswith(DATA_URI_PREFIX) and b"," in content:
        header, payload = content.split(b",", 1)
        if header.endswith(b";base64"):
            try:
                data = payload.decode("ascii").strip()
            except UnicodeDecodeError as err:
                raise EncodeError(f"Image {resource.name!r} holds a malformed data URI") from err
            return EncodedImage(data=data, mime_type=resource.mime_type)

    encoded = base64.b64encode(content).decode("ascii")
    return EncodedImage(data=encoded, mime_type=resource.mime_type)


async def encode_image(resource: ImageResource) -> EncodedImage:
    """Encode one resource.

    Raises:
        EncodeError: Resource cannot be read or is empty.
    """
    return await asyncio.to_thread(_encode, resource)


async def encode_images(resources) -> list[EncodedImage]:
    """Encode several resources concurrently, keeping input order.

    Raises:
        EncodeError: First read failure among the resources.
    """
    resources = list(resources)
    if not resources:
        return []

    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(encode_image(resource)) for resource in resources]
    except ExceptionGroup as eg:
        raise eg.exceptions[0]

    return [task.result() for task in tasks]
