"""
Upload validation and preview-handle lifecycle for API adapters.

Architectural role:
- Turn uploaded bytes into validated `ImageResource` values.
- Create preview handles (temporary files served by the HTTP adapter) and
  release them exactly once.
- Adapter-level preprocessing only (no endpoint registration).

Processing lifecycle:
1. Validate declared media type and size of an upload.
2. Wrap the bytes in an `ImageResource` (the binary resource handle).
3. On selection, the controller asks `PreviewStore.acquire` for a preview
   handle; on replacement, removal or teardown it calls `PreviewHandle.release`.

Ownership model:
- Whoever acquires a preview handle owns it and must release it.
- `release()` deletes the backing file once; later calls are no-ops.

Error handling strategy:
- Rejected uploads raise `ValidationError` (mapped to HTTP 400 by adapters).
- Preview write failures raise `OSError` to the caller.
- Release failures are logged and swallowed so teardown always completes.

Side effects:
- Creates the preview directory on first `PreviewStore` construction.
- Writes and removes files under the preview directory only.
"""

import logging
import os
import tempfile
from dataclasses import dataclass

from posegen.core.errors import ValidationError
from posegen.core.types import ImageResource


logger = logging.getLogger(__name__)


# ============================================================
# CONFIG
# ============================================================

MAX_FILE_SIZE_MB = 10
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
}
PROJECT_ROOT = os.path.dirname(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
)
PREVIEW_BASE_DIR = os.path.realpath(
    os.getenv("PREVIEW_BASE_DIR", os.path.join(PROJECT_ROOT, "uploads", "previews"))
)
PREVIEW_URL_PREFIX = "/previews"


# ============================================================
# UPLOAD VALIDATION
# ============================================================

def validate_upload(data: bytes, mime_type: str | None, filename: str | None = None) -> None:
    """
    Enforce type and size constraints on an uploaded image.

    Validation behavior:
    - Rejects empty payloads.
    - Rejects payloads larger than `MAX_FILE_SIZE_MB`.
    - Rejects media types other than PNG, JPEG and WEBP.
    """
    label = filename or "upload"

    if not data:
        raise ValidationError(f"{label} is empty")

    if len(data) > MAX_FILE_SIZE_BYTES:
        raise ValidationError(f"{label} exceeds max size limit of {MAX_FILE_SIZE_MB} MB")

    if (mime_type or "").lower() not in ALLOWED_MIME_TYPES:
        raise ValidationError(f"{label} has unsupported type {mime_type!r}; use PNG, JPG or WEBP")


def resource_from_upload(
    data: bytes,
    mime_type: str | None,
    filename: str | None = None,
) -> ImageResource:
    """Validate an upload and wrap it as an in-memory `ImageResource`."""
    validate_upload(data, mime_type, filename)
    return ImageResource(
        name=filename or "upload",
        mime_type=mime_type.lower(),
        data=data,
    )


# ============================================================
# PREVIEW HANDLES
# ============================================================

def _is_allowed_path(path: str, base_dir: str) -> bool:
    """Return whether `path` is inside `base_dir` after normalization."""
    try:
        normalized = os.path.realpath(path)
        return os.path.commonpath([normalized, base_dir]) == base_dir
    except ValueError:
        return False


@dataclass
class PreviewHandle:
    """Temporary preview file plus the URL it is served under."""

    path: str
    url: str
    base_dir: str
    released: bool = False

    def release(self) -> None:
        """Delete the preview file. Safe to call more than once."""
        if self.released:
            return
        self.released = True

        if not _is_allowed_path(self.path, self.base_dir):
            logger.warning("Refusing to remove preview outside %s: %s", self.base_dir, self.path)
            return

        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError:
            logger.exception("Failed to remove preview file %s", self.path)


class PreviewStore:
    """Creates preview handles under one base directory.

    Args:
        base_dir: Directory holding preview files (created if missing).
        url_prefix: URL path the HTTP adapter serves `base_dir` under.
    """

    def __init__(self, base_dir: str = PREVIEW_BASE_DIR, url_prefix: str = PREVIEW_URL_PREFIX) -> None:
        self.base_dir = os.path.realpath(base_dir)
        self.url_prefix = url_prefix.rstrip("/")
        os.makedirs(self.base_dir, exist_ok=True)

    def acquire(self, resource: ImageResource) -> PreviewHandle:
        """Write `resource` to a new preview file and return its handle.

        Raises:
            OSError: Resource cannot be read or the file cannot be written.
            ValueError: Resource has no content.
        """
        content = resource.read_bytes()
        suffix = ALLOWED_MIME_TYPES.get(resource.mime_type.lower(), ".img")

        temp_file = tempfile.NamedTemporaryFile(
            delete=False,
            prefix="preview-",
            suffix=suffix,
            dir=self.base_dir,
        )
        try:
            temp_file.write(content)
            temp_file.close()
        except OSError:
            temp_file.close()
            os.remove(temp_file.name)
            raise

        filename = os.path.basename(temp_file.name)
        return PreviewHandle(
            path=temp_file.name,
            url=f"{self.url_prefix}/{filename}",
            base_dir=self.base_dir,
        )
