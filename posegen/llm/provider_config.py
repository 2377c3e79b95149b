"""Provider/runtime configuration for the image generation layer.

Architectural role:
    Centralizes model selection, endpoint layout, request limits and credential
    lookup for `posegen.llm.client` and `posegen.image.service`.

Model call flow integration:
    - `client.GeminiImageClient` consumes `GEMINI_URL_TEMPLATE`, `IMAGE_MODEL`,
      `REQUEST_TIMEOUT_SECONDS` and `load_key`.
    - `prompting.prompt_builder` consumes `RESPONSE_MODALITIES`.
    - `core.types` and `image.service` consume the image-count bounds.

Determinism:
    Deterministic for a fixed process environment and key file. Values are
    resolved once at import time (plus runtime key-file reads in `load_key`).

Failure behavior:
    Missing key material is represented as `None`; the client turns it into a
    request failure instead of a startup error.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Model routing controls.
IMAGE_MODEL = os.getenv("IMAGE_MODEL", "gemini-2.5-flash-image-preview")

GEMINI_URL_TEMPLATE = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "{model}:generateContent"
)

GEMINI_KEY_FILE = "config/gemini.key"

# Single attempt per call; this is the only time budget applied.
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "120"))

# Requested output kinds, in the order the service expects them.
RESPONSE_MODALITIES = ("IMAGE", "TEXT")

MIN_IMAGE_COUNT = 1
MAX_IMAGE_COUNT = 4


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/gemini.key` -> `GEMINI_API_KEY`).
        2. Raw file contents at `path`.

    Args:
        path: Configured key file path or `None`.

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - `None` path returns `None`.
        - Missing or empty file returns `None`.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name)
    if env_value:
        return env_value
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None
