"""Gemini transport client for multimodal image generation.

Architectural role:
    Executes one `generateContent` call against the configured Gemini model
    and returns the raw JSON response for `posegen.image.service` to interpret.

Model invocation flow:
    `PoseGenerationService.generate` -> `GeminiImageClient.generate_content(payload)`
    -> HTTPS POST -> parsed JSON dict.

Retry behavior:
    No retry loop is implemented. Each call is attempted once with the
    configured timeout (`REQUEST_TIMEOUT_SECONDS`).

Credential handling:
    The API key is resolved once when the client is constructed. A missing key
    does not fail construction; every call then raises, so the failure reaches
    the user as a generation error.

Failure handling model:
    Errors are raised as `RuntimeError` with a sanitized, provider-labeled
    message. The API key and request body never appear in messages or logs.
"""

import logging

import httpx

from posegen.llm.provider_config import (
    GEMINI_KEY_FILE,
    GEMINI_URL_TEMPLATE,
    IMAGE_MODEL,
    REQUEST_TIMEOUT_SECONDS,
    load_key,
)


logger = logging.getLogger(__name__)


def _build_sanitized_http_error(response: httpx.Response) -> str:
    """Build provider-labeled HTTP error text.

    Uses the service's own `error.message` when the body carries one, never the
    raw body.
    """
    detail = None
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        detail = body["error"].get("message")

    if detail:
        return f"GEMINI HTTP ERROR ({response.status_code}): {detail}"
    return f"GEMINI HTTP ERROR ({response.status_code})"


class GeminiImageClient:
    """Async HTTP client for the Gemini `generateContent` endpoint.

    Args:
        api_key: Explicit key; defaults to `load_key(GEMINI_KEY_FILE)`.
        model: Model name substituted into the endpoint URL.
        timeout_seconds: Per-call timeout.
        http_client: Optional shared `httpx.AsyncClient`. When omitted a client
            is opened per call.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = IMAGE_MODEL,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else load_key(GEMINI_KEY_FILE)
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._http_client = http_client

    @property
    def url(self) -> str:
        return GEMINI_URL_TEMPLATE.format(model=self.model)

    async def generate_content(self, payload: dict) -> dict:
        """Send one generation request and return the parsed JSON body.

        Args:
            payload: REST body produced by `GenerationRequest.to_payload()`.

        Returns:
            Response JSON as a dict (empty dict when the body is not an object).

        Failure scenarios:
            - Missing API key -> `RuntimeError`.
            - Non-2xx status -> `RuntimeError` with sanitized status text.
            - Transport errors -> `RuntimeError` naming the httpx error type.
        """
        if not self.api_key:
            raise RuntimeError("GEMINI_API_KEY is not configured")

        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.url,
                    headers=headers,
                    json=payload,
                    timeout=self.timeout_seconds,
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(self.url, headers=headers, json=payload)
        except httpx.RequestError as err:
            raise RuntimeError(f"GEMINI REQUEST FAILED ({type(err).__name__})") from err

        if response.status_code != 200:
            message = _build_sanitized_http_error(response)
            logger.warning("Generation call rejected: %s", message)
            raise RuntimeError(message)

        try:
            data = response.json()
        except ValueError as err:
            raise RuntimeError("GEMINI RESPONSE WAS NOT JSON") from err
        return data if isinstance(data, dict) else {}
