"""
HTTP API adapter for the pose generator.

Architectural role:
- Expose the user-facing events (image selection, options, generate) as JSON
  endpoints for a browser front end.
- Enforce adapter-level upload validation.
- Delegate every state change to `PoseStudioController`.
- Serve preview files created for selected images.

Endpoint responsibilities:
- `GET /api/state`: current snapshot.
- `POST /api/character`, `POST /api/pose-reference`, `POST /api/references`:
  multipart `file` upload -> selection.
- `DELETE /api/pose-reference`, `DELETE /api/references/{index}`: removal.
- `PUT /api/options`: prompt, image count, quality.
- `POST /api/generate`: run one generate action and return the settled snapshot.
- `GET /previews/...`: static preview files.

Input validation behavior:
- Empty, oversized or non-PNG/JPEG/WEBP uploads -> HTTP 400.
- Image count outside 1..4 or unknown reference index -> HTTP 400.
- Generate while a generation is in flight -> HTTP 409.

Error handling strategy:
- `ValidationError` and malformed request bodies are mapped to structured
  HTTP 400 JSON responses.
- Generation failures are part of the returned snapshot (`status: "error"`),
  not HTTP errors.

Side effects:
- Creates the preview directory at import time.
- Releases all preview files on application shutdown.
- Emits debug output only when `DEBUG == "true"`.
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from posegen.api.multimodal.upload_manager import (
    MAX_FILE_SIZE_BYTES,
    PREVIEW_URL_PREFIX,
    PreviewStore,
    resource_from_upload,
)
from posegen.core.controller import PoseStudioController, StudioSnapshot
from posegen.core.errors import ValidationError
from posegen.core.types import ImageResource


logger = logging.getLogger(__name__)

# Request/response debug output is opt-in.
DEBUG = os.getenv("DEBUG") == "true"

GENERATION_IN_PROGRESS_MESSAGE = "A generation is already in progress."


# ============================================================
# Controller lifecycle
# ============================================================

preview_store = PreviewStore()
_controller: PoseStudioController | None = None


def get_controller() -> PoseStudioController:
    """Return the process-wide controller, creating it on first use."""
    global _controller
    if _controller is None:
        _controller = PoseStudioController(previews=preview_store)
    return _controller


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    global _controller
    if _controller is not None:
        _controller.close()
        _controller = None


app = FastAPI(
    title="AI Character Pose Generator",
    description="Upload a character, describe a pose, and generate new images of it.",
    lifespan=lifespan,
)
app.mount(
    PREVIEW_URL_PREFIX,
    StaticFiles(directory=preview_store.base_dir),
    name="previews",
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        details.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    message = "; ".join(details) or "Invalid request."
    logger.info("Rejected %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})


# ============================================================
# Request Schema
# ============================================================

class OptionsUpdate(BaseModel):
    """Partial options update; omitted fields keep their current value."""

    prompt: str | None = None
    image_count: int | None = None
    quality: str | None = None


# ============================================================
# Response formatting
# ============================================================

def serialize_snapshot(snapshot: StudioSnapshot) -> dict:
    """Convert a controller snapshot into the JSON body returned to clients."""
    state = snapshot.state
    options = snapshot.options

    return {
        "status": state.status,
        "is_loading": state.is_loading,
        "error": state.error,
        "results": (
            [asdict(item) for item in state.results]
            if state.results is not None
            else None
        ),
        "options": {
            "prompt": options.prompt,
            "image_count": options.image_count,
            "quality": options.quality.value,
        },
        "character": {
            "selected": snapshot.has_character,
            "preview_url": snapshot.character_preview,
        },
        "pose_reference": {
            "selected": snapshot.has_pose_reference,
            "preview_url": snapshot.pose_reference_preview,
        },
        "references": [
            {"index": index, "preview_url": url}
            for index, url in enumerate(snapshot.reference_previews)
        ],
        "can_generate": snapshot.can_generate,
    }


async def _read_upload(file: UploadFile) -> ImageResource:
    # One byte past the limit is enough for validation to reject it.
    data = await file.read(MAX_FILE_SIZE_BYTES + 1)
    if DEBUG:
        print("Upload received:", file.filename, file.content_type, len(data), "bytes")
    return resource_from_upload(data, file.content_type, file.filename)


# ============================================================
# State
# ============================================================

@app.get("/api/state")
def read_state(controller: PoseStudioController = Depends(get_controller)):
    return serialize_snapshot(controller.snapshot())


# ============================================================
# Image selection
# ============================================================

@app.post("/api/character")
async def select_character(
    file: UploadFile = File(...),
    controller: PoseStudioController = Depends(get_controller),
):
    resource = await _read_upload(file)
    return serialize_snapshot(controller.select_character_image(resource))


@app.post("/api/pose-reference")
async def select_pose_reference(
    file: UploadFile = File(...),
    controller: PoseStudioController = Depends(get_controller),
):
    resource = await _read_upload(file)
    return serialize_snapshot(controller.select_pose_reference_image(resource))


@app.delete("/api/pose-reference")
def clear_pose_reference(controller: PoseStudioController = Depends(get_controller)):
    return serialize_snapshot(controller.clear_pose_reference_image())


@app.post("/api/references")
async def add_reference(
    file: UploadFile = File(...),
    controller: PoseStudioController = Depends(get_controller),
):
    resource = await _read_upload(file)
    return serialize_snapshot(controller.add_reference_image(resource))


@app.delete("/api/references/{index}")
def remove_reference(index: int, controller: PoseStudioController = Depends(get_controller)):
    return serialize_snapshot(controller.remove_reference_image(index))


# ============================================================
# Options
# ============================================================

@app.put("/api/options")
def update_options(
    update: OptionsUpdate,
    controller: PoseStudioController = Depends(get_controller),
):
    if update.prompt is not None:
        controller.set_prompt(update.prompt)
    if update.image_count is not None:
        controller.set_image_count(update.image_count)
    if update.quality is not None:
        controller.set_quality(update.quality)
    return serialize_snapshot(controller.snapshot())


# ============================================================
# Generate
# ============================================================

@app.post("/api/generate")
async def generate(controller: PoseStudioController = Depends(get_controller)):
    """
    Run one generate action.

    The request stays open until every generation call has settled. Failures
    are reported through the snapshot's `status`/`error` fields.
    """
    if controller.state.is_loading:
        return JSONResponse(status_code=409, content={"error": GENERATION_IN_PROGRESS_MESSAGE})

    state = await controller.generate()

    if DEBUG:
        print("Generation settled:", state.status, state.error)

    return serialize_snapshot(controller.snapshot())
