"""Image handling and generation package.

Scope:
    Aspect-ratio estimation, base64 encoding of selected images, and the
    generation orchestrator that fans one request out to the image model.

Non-goals:
    - No upload validation or preview-file lifecycle (see `posegen.api.multimodal`).
    - No persistence of generated images.
"""
