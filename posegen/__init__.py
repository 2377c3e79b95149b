"""AI Character Pose Generator.

Architectural role:
    Turns a character image, an optional pose reference, optional extra
    reference images and a short text description into one multimodal
    generation request, fans it out N times to the image model and reduces
    the responses into a display-ready result list.

Package split:
    - `core`: data contracts, error taxonomy and the application state
      controller.
    - `image`: aspect-ratio estimation, image encoding and the generation
      orchestrator.
    - `prompting`: deterministic request construction.
    - `llm`: provider configuration and HTTP transport.
    - `api`: HTTP and CLI adapters plus upload/preview handling.
"""
