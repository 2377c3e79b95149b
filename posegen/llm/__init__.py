"""Model access package.

Architectural role:
    Provides provider configuration and the HTTP transport used by the image
    service to invoke the multimodal generation backend.

Module split:
    - `provider_config`: environment-driven model, endpoint and key settings.
    - `client`: Gemini `generateContent` transport.
"""
