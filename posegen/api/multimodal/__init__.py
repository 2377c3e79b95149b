"""Upload preprocessing package for API adapters.

Architectural role:
- Validates uploaded images (type, size) before they reach the controller.
- Owns preview-file creation and release.

Scope:
- Content preprocessing only; no HTTP endpoint definitions.
"""
