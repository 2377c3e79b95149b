"""Prompting package.

Deterministic request-construction helpers used by the state controller. It
does not read files, detect aspect ratios, or call the model.
"""
