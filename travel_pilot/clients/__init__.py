"""Expose constructed client wrappers."""

from .gemini import GeminiClient, GeminiModelError, ResponseShapeError

__all__ = [
    "GeminiClient",
    "GeminiModelError",
    "ResponseShapeError",
]
