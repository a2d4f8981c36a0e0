"""Public schema exports."""

from .scan import (
    MenuItem,
    MenuResult,
    MenuSection,
    ParsedOutput,
    ProductResult,
    ScanRequest,
    ScanStateResponse,
    UserFeedback,
    parsed_output_adapter,
)

__all__ = [
    "MenuItem",
    "MenuResult",
    "MenuSection",
    "ParsedOutput",
    "ProductResult",
    "ScanRequest",
    "ScanStateResponse",
    "UserFeedback",
    "parsed_output_adapter",
]
