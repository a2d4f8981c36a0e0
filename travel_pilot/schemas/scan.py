"""
Pydantic models for scan results and the scan session API.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class MenuItem(BaseModel):
    """A single dish and its price as printed on the menu."""

    name: str
    price: str = Field(..., description="Price kept verbatim, currency included.")


class MenuSection(BaseModel):
    """A category of the menu with its dishes in printed order."""

    category: str
    items: List[MenuItem] = Field(default_factory=list)


class MenuResult(BaseModel):
    """Translated menu."""

    kind: Literal["menu"] = "menu"
    title: str
    sections: List[MenuSection] = Field(default_factory=list)


class UserFeedback(BaseModel):
    """Summarized community opinion about a product."""

    pros: List[str] = Field(..., min_length=1)
    cons: List[str] = Field(..., min_length=1)


class ProductResult(BaseModel):
    """Review card for a photographed product."""

    model_config = ConfigDict(populate_by_name=True)

    kind: Literal["product"] = "product"
    name: str
    brand: Optional[str] = None
    price_range: Optional[str] = Field(None, alias="priceRange")
    market_review: str = Field(..., alias="marketReview")
    user_feedback: UserFeedback = Field(..., alias="userFeedback")


ParsedOutput = Annotated[Union[MenuResult, ProductResult], Field(discriminator="kind")]

parsed_output_adapter = TypeAdapter(ParsedOutput)


class ScanRequest(BaseModel):
    """Image submitted from the browser file picker."""

    image: Optional[str] = Field(
        None,
        description="Base64 image data or a data URI. Omit when no file was picked.",
    )
    mime_type: Optional[str] = Field(
        None,
        description="MIME type of the image; required unless a data URI is sent.",
    )
    filename: Optional[str] = Field(None, description="Original file name.")


class ScanStateResponse(BaseModel):
    """Read-only view of a scan session's state."""

    session_id: str
    status: Literal["idle", "processing", "result", "error"]
    generation: int
    result: Optional[ParsedOutput] = None
    error: Optional[str] = Field(
        None, description="User-facing message when the scan failed."
    )
    preview_uri: Optional[str] = Field(
        None, description="Data URI of the scanned image for the result card."
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
