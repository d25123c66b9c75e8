from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


class SlidePayload(BaseModel):
    """A single slide to render, in request order."""

    html: str = Field(default="", description="HTML fragment placed in the page body")
    css: Optional[str] = Field(
        default=None,
        description="Accepted for compatibility; only the request-level stylesheet is applied",
    )
    width: PositiveInt = Field(..., description="Viewport width in CSS pixels")
    height: PositiveInt = Field(..., description="Viewport height in CSS pixels")
    text: Optional[Any] = Field(
        default=None,
        description="Overlay text, either a string or an object with value/content/text and display options",
    )

    model_config = ConfigDict(extra="ignore")


class GeneratePresentationRequest(BaseModel):
    """Payload accepted by the presentation generation endpoint."""

    css: str = Field(default="", description="Stylesheet shared by every slide")
    slides: Optional[List[SlidePayload]] = Field(default=None)

    model_config = ConfigDict(extra="ignore")


class ErrorResponse(BaseModel):
    error: str


class ServiceHealthResponse(BaseModel):
    status: str
    browser_ready: bool
    active_renders: int
    max_concurrency: int
