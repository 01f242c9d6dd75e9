"""Image generation responses."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class Image(BaseModel):
    """A generated image, given inline as base64 or as a URL."""

    b64_json: Optional[str] = None
    url: Optional[str] = None
    revised_prompt: Optional[str] = None


class ImagesResponse(BaseModel):
    """The images returned for one generation request."""

    created: Optional[int] = Field(default=None, ge=0, le=2**32 - 1)
    data: list[Image]