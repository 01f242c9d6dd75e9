"""Parameters for OpenAI embedding requests."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class EmbeddingParamsError(ValueError):
    """Embedding parameters that do not fit together."""

    def __init__(self, code: str, message: Optional[str] = None, params: Optional[dict[str, Any]] = None):
        super().__init__(message or code)
        self.code = code
        self.message = message
        self.params = params or {}


_MAX_DIMENSIONS = {
    "text-embedding-3-large": 3072,
    "text-embedding-3-small": 1536,
}


class OpenAiEmbeddingParams(BaseModel):
    """Model name and optional output size of an embedding."""

    model: Optional[str] = None
    dimensions: Optional[int] = Field(default=None, ge=0, le=65535)

    def check(self) -> "OpenAiEmbeddingParams":
        """Check ``dimensions`` against the model; return self or raise EmbeddingParamsError."""
        if self.dimensions is None or self.model is None:
            return self
        limit = _MAX_DIMENSIONS.get(self.model)
        if limit is None:
            raise EmbeddingParamsError("invalid_param", "Invalid parameter `dimensions`")
        if self.dimensions > limit:
            raise EmbeddingParamsError("range", params={"value": self.dimensions})
        return self