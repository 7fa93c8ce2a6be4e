"""Error payload schema."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body returned with every non-2xx response."""

    kind: str = Field(..., description="Stable machine-readable error kind")
    message: str = Field(..., description="Human-readable explanation")
    field: str | None = Field(None, description="Offending request field, when known")
