"""Keyword schemas."""

from pydantic import BaseModel, Field


class KeywordCreate(BaseModel):
    """Schema for creating or renaming a keyword."""

    name: str = Field(..., min_length=1, max_length=255)


class KeywordResponse(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}
