"""Models for remote vision analysis payloads."""

from typing import Literal

from pydantic import BaseModel, Field

ConfidenceTier = Literal["high", "medium", "low"]


class VisionItem(BaseModel):
    """Single detected food item from the remote service."""

    label: str
    confidence_tier: str | None = None
    portion_description: str | None = None
    estimated_grams: float | None = Field(default=None, ge=0)


class VisionExtract(BaseModel):
    """Structured output for remote vision analysis."""

    items: list[VisionItem]
