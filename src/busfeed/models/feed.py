"""Feed payload models.

Both feed sources are represented as a tagged variant so normalization can
dispatch on ``kind`` instead of guessing at payload shapes.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from busfeed.ingestion.normalize import normalize_location, normalize_name


class UpdateCandidate(BaseModel):
    """One bus as described by one feed row or entry."""

    model_config = ConfigDict(frozen=True)

    name: str
    location: str | None = None
    departure: int | None = None

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        name = normalize_name(value)
        if name is None:
            raise ValueError("name must be non-empty")
        return name

    @field_validator("location", mode="before")
    @classmethod
    def _normalize_location(cls, value: Any) -> str | None:
        return normalize_location(value)


class StructuredFeed(BaseModel):
    """Spreadsheet JSON feed flattened to ``field-key -> text`` entries."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["structured"] = "structured"
    updated: str | None = None
    entries: list[dict[str, str]] = Field(default_factory=list)


class TabularFeed(BaseModel):
    """HTML table fallback feed as rows of cell text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tabular"] = "tabular"
    rows: list[list[str]] = Field(default_factory=list)


FeedPayload = Annotated[StructuredFeed | TabularFeed, Field(discriminator="kind")]
