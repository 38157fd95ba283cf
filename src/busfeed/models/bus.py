"""Bus models: cache records and remote directory summaries."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from busfeed._constants import MINUTES_PER_DAY
from busfeed.ingestion.normalize import safe_int, safe_str
from busfeed.models._base import BusFeedModel, Timestamp


def _first_location(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    for item in value:
        text = safe_str(item)
        if text is not None and text.strip():
            return [text.strip()]
    return []


class BusRecord(BusFeedModel):
    """Last-known state of one bus, keyed by name in the cache.

    ``locations`` is a list on the wire and in the cache file but holds at
    most one entry: the current location.
    """

    model_config = ConfigDict(validate_assignment=True)

    remote_id: str = Field(alias="id", frozen=True, min_length=1)
    """Identifier assigned by the remote service."""
    locations: list[str] = Field(default_factory=list)
    """Empty (unknown) or the single current location code."""
    departure: int | None = Field(default=None, ge=0, lt=MINUTES_PER_DAY)
    """Departure time in minutes since midnight."""
    available: bool = False
    """Whether the bus is currently in service."""
    invalidate_time: Timestamp = None
    """When consumers should treat ``locations`` as stale."""

    @field_validator("locations", mode="before")
    @classmethod
    def _single_location(cls, value: Any) -> list[str]:
        return _first_location(value)

    @property
    def location(self) -> str | None:
        """Current location code, if known."""
        return self.locations[0] if self.locations else None


class ExternalBusSummary(BaseModel):
    """A bus as listed by the remote directory (``GET /buses``)."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    """Remote identifier."""
    name: str | None = None
    """Primary display name; buses without one cannot be matched."""
    locations: list[str] = Field(default_factory=list)
    departure: int | None = None
    invalidate_time: Timestamp = Field(
        default=None,
        validation_alias=AliasChoices("invalidate_time", "invalidateTime"),
    )
    other_names: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("other_names", "otherNames"),
    )
    """Aliases the bus is also known by."""
    available: bool | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if value is None or isinstance(value, (dict, list)):
            return value
        return str(value)

    @field_validator("name", mode="before")
    @classmethod
    def _blank_name(cls, value: Any) -> str | None:
        text = safe_str(value)
        return text if text and text.strip() else None

    @field_validator("locations", mode="before")
    @classmethod
    def _single_location(cls, value: Any) -> list[str]:
        return _first_location(value)

    @field_validator("other_names", mode="before")
    @classmethod
    def _coerce_aliases(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None]

    @field_validator("departure", mode="before")
    @classmethod
    def _coerce_departure(cls, value: Any) -> int | None:
        parsed = safe_int(value)
        if parsed is None or not 0 <= parsed < MINUTES_PER_DAY:
            return None
        return parsed

    def to_record(self) -> BusRecord:
        """Seed a cache record from this summary."""
        return BusRecord(
            remote_id=self.id,
            locations=list(self.locations),
            departure=self.departure,
            available=bool(self.available),
            invalidate_time=self.invalidate_time,
        )


class CacheDocument(BusFeedModel):
    """Persisted cache file: ``{lastUpdated, buses: {name: BusRecord}}``."""

    last_updated: datetime
    buses: dict[str, BusRecord]

    @field_validator("last_updated")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
