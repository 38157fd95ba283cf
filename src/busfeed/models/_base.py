"""Base model and timestamp helpers shared by busfeed models.

Models that cross the wire or the cache file inherit from
:class:`BusFeedModel`, which maps camelCase keys to snake_case fields via
``alias_generator=to_camel`` and accepts either spelling on input.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce an ISO-8601 string (or datetime) into an aware UTC-normalised datetime.

    Returns ``None`` for missing, blank, or unparsable input. Naive values
    are assumed to be UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        # fromisoformat() only accepts a trailing "Z" from 3.11 onwards.
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


Timestamp = Annotated[datetime | None, BeforeValidator(parse_timestamp)]
"""Annotated type that turns ISO strings into aware datetimes, bad input into ``None``."""


class BusFeedModel(BaseModel):
    """Base for models persisted to the cache file or sent over the wire."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
