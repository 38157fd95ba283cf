"""Remote bus API endpoints: ``/buses`` and its per-bus sub-resources."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from busfeed._api._common import api_url, check_mutation_response
from busfeed._transport import Transport
from busfeed.config import BusFeedConfig
from busfeed.exceptions import BusFeedApiError
from busfeed.models.bus import ExternalBusSummary

_logger = logging.getLogger(__name__)

BUSES_PATH = "/buses"


def bus_path(bus_id: str) -> str:
    return f"{BUSES_PATH}/{quote(bus_id, safe='')}"


def departure_path(bus_id: str) -> str:
    return f"{bus_path(bus_id)}/departure"


def location_path(bus_id: str) -> str:
    return f"{bus_path(bus_id)}/location"


async def list_buses(config: BusFeedConfig, transport: Transport) -> list[ExternalBusSummary]:
    """Fetch every bus the remote service knows about.

    Entries that cannot be parsed (no id, wrong types) are skipped.
    """
    url = api_url(config, BUSES_PATH)
    decoded = await transport.request_json("GET", url)
    if not isinstance(decoded, list):
        raise BusFeedApiError(f"{url} did not return a list", url=url)

    buses: list[ExternalBusSummary] = []
    for item in decoded:
        try:
            buses.append(ExternalBusSummary.model_validate(item))
        except ValidationError:
            _logger.debug("Skipping unparsable bus entry %r", item)
    return buses


async def create_bus(config: BusFeedConfig, transport: Transport, name: str) -> str:
    """Create an available bus and return its assigned id."""
    url = api_url(config, BUSES_PATH)
    decoded = await transport.request_json(
        "POST",
        url,
        payload={"name": name, "available": True},
        authenticated=True,
    )
    response = check_mutation_response(url, decoded)
    if not response.id:
        raise BusFeedApiError(f"{url} did not return an id for {name!r}", url=url)
    return response.id


async def set_availability(config: BusFeedConfig, transport: Transport, bus_id: str, available: bool) -> None:
    url = api_url(config, bus_path(bus_id))
    decoded = await transport.request_json("PATCH", url, payload={"available": available}, authenticated=True)
    check_mutation_response(url, decoded)


async def set_departure(config: BusFeedConfig, transport: Transport, bus_id: str, departure: int) -> None:
    url = api_url(config, departure_path(bus_id))
    decoded = await transport.request_json("PUT", url, payload={"departure": departure}, authenticated=True)
    check_mutation_response(url, decoded)


def build_location_payload(
    locations: Sequence[str],
    invalidate_time: datetime | None,
    source: str,
    *,
    associate_time: bool = False,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "locations": list(locations),
        "invalidate_time": invalidate_time.isoformat() if invalidate_time is not None else None,
        "source": source,
    }
    if associate_time:
        payload["associate_time"] = True
    return payload


async def set_location(
    config: BusFeedConfig,
    transport: Transport,
    bus_id: str,
    locations: Sequence[str],
    invalidate_time: datetime | None,
    source: str,
    *,
    associate_time: bool = False,
) -> None:
    """Replace the bus's locations.

    ``associate_time`` asks the remote service to stamp the new location
    with the bus's departure time; it is only sent when a location is set.
    """
    url = api_url(config, location_path(bus_id))
    payload = build_location_payload(locations, invalidate_time, source, associate_time=associate_time)
    decoded = await transport.request_json("PUT", url, payload=payload, authenticated=True)
    check_mutation_response(url, decoded)
