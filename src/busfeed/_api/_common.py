"""Shared helpers for remote bus API endpoint modules.

It is internal to busfeed and may change at any time.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from busfeed.config import BusFeedConfig
from busfeed.exceptions import BusFeedApiError
from busfeed.models.responses import MutationResponse


def api_url(config: BusFeedConfig, path: str) -> str:
    return f"{config.api_url}{path}"


def check_mutation_response(url: str, payload: Any) -> MutationResponse:
    """Validate a mutation reply and raise when the remote rejected it.

    An empty body counts as success; some endpoints answer ``204``.
    """
    if payload is None:
        return MutationResponse()
    if not isinstance(payload, dict):
        raise BusFeedApiError(f"{url} returned an unexpected payload: {str(payload)[:128]}", url=url)
    try:
        response = MutationResponse.model_validate(payload)
    except ValidationError as exc:
        raise BusFeedApiError(f"{url} returned an invalid payload: {exc}", url=url) from exc
    if response.failed:
        raise BusFeedApiError(f"{url} failed: {response.error or 'ok=false'}", url=url)
    return response
