"""Free-text departure time parsing."""

from __future__ import annotations

import re
from typing import Any

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])?\s*$")


def parse_time(value: Any) -> int | None:
    """Convert ``H:MM`` or ``H:MM AM/PM`` into minutes since midnight.

    Without an AM/PM marker, hours strictly between 0 and 11 are taken as
    PM. The feed writes afternoon departures without a marker, so ``"9:00"``
    means 21:00 while ``"11:30"`` and ``"12:15"`` stay as written.

    Returns ``None`` for anything that does not match, including hours
    above 12 and minutes above 59.
    """
    if not isinstance(value, str):
        return None
    match = _TIME_RE.match(value)
    if match is None:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2))
    if hour > 12 or minute > 59:
        return None

    marker = match.group(3)
    if marker is None:
        if 0 < hour < 11:
            hour += 12
    elif marker.upper() == "AM":
        if hour == 12:
            hour = 0
    elif hour != 12:
        hour += 12

    return hour * 60 + minute
