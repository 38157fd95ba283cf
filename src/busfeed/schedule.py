"""APScheduler triggers for periodic mode."""

from __future__ import annotations

from datetime import tzinfo

from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from busfeed.exceptions import BusFeedConfigError

# Six-field rules carry a leading seconds field.
_CRON_FIELDS = ("second", "minute", "hour", "day", "month", "day_of_week")


def cron_trigger(rule: str, zone: tzinfo) -> CronTrigger:
    """Build a trigger from a crontab rule with five fields, or six with seconds.

    Day-of-week numbers follow APScheduler (``0`` is Monday); prefer
    names such as ``mon-fri``.
    """
    fields = rule.split()
    try:
        if len(fields) == 5:
            return CronTrigger.from_crontab(rule, timezone=zone)
        if len(fields) == 6:
            return CronTrigger(timezone=zone, **dict(zip(_CRON_FIELDS, fields, strict=True)))
    except ValueError as exc:
        raise BusFeedConfigError(f"invalid cron rule {rule!r}: {exc}") from exc
    raise BusFeedConfigError(f"invalid cron rule {rule!r}; expected 5 or 6 fields")


def interval_trigger(seconds: float, zone: tzinfo) -> IntervalTrigger:
    return IntervalTrigger(seconds=seconds, timezone=zone)
