"""Internal constants shared across the library."""

USER_AGENT = "busfeed/1 (+aiohttp)"

#: Tag sent with every location update so the remote service can tell
#: spreadsheet-driven updates from other writers.
DEFAULT_SOURCE = "spreadsheet"

#: Key holding cell text in Google Sheets JSON feed entries.
FEED_TEXT_KEY = "$t"

DEFAULT_SWEEP_CONCURRENCY = 4
DEFAULT_REQUEST_TIMEOUT = 30.0

MINUTES_PER_DAY = 24 * 60
