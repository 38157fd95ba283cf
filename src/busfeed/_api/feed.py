"""Feed source endpoints: spreadsheet JSON feed and HTML table page."""

from __future__ import annotations

import logging

from busfeed._transport import Transport
from busfeed.ingestion.structured import parse_structured_feed
from busfeed.ingestion.tabular import parse_html_table
from busfeed.models.feed import StructuredFeed, TabularFeed

_logger = logging.getLogger(__name__)


async def fetch_structured_feed(transport: Transport, url: str) -> StructuredFeed:
    decoded = await transport.request_json("GET", url)
    feed = parse_structured_feed(decoded)
    _logger.info("Feed last updated at %s", feed.updated)
    return feed


async def fetch_tabular_feed(transport: Transport, url: str) -> TabularFeed:
    html = await transport.get_text(url)
    feed = parse_html_table(html)
    _logger.debug("Table feed has %d rows", len(feed.rows))
    return feed
