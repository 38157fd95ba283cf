"""HTML table fallback feed ingestion."""

from __future__ import annotations

from collections.abc import Iterator

from bs4 import BeautifulSoup

from busfeed.config import TableLayout
from busfeed.ingestion.candidates import make_candidate
from busfeed.ingestion.normalize import collapse_whitespace
from busfeed.models.feed import TabularFeed, UpdateCandidate


def parse_html_table(html: str) -> TabularFeed:
    """Parse the first ``<table>`` of *html* into rows of ``<td>`` text.

    Every ``<tr>`` becomes a row, including header rows, so that the
    layout's ``header_rows`` count matches what a person sees in the sheet.
    ``<th>`` cells (row numbers, column letters) are not part of the row.
    """
    soup = BeautifulSoup(html, "html.parser")
    table = soup.find("table")
    if table is None:
        return TabularFeed(rows=[])

    rows: list[list[str]] = []
    for tr in table.find_all("tr"):
        rows.append([collapse_whitespace(td.get_text(" ", strip=True)) for td in tr.find_all("td")])
    return TabularFeed(rows=rows)


def _cell(row: list[str], index: int | None) -> str | None:
    if index is None or index < 0 or index >= len(row):
        return None
    return row[index]


def tabular_candidates(feed: TabularFeed, layout: TableLayout) -> Iterator[UpdateCandidate]:
    """Yield one candidate per column group per data row, in row order."""
    for row in feed.rows[layout.header_rows :]:
        for group in layout.columns:
            candidate = make_candidate(
                _cell(row, group.name),
                _cell(row, group.location),
                _cell(row, group.departure),
            )
            if candidate is not None:
                yield candidate
