from __future__ import annotations

import pytest

from busfeed.config import ColumnGroup, FieldKeys, TableLayout
from busfeed.exceptions import FeedFormatError
from busfeed.ingestion.feed import normalize_feeds
from busfeed.ingestion.structured import parse_structured_feed
from busfeed.ingestion.tabular import parse_html_table
from busfeed.models.feed import StructuredFeed, TabularFeed

KEYS = (
    FieldKeys(name="gsx$bus", location="gsx$location", departure="gsx$departure"),
    FieldKeys(name="gsx$bus2", location="gsx$location2"),
)


def _sheet(*entries: dict[str, str]) -> dict[str, object]:
    return {
        "version": "1.0",
        "encoding": "UTF-8",
        "feed": {
            "updated": {"$t": "2026-03-14T15:00:00.000Z"},
            "entry": [{key: {"$t": value} for key, value in entry.items()} for entry in entries],
        },
    }


def test_parse_structured_feed_flattens_text_cells() -> None:
    feed = parse_structured_feed(_sheet({"gsx$bus": "Maple", "gsx$location": "a4"}))

    assert feed.updated == "2026-03-14T15:00:00.000Z"
    assert feed.entries == [{"gsx$bus": "Maple", "gsx$location": "a4"}]


@pytest.mark.parametrize("payload", [None, [], {"feed": []}, {"feed": {"entry": {}}}])
def test_parse_structured_feed_rejects_wrong_shape(payload: object) -> None:
    with pytest.raises(FeedFormatError):
        parse_structured_feed(payload)


def test_structured_entries_yield_one_candidate_per_key_group() -> None:
    feed = parse_structured_feed(
        _sheet(
            {
                "gsx$bus": " Maple ",
                "gsx$location": " a4 ",
                "gsx$departure": "3:15",
                "gsx$bus2": "Oak",
                "gsx$location2": "",
            }
        )
    )

    candidates = normalize_feeds([feed], keys=KEYS)

    assert [(c.name, c.location, c.departure) for c in candidates] == [
        ("Maple", "A4", 15 * 60 + 15),
        ("Oak", None, None),
    ]


def test_blank_names_are_dropped() -> None:
    feed = StructuredFeed(entries=[{"gsx$bus": "   ", "gsx$location": "B1"}, {"gsx$location": "B2"}])

    assert normalize_feeds([feed], keys=KEYS) == []


def test_unparsable_departure_is_absent() -> None:
    feed = StructuredFeed(entries=[{"gsx$bus": "Maple", "gsx$location": "A4", "gsx$departure": "soon"}])

    (candidate,) = normalize_feeds([feed], keys=KEYS)
    assert candidate.departure is None


def test_parse_html_table_reads_td_cells_only() -> None:
    html = """
    <html><body>
      <table>
        <thead><tr><th></th><th>A</th><th>B</th><th>C</th></tr></thead>
        <tbody>
          <tr><th>1</th><td>Bus</td><td>Location</td><td>Departure</td></tr>
          <tr><th>2</th><td> Maple </td><td>a4</td><td>3:15</td></tr>
          <tr><th>3</th><td>Oak</td><td>
            b 2</td></tr>
        </tbody>
      </table>
    </body></html>
    """

    feed = parse_html_table(html)

    assert feed.rows == [
        [],
        ["Bus", "Location", "Departure"],
        ["Maple", "a4", "3:15"],
        ["Oak", "b 2"],
    ]


def test_parse_html_table_without_table_is_empty() -> None:
    assert parse_html_table("<p>Nothing published</p>").rows == []


def test_tabular_rows_skip_headers_and_read_column_groups() -> None:
    layout = TableLayout(
        header_rows=1,
        columns=(ColumnGroup(name=0, location=1, departure=2), ColumnGroup(name=4, location=5)),
    )
    feed = TabularFeed(
        rows=[
            ["Bus", "Location", "Departure", "", "Bus", "Location"],
            ["Maple", "a4", "1:30 PM", "", "Oak", "c3"],
            ["Birch"],
        ]
    )

    candidates = normalize_feeds([feed], layout=layout)

    assert [(c.name, c.location, c.departure) for c in candidates] == [
        ("Maple", "A4", 13 * 60 + 30),
        ("Oak", "C3", None),
        ("Birch", None, None),
    ]


def test_structured_source_wins_over_table_for_same_name() -> None:
    structured = StructuredFeed(entries=[{"gsx$bus": "Maple", "gsx$location": ""}])
    tabular = TabularFeed(rows=[["Bus", "Location", "Departure"], ["Maple", "A4", "2:00"], ["Oak", "B1", ""]])

    candidates = normalize_feeds([tabular, structured], keys=KEYS, layout=TableLayout(header_rows=1))

    assert [(c.name, c.location, c.departure) for c in candidates] == [
        ("Maple", None, None),
        ("Oak", "B1", None),
    ]


def test_first_occurrence_of_a_name_wins_within_a_source() -> None:
    feed = StructuredFeed(
        entries=[
            {"gsx$bus": "Maple", "gsx$location": "A1"},
            {"gsx$bus": "Maple", "gsx$location": "A2"},
        ]
    )

    candidates = normalize_feeds([feed], keys=KEYS)

    assert [(c.name, c.location) for c in candidates] == [("Maple", "A1")]
