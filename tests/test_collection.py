import datetime as dt

import pytest
from pydantic import ValidationError as SchemaError

from pieceout.core.collection import ALL, CollectionQuery, SortKey, derive, filter_options, sort_puzzles
from pieceout.core.records import Puzzle

UTC = dt.timezone.utc


def day(n):
    return dt.datetime(2024, 1, n, tzinfo=UTC)


@pytest.fixture
def shelf():
    return [
        Puzzle(id=1, name="Hogwarts", brand="Ravensburger", pieces=1000, notes="castle at night", created_at=day(1)),
        Puzzle(id=2, name="Star Wars", brand="LEGO", pieces=500, created_at=day(3), last_completed_at=day(20)),
        Puzzle(id=3, name="Alps", brand="Ravensburger", pieces=500, notes="Snowy", created_at=day(2), last_completed_at=day(10)),
        Puzzle(id=4, name="Blank", brand=None, pieces=0, created_at=None),
    ]


def names(puzzles):
    return [p.name for p in puzzles]


def test_default_query_keeps_everything_newest_first(shelf):
    assert names(derive(shelf, CollectionQuery())) == ["Star Wars", "Alps", "Hogwarts", "Blank"]


def test_brand_filter(shelf):
    result = derive(shelf, CollectionQuery(brand="LEGO"))
    assert names(result) == ["Star Wars"]


def test_all_sentinel_means_no_filter(shelf):
    everything = derive(shelf, CollectionQuery(brand=ALL, pieces=ALL, sort=SortKey.NAME_ASC))
    assert names(everything) == ["Alps", "Blank", "Hogwarts", "Star Wars"]


def test_pieces_filter_accepts_numeric_strings(shelf):
    query = CollectionQuery(pieces="500", sort=SortKey.NAME_ASC)
    assert query.pieces == 500
    assert names(derive(shelf, query)) == ["Alps", "Star Wars"]


def test_pieces_filter_rejects_garbage():
    with pytest.raises(SchemaError):
        CollectionQuery(pieces="lots")


def test_text_search_is_case_insensitive_over_name_brand_and_notes(shelf):
    assert names(derive(shelf, CollectionQuery(text="CASTLE"))) == ["Hogwarts"]
    assert names(derive(shelf, CollectionQuery(text="lego"))) == ["Star Wars"]
    assert names(derive(shelf, CollectionQuery(text="snow"))) == ["Alps"]
    assert derive(shelf, CollectionQuery(text="zebra")) == []


def test_filters_combine(shelf):
    query = CollectionQuery(text="a", brand="Ravensburger", pieces=500)
    assert names(derive(shelf, query)) == ["Alps"]


def test_pieces_ascending_breaks_ties_by_name():
    puzzles = [
        Puzzle(id=1, name="B", pieces=500),
        Puzzle(id=2, name="A", pieces=0),
        Puzzle(id=3, name="C", pieces=1000),
    ]
    assert names(sort_puzzles(puzzles, SortKey.PIECES_ASC)) == ["A", "B", "C"]


def test_pieces_descending_keeps_names_ascending_within_a_count(shelf):
    assert names(sort_puzzles(shelf, SortKey.PIECES_DESC)) == ["Hogwarts", "Alps", "Star Wars", "Blank"]


def test_name_sorts(shelf):
    assert names(sort_puzzles(shelf, SortKey.NAME_ASC)) == ["Alps", "Blank", "Hogwarts", "Star Wars"]
    assert names(sort_puzzles(shelf, SortKey.NAME_DESC)) == ["Star Wars", "Hogwarts", "Blank", "Alps"]


def test_date_added_sorts_put_missing_dates_first_when_ascending(shelf):
    assert names(sort_puzzles(shelf, SortKey.DATE_ADDED_ASC)) == ["Blank", "Hogwarts", "Alps", "Star Wars"]
    assert names(sort_puzzles(shelf, SortKey.DATE_ADDED_DESC)) == ["Star Wars", "Alps", "Hogwarts", "Blank"]


def test_last_completed_sorts(shelf):
    desc = names(sort_puzzles(shelf, SortKey.LAST_COMPLETED_DESC))
    assert desc[:2] == ["Star Wars", "Alps"]
    asc = names(sort_puzzles(shelf, SortKey.LAST_COMPLETED_ASC))
    assert asc[-2:] == ["Alps", "Star Wars"]
    # never-completed puzzles keep their input order
    assert asc[:2] == ["Hogwarts", "Blank"]


def test_derive_does_not_touch_its_input(shelf):
    before = list(shelf)
    derive(shelf, CollectionQuery(sort=SortKey.NAME_DESC, brand="LEGO"))
    assert shelf == before


def test_filter_options(shelf):
    assert filter_options(shelf) == {"brands": ["LEGO", "Ravensburger"], "pieces": [0, 500, 1000]}


def test_name_order_ignores_case():
    puzzles = [
        Puzzle(id=1, name="Zebra", pieces=500),
        Puzzle(id=2, name="apple", pieces=500),
        Puzzle(id=3, name="Mountain", pieces=500),
    ]
    assert names(sort_puzzles(puzzles, SortKey.NAME_ASC)) == ["apple", "Mountain", "Zebra"]
    assert names(sort_puzzles(puzzles, SortKey.NAME_DESC)) == ["Zebra", "Mountain", "apple"]
    assert names(sort_puzzles(puzzles, SortKey.PIECES_DESC)) == ["apple", "Mountain", "Zebra"]


def test_brand_options_ignore_case():
    puzzles = [Puzzle(id=1, name="a", brand="ravensburger"), Puzzle(id=2, name="b", brand="LEGO")]
    assert filter_options(puzzles)["brands"] == ["LEGO", "ravensburger"]
