"""Path substring search."""

from __future__ import annotations

import pytest

from synsets.loader import bulk_load
from synsets.models import ConceptRecord
from synsets.search import search


@pytest.fixture
def store(conn):
    bulk_load(conn, [
        ConceptRecord("entity", 7),
        ConceptRecord("entity > animal", 3),
        ConceptRecord("entity > animal > dog", 1),
        ConceptRecord("entity > animal > dog > hot dog"),
        ConceptRecord("entity > animal > cat"),
        ConceptRecord("entity > plant", 1),
        ConceptRecord("entity > plant > 100%_cotton"),
        ConceptRecord("entity > Straße"),
    ])
    return conn


def _paths(response):
    return [r.path for r in response.results]


def test_search_matches_substring_anywhere_in_path(store):
    response = search(store, "dog")

    assert _paths(response) == ["entity > animal > dog", "entity > animal > dog > hot dog"]
    first = response.to_dict()["results"][0]
    assert first == {
        "path": "entity > animal > dog",
        "size": 1,
        "name": "dog",
        "pathParts": ["entity", "animal", "dog"],
    }


def test_search_is_case_insensitive(store):
    assert _paths(search(store, "DOG")) == _paths(search(store, "dog"))


def test_search_folds_non_ascii(store):
    assert _paths(search(store, "STRASSE")) == ["entity > Straße"]


def test_search_matches_any_word_in_path_order(store):
    # no relevance ranking: plain path order even though "hot dog" is an exact hit
    assert _paths(search(store, "hot cat")) == [
        "entity > animal > cat",
        "entity > animal > dog > hot dog",
    ]


def test_search_treats_wildcards_literally(store):
    assert _paths(search(store, "100%_")) == ["entity > plant > 100%_cotton"]
    assert search(store, "%").count == 1
    assert search(store, "_").count == 1


def test_search_respects_limit(store):
    assert search(store, "entity", limit=3).count == 3
    assert search(store, "entity").count == 8


def test_search_strips_query(store):
    response = search(store, "  plant ")
    assert response.query == "plant"
    assert response.count == 2


@pytest.mark.parametrize("query", ["", "   "])
def test_search_rejects_empty_query(store, query):
    with pytest.raises(ValueError, match="cannot be empty"):
        search(store, query)


def test_search_rejects_bad_limit(store):
    with pytest.raises(ValueError, match="limit"):
        search(store, "dog", limit=0)


def test_search_no_match(store):
    assert search(store, "xyzzy").to_dict() == {"query": "xyzzy", "count": 0, "results": []}


def test_search_unseeded_store(conn):
    assert search(conn, "dog").count == 0


def test_search_hides_deleted(conn):
    bulk_load(conn, [ConceptRecord("entity", 1), ConceptRecord("entity > dog", deleted=True)])
    assert search(conn, "dog").count == 0
