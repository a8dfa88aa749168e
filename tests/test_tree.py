"""Root and one-level children queries."""

from __future__ import annotations

import random

from synsets.flatten import build_records, recalculate_sizes
from synsets.loader import bulk_load
from synsets.models import DELIMITER, ConceptNode, ConceptRecord
from synsets.tree import count_concepts, fetch_children, fetch_tree, get_concept, prefix_bounds


def _load(conn, records):
    bulk_load(conn, records)
    return conn


def test_prefix_bounds():
    assert prefix_bounds("entity") == ("entity > ", "entity >!")


def test_fetch_tree_returns_root_and_total(seeded_conn):
    result = fetch_tree(seeded_conn)

    assert result.to_dict() == {
        "tree": {"name": "entity", "size": 4, "path": "entity", "children": []},
        "totalSynsets": 5,
    }


def test_fetch_tree_on_empty_store(conn):
    result = fetch_tree(conn)

    assert result.empty
    assert result.to_dict() == {"tree": {"name": "No data", "size": 0, "children": []}, "totalSynsets": 0}


def test_fetch_tree_leaf_root_has_no_children_key(conn):
    _load(conn, [ConceptRecord("entity")])
    assert fetch_tree(conn).to_dict()["tree"] == {"name": "entity", "size": 0, "path": "entity"}


def test_fetch_tree_picks_smallest_of_several_roots(conn):
    records, _ = build_records([ConceptNode("zebra"), ConceptNode("apple", [ConceptNode("seed")])])
    _load(conn, records)

    result = fetch_tree(conn)

    assert result.root.path == "apple"
    assert result.root.has_children
    assert result.total_concepts == 3


def test_fetch_children_of_root(seeded_conn):
    assert [c.to_dict() for c in fetch_children(seeded_conn, "entity")] == [
        {"name": "animal", "size": 2, "path": "entity > animal", "children": []},
        {"name": "plant", "size": 0, "path": "entity > plant"},
    ]


def test_fetch_children_excludes_grandchildren(seeded_conn):
    paths = [c.path for c in fetch_children(seeded_conn, "entity")]
    assert "entity > animal > dog" not in paths


def test_fetch_children_sorted_by_path(seeded_conn):
    assert [c.name for c in fetch_children(seeded_conn, "entity > animal")] == ["cat", "dog"]


def test_fetch_children_of_leaf_and_unknown_path(seeded_conn):
    assert fetch_children(seeded_conn, "entity > plant") == []
    assert fetch_children(seeded_conn, "nonexistent") == []
    assert fetch_children(seeded_conn, "") == []


def test_fetch_children_is_case_sensitive(seeded_conn):
    assert fetch_children(seeded_conn, "Entity") == []


def test_fetch_children_ignores_sibling_sharing_a_prefix(conn):
    records, _ = build_records([ConceptNode("entity", [
        ConceptNode("animal", [ConceptNode("dog")]),
        ConceptNode("animals", [ConceptNode("herd")]),
        ConceptNode("animal-like"),
    ])])
    _load(conn, records)

    assert [c.path for c in fetch_children(conn, "entity > animal")] == ["entity > animal > dog"]


def test_fetch_children_matches_direct_children_on_random_tree(conn):
    rng = random.Random(11)
    paths = ["r"]
    for i in range(200):
        paths.append(f"{rng.choice(paths)}{DELIMITER}n{i}")
    records = recalculate_sizes([ConceptRecord(p) for p in paths])
    _load(conn, records)

    for parent in rng.sample(paths, 40):
        expected = sorted(p for p in paths if p.rsplit(DELIMITER, 1)[0] == parent and p != parent)
        got = fetch_children(conn, parent)
        assert [c.path for c in got] == expected
        assert all(c.has_children == (c.size > 0) for c in got)


def test_deleted_rows_are_invisible(conn):
    _load(conn, [
        ConceptRecord("entity", 1),
        ConceptRecord("entity > plant"),
        ConceptRecord("entity > gone", deleted=True),
    ])

    assert count_concepts(conn) == 2
    assert [c.name for c in fetch_children(conn, "entity")] == ["plant"]
    assert get_concept(conn, "entity > gone") is None


def test_get_concept(seeded_conn):
    assert get_concept(seeded_conn, "entity > animal") == ConceptRecord("entity > animal", 2)
    assert get_concept(seeded_conn, "entity > fungus") is None
