"""Tests for exact-match wall grouping."""

import pytest

from guestmap.data_loading import CATEGORICAL_FIELDS
from guestmap.dictionary import build_dictionary
from guestmap.encoding import encode_records
from guestmap.grouping import build_wall_connections, group_pairs


@pytest.mark.unit
def test_group_pairs_emits_all_pairs_per_group() -> None:
    """Test every unordered pair within a group appears once."""
    items = [("c", "x"), ("a", "x"), ("b", "y"), ("d", "x"), ("e", "y")]
    pairs = group_pairs(items, key_fn=lambda i: i[1], id_fn=lambda i: i[0])

    assert pairs == [
        ("x", "a", "c"), ("x", "a", "d"), ("x", "c", "d"),
        ("y", "b", "e"),
    ]


@pytest.mark.unit
def test_group_pairs_skips_missing_keys() -> None:
    """Test items with no key are never grouped."""
    items = [("a", None), ("b", None), ("c", 1)]
    assert group_pairs(items, key_fn=lambda i: i[1], id_fn=lambda i: i[0]) == []


@pytest.mark.unit
def test_group_pairs_ignores_repeated_ids() -> None:
    """Test the same id twice in one group does not pair with itself."""
    items = [("a", 1), ("a", 1), ("b", 1)]
    assert group_pairs(items, key_fn=lambda i: i[1], id_fn=lambda i: i[0]) == [(1, "a", "b")]


@pytest.mark.unit
def test_wall_connections_are_labelled(make_record) -> None:
    """Test wall rows carry the field, decoded label and both UIDs."""
    records = [
        make_record(uid="u2", known_from="Work"),
        make_record(uid="u1", known_from="work "),
        make_record(uid="u3", known_from="School"),
        make_record(uid="u4"),
    ]
    dictionary = build_dictionary(records)
    table = encode_records(records, dictionary).table

    rows = build_wall_connections(table, dictionary, ["known_from"], CATEGORICAL_FIELDS)

    assert rows == [{"key": "known_from", "label": "Work", "uid_a": "u1", "uid_b": "u2"}]


@pytest.mark.unit
def test_wall_connections_for_interest_slot(make_record) -> None:
    """Test interest slots decode through the shared interest space."""
    records = [
        make_record(uid="a", interest_1="Film"),
        make_record(uid="b", interest_1="film"),
    ]
    dictionary = build_dictionary(records)
    table = encode_records(records, dictionary).table

    rows = build_wall_connections(table, dictionary, ["interest_1"], CATEGORICAL_FIELDS)
    assert rows[0]["label"] == "Film"
