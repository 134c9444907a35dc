"""Tests for closure, candidate keys, minimal cover and DDL helpers."""

import pytest

from normalization_backend.api.helpers import sanitize_identifier
from normalization_backend.api.models import FunctionalDependency
from normalization_backend.api.normalization_utils import (calculate_closure, check_fd_preservation,
                                                          find_candidate_keys, generate_create_table_sql,
                                                          get_minimal_cover, is_superkey)


def fd(lhs, rhs):
    return FunctionalDependency(lhs=lhs, rhs=rhs)


CHAIN = [fd(["A"], ["B"]), fd(["B"], ["C"]), fd(["C"], ["D"])]


def test_closure_follows_transitive_chain():
    fds = [fd(["A"], ["B"]), fd(["B"], ["C"])]
    assert calculate_closure({"A"}, fds) == {"A", "B", "C"}
    assert calculate_closure({"B"}, fds) == {"B", "C"}


def test_closure_is_extensive_monotone_and_idempotent():
    once = calculate_closure({"B"}, CHAIN)
    assert {"B"} <= once
    assert once <= calculate_closure({"A", "B"}, CHAIN)
    assert calculate_closure(once, CHAIN) == once


def test_closure_needs_whole_determinant():
    fds = [fd(["A", "B"], ["C"])]
    assert calculate_closure({"A"}, fds) == {"A"}
    assert calculate_closure({"A", "B"}, fds) == {"A", "B", "C"}


def test_closure_empty_inputs_return_copy():
    attrs = {"A"}
    result = calculate_closure(attrs, [])
    assert result == {"A"}
    assert result is not attrs
    assert calculate_closure(set(), CHAIN) == set()


def test_closure_accepts_raw_records():
    assert calculate_closure(["A"], [{"left": ["A"], "right": ["B"]}, "B -> C"]) == {"A", "B", "C"}


def test_is_superkey():
    assert is_superkey(["A"], ["A", "B", "C", "D"], CHAIN)
    assert not is_superkey(["B"], ["A", "B", "C", "D"], CHAIN)


def test_candidate_keys_single_key():
    assert find_candidate_keys(["A", "B", "C"], [fd(["A"], ["B"]), fd(["B"], ["C"])]) == [["A"]]
    assert find_candidate_keys(["A", "B", "C", "D"], CHAIN) == [["A"]]


def test_candidate_keys_multiple_keys():
    fds = [fd(["A"], ["B"]), fd(["B"], ["A"]), fd(["A"], ["C"])]
    assert find_candidate_keys(["A", "B", "C"], fds) == [["A"], ["B"]]


def test_candidate_keys_follow_bitmask_order_within_a_size():
    fds = [fd(["A", "D"], ["B", "C"]), fd(["B", "C"], ["A", "D"])]
    # {B, C} (mask 0b0110) is generated before {A, D} (mask 0b1001)
    assert find_candidate_keys(["A", "B", "C", "D"], fds) == [["B", "C"], ["A", "D"]]


def test_candidate_keys_are_minimal_and_cover_universe():
    attrs = ["A", "B", "C", "D", "E"]
    fds = [fd(["A", "B"], ["C"]), fd(["C"], ["D"]), fd(["D"], ["A"]), fd(["E"], ["B"])]
    keys = find_candidate_keys(attrs, fds)
    assert keys
    for key in keys:
        assert calculate_closure(key, fds) == set(attrs)
    for first in keys:
        for second in keys:
            if first is not second:
                assert not set(first) <= set(second)


def test_candidate_keys_without_fds_is_whole_relation():
    assert find_candidate_keys(["A", "B", "C"], []) == [["A", "B", "C"]]


def test_candidate_keys_empty_universe_falls_back():
    assert find_candidate_keys([], []) == [[]]


def test_minimal_cover_keeps_already_minimal_chain():
    cover = get_minimal_cover(CHAIN)
    assert [(c.lhs, c.rhs) for c in cover] == [(("A",), ("B",)), (("B",), ("C",)), (("C",), ("D",))]


def test_minimal_cover_removes_redundant_fd():
    cover = get_minimal_cover([fd(["A"], ["B"]), fd(["B"], ["C"]), fd(["A"], ["C"])])
    assert [(c.lhs, c.rhs) for c in cover] == [(("A",), ("B",)), (("B",), ("C",))]


def test_minimal_cover_removes_extraneous_lhs_attribute():
    cover = get_minimal_cover([fd(["A", "B"], ["C"]), fd(["A"], ["B"])])
    assert [(c.lhs, c.rhs) for c in cover] == [(("A",), ("C", "B"))]


def test_minimal_cover_never_empties_lhs():
    cover = get_minimal_cover([fd(["A", "B"], ["C"])])
    assert [(c.lhs, c.rhs) for c in cover] == [(("A", "B"), ("C",))]


def test_minimal_cover_splits_and_merges_rhs():
    cover = get_minimal_cover([fd(["A"], ["B", "C"])])
    assert [(c.lhs, c.rhs) for c in cover] == [(("A",), ("B", "C"))]


def test_minimal_cover_drops_duplicates():
    cover = get_minimal_cover([fd(["A"], ["B"]), fd(["A"], ["B"])])
    assert [(c.lhs, c.rhs) for c in cover] == [(("A",), ("B",))]


def test_minimal_cover_drops_trivial_fd():
    cover = get_minimal_cover([fd(["A"], ["A"]), fd(["A"], ["B"])])
    assert [(c.lhs, c.rhs) for c in cover] == [(("A",), ("B",))]


def test_minimal_cover_is_equivalent_to_input():
    fds = [fd(["A"], ["B", "C"]), fd(["B"], ["C"]), fd(["A", "B"], ["D"]), fd(["D"], ["E"]), fd(["A"], ["E"])]
    cover = get_minimal_cover(fds)
    for attrs in (["A"], ["B"], ["D"], ["A", "B"]):
        assert calculate_closure(attrs, cover) == calculate_closure(attrs, fds)
    for item in cover:
        assert len(item.lhs) >= 1


def test_minimal_cover_empty():
    assert get_minimal_cover([]) == []


def test_check_fd_preservation_reports_lost_fds():
    fds = [fd(["A"], ["B"]), fd(["B"], ["C"])]
    assert check_fd_preservation(fds, [["A", "B"], ["A", "C"]]) == ["{B} -> {C}"]
    assert check_fd_preservation(fds, [["A", "B"], ["B", "C"]]) == []


def test_generate_create_table_sql_marks_primary_key():
    sql = generate_create_table_sql("R1", ["A", "B"], {"A"})
    assert sql == ("CREATE TABLE `R1` (\n"
                   "    `A` TEXT NOT NULL,\n"
                   "    `B` TEXT,\n"
                   "    PRIMARY KEY (`A`)\n"
                   ");")


def test_generate_create_table_sql_maps_column_types():
    info = {"id": {"type": "INT"}, "label": {"type": "VARCHAR(50)"}, "at": {"type": "DATETIME"}}
    sql = generate_create_table_sql("items", ["id", "label", "at"], {"id"}, info)
    assert "`id` INT NOT NULL" in sql
    assert "`label` VARCHAR(255)" in sql
    assert "`at` DATETIME" in sql


def test_generate_create_table_sql_rejects_empty_relation():
    with pytest.raises(ValueError):
        generate_create_table_sql("empty", [], set())


def test_sanitize_identifier():
    assert sanitize_identifier("order") == "col_order"
    assert sanitize_identifier("first name") == "first_name"
    assert sanitize_identifier("9lives") == "col_9lives"
    assert sanitize_identifier("") is None
