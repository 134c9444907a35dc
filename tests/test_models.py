"""Tests for record normalisation at the model boundary."""

import pytest
from pydantic import ValidationError

from normalization_backend.api.models import (FunctionalDependency, Relation, Relationship, normalize_fds,
                                              normalize_relations)


@pytest.mark.parametrize("record", [
    {"left": ["A", "B"], "right": ["C"]},
    {"lhs": ["A", "B"], "rhs": ["C"]},
    {"determinants": ["A", "B"], "dependents": ["C"]},
    (["A", "B"], ["C"]),
    "A, B -> C",
    "A B → C",
])
def test_fd_from_record_accepts_known_shapes(record):
    fd = FunctionalDependency.from_record(record)
    assert fd.lhs == ("A", "B")
    assert fd.rhs == ("C",)


@pytest.mark.parametrize("record", [
    {"left": [], "right": ["C"]},
    {"left": ["A"]},
    {"left": "A", "right": None},
    "A B C",
    42,
    None,
    ["A"],
])
def test_fd_from_record_rejects_malformed(record):
    assert FunctionalDependency.from_record(record) is None


def test_fd_sides_are_deduplicated():
    fd = FunctionalDependency(lhs=["A", "A", "B"], rhs=["C", "C"])
    assert fd.lhs == ("A", "B")
    assert fd.rhs == ("C",)
    assert str(fd) == "A, B -> C"


def test_fd_rejects_empty_side():
    with pytest.raises(ValidationError):
        FunctionalDependency(lhs=[], rhs=["A"])


def test_fd_trivial():
    assert FunctionalDependency(lhs=["A", "B"], rhs=["A"]).is_trivial
    assert not FunctionalDependency(lhs=["A"], rhs=["A", "B"]).is_trivial


def test_normalize_fds_drops_bad_records():
    fds = normalize_fds([{"left": ["A"], "right": ["B"]}, {"left": []}, "junk", "B -> C"])
    assert [str(fd) for fd in fds] == ["A -> B", "B -> C"]
    assert normalize_fds("A -> B") == []


def test_relation_from_record_shapes():
    relations = normalize_relations([
        "R(A, B)",
        {"name": "S", "attrs": ["x", "y"]},
        {"name": "T", "attributes": "not-a-list"},
        Relation(name="U", attributes=["k"]),
    ])
    assert [(rel.name, rel.attributes) for rel in relations] == [
        ("R", ["A", "B"]), ("S", ["x", "y"]), ("T", []), ("U", ["k"]),
    ]
    assert relations[0].display() == "R(A, B)"


def test_relationship_name_and_identity():
    rel = Relationship(from_table="orders", to_table="customers", fk_columns=["cid"], ref_columns=["id"])
    assert rel.identity == ("orders", "customers", ("cid",), ("id",))
    assert rel.to_dict()["name"] == "cid -> id"
