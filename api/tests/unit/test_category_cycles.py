"""
Tests unitarios para la detección de ciclos en el árbol de categorías.
"""
from __future__ import annotations

from paprika_mirror.infrastructure.sync.integrity import category_cycles


def test_tree_without_cycles() -> None:
    parent_of = {"root": None, "a": "root", "b": "a", "c": "root"}

    assert category_cycles(parent_of) == []


def test_self_reference_is_a_cycle() -> None:
    assert category_cycles({"a": "a"}) == [["a"]]


def test_two_node_cycle() -> None:
    cycles = category_cycles({"a": "b", "b": "a", "c": None})

    assert len(cycles) == 1
    assert sorted(cycles[0]) == ["a", "b"]


def test_branch_into_cycle_reports_only_cycle() -> None:
    parent_of = {"leaf": "x", "x": "y", "y": "z", "z": "x"}

    cycles = category_cycles(parent_of)

    assert len(cycles) == 1
    assert sorted(cycles[0]) == ["x", "y", "z"]


def test_missing_parent_is_not_a_cycle() -> None:
    """Un padre inexistente es referencia colgante, no ciclo."""
    assert category_cycles({"a": "ghost"}) == []
