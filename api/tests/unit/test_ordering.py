"""
Tests unitarios para ordering.py (posiciones repetidas y desempate).
"""
from __future__ import annotations

from paprika_mirror.infrastructure.sync.entity_config import get_entity_config
from paprika_mirror.infrastructure.sync.ordering import find_conflicts, order_by_columns
from paprika_mirror.infrastructure.sync.reconciler import reconcile
from paprika_mirror.infrastructure.sync.types import EntityType, StoredRow


GROCERIES = get_entity_config(EntityType.GROCERIES)


def _row(uid: str, surrogate_id: int, list_uid: str, position: int) -> StoredRow:
    return StoredRow(
        uid=uid,
        surrogate_id=surrogate_id,
        fingerprint="x",
        scope=(list_uid,),
        position=position,
    )


class TestOrderByColumns:
    def test_ordered_type(self) -> None:
        cols = order_by_columns(GROCERIES)

        assert [c.name for c in cols] == ["order_flag", "id"]

    def test_unordered_type_falls_back_to_id(self) -> None:
        cols = order_by_columns(get_entity_config(EntityType.PANTRY))

        assert [c.name for c in cols] == ["id"]


class TestFindConflicts:
    def test_no_conflicts_for_distinct_positions(self, snapshots) -> None:
        stored = {"G1": _row("G1", 1, "L1", 0), "G2": _row("G2", 2, "L1", 1)}
        result = reconcile(GROCERIES, {}, [], is_complete=False)

        assert find_conflicts(GROCERIES, stored, result) == []

    def test_same_position_in_different_lists_is_fine(self, snapshots) -> None:
        stored = {"G1": _row("G1", 1, "L1", 0), "G2": _row("G2", 2, "L2", 0)}
        result = reconcile(GROCERIES, {}, [], is_complete=False)

        assert find_conflicts(GROCERIES, stored, result) == []

    def test_insert_colliding_with_existing(self, snapshots) -> None:
        stored = {"G1": _row("G1", 7, "L1", 3)}
        new = snapshots.grocery("G9", list_uid="L1", aisle_uid="A1", order_flag=3)
        result = reconcile(GROCERIES, {}, [new], is_complete=False)

        anomalies = find_conflicts(GROCERIES, stored, result)

        assert len(anomalies) == 1
        assert anomalies[0].kind == "duplicate_position"
        # Lo existente (surrogate id) va antes que los inserts
        assert anomalies[0].uids == ("G1", "G9")

    def test_inserts_tie_break_in_batch_order(self, snapshots) -> None:
        batch = [
            snapshots.grocery(uid, list_uid="L1", aisle_uid="A1", order_flag=0)
            for uid in ("Gb", "Ga")
        ]
        result = reconcile(GROCERIES, {}, batch, is_complete=True)

        anomalies = find_conflicts(GROCERIES, {}, result)

        assert anomalies[0].uids == ("Gb", "Ga")

    def test_removed_rows_do_not_conflict(self, snapshots) -> None:
        stored = {"G1": _row("G1", 1, "L1", 0)}
        new = snapshots.grocery("G2", list_uid="L1", aisle_uid="A1", order_flag=0)
        result = reconcile(GROCERIES, stored, [new], is_complete=True)

        assert result.to_remove == ["G1"]
        assert find_conflicts(GROCERIES, stored, result) == []

    def test_type_without_order_column(self, snapshots) -> None:
        pantry = get_entity_config(EntityType.PANTRY)
        result = reconcile(pantry, {}, [snapshots.pantry("P1", aisle_uid="A1")], is_complete=True)

        assert find_conflicts(pantry, {}, result) == []
