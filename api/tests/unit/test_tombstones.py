"""
Tests unitarios para tombstones.py (papelera vs. purga).
"""
from __future__ import annotations

import pytest

from paprika_mirror.infrastructure.sync.entity_config import get_entity_config
from paprika_mirror.infrastructure.sync.tombstones import (
    DeletionPolicy,
    flagged_uids,
    mark_tombstones,
    omitted_uids,
)
from paprika_mirror.infrastructure.sync.types import EntityType, ReconcileResult, StoredRow


class TestDeletionPolicy:
    @pytest.mark.parametrize(
        "policy, flag, omission",
        [
            (DeletionPolicy.EXPLICIT_FLAG, True, False),
            (DeletionPolicy.IMPLICIT_OMISSION, False, True),
            (DeletionPolicy.BOTH, True, True),
        ],
    )
    def test_policy_flags(self, policy, flag, omission) -> None:
        assert policy.honors_flag is flag
        assert policy.honors_omission is omission


class TestOmittedUids:
    def test_complete_snapshot_returns_missing(self) -> None:
        result = omitted_uids(
            DeletionPolicy.IMPLICIT_OMISSION, ["a", "b", "c"], {"a", "c"}, is_complete=True
        )

        assert result == ["b"]

    def test_partial_batch_returns_nothing(self) -> None:
        result = omitted_uids(
            DeletionPolicy.IMPLICIT_OMISSION, ["a", "b"], set(), is_complete=False
        )

        assert result == []

    def test_flag_only_policy_ignores_omission(self) -> None:
        result = omitted_uids(DeletionPolicy.EXPLICIT_FLAG, ["a"], set(), is_complete=True)

        assert result == []


class TestFlaggedUids:
    def test_returns_records_with_flag(self, snapshots) -> None:
        records = [
            snapshots.recipe("R1", in_trash=True),
            snapshots.recipe("R2"),
            snapshots.recipe_index("R3"),
        ]

        assert flagged_uids(DeletionPolicy.BOTH, records, "in_trash") == ["R1"]

    def test_without_trash_column(self, snapshots) -> None:
        records = [snapshots.recipe("R1", in_trash=True)]

        assert flagged_uids(DeletionPolicy.BOTH, records, None) == []

    def test_mark_tombstones_after_hydration(self, snapshots) -> None:
        config = get_entity_config(EntityType.RECIPES)
        result = ReconcileResult(
            entity_type=EntityType.RECIPES,
            to_insert=[snapshots.recipe_index("R1")],
        )
        assert mark_tombstones(result, config).tombstoned == []

        result.to_insert = [snapshots.recipe("R1", in_trash=True)]

        assert mark_tombstones(result, config).tombstoned == ["R1"]

    def test_mark_tombstones_against_stored_rows(self, snapshots) -> None:
        config = get_entity_config(EntityType.RECIPES)
        stored = {
            "R1": StoredRow(uid="R1", surrogate_id=1, fingerprint="h1", trashed=True),
            "R2": StoredRow(uid="R2", surrogate_id=2, fingerprint="h2", trashed=True),
            "R3": StoredRow(uid="R3", surrogate_id=3, fingerprint="h3"),
        }
        result = ReconcileResult(
            entity_type=EntityType.RECIPES,
            to_update=[
                snapshots.recipe("R1", in_trash=True),
                snapshots.recipe("R2"),
                snapshots.recipe("R3", in_trash=True),
            ],
        )

        mark_tombstones(result, config, stored)

        assert result.tombstoned == ["R3"]
        assert result.restored == ["R2"]

    def test_types_without_trash_flag_never_restore(self, snapshots) -> None:
        config = get_entity_config(EntityType.GROCERY_AISLES)
        stored = {"A1": StoredRow(uid="A1", surrogate_id=1, fingerprint="x", trashed=True)}
        result = ReconcileResult(entity_type=EntityType.GROCERY_AISLES, to_update=[snapshots.aisle("A1")])

        assert mark_tombstones(result, config, stored).restored == []
