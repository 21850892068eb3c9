"""
Sheet Status Store tests.

Covers the sequence invariants after every mutation, the six-sheet
scenarios, recut entries, and concurrent writes to one index.
"""

import threading

import pytest

from cutshop.errors import InvalidArgumentError, NotFoundError, OutOfRangeError
from cutshop.sheets import SheetStatus

P, C, S = SheetStatus.PENDING, SheetStatus.CUT, SheetStatus.SKIP


def assert_well_formed(entity, size_attr="total_sheets"):
    size = getattr(entity, size_attr)
    assert len(entity.sheet_statuses) == size
    assert entity.completed_sheets == entity.sheet_statuses.count(C)


# =============================================================================
# Material sheets
# =============================================================================

class TestSetSheetStatus:

    def test_six_sheet_cut_then_skip(self, store, material):
        """
        GIVEN: A six-sheet material, all pending
        WHEN: Sheet 2 is set to cut, then to skip
        THEN: Only index 2 changes and the completed count follows it
        """
        updated = store.set_sheet_status(material.id, 2, "cut")
        assert updated.sheet_statuses == [P, P, C, P, P, P]
        assert updated.completed_sheets == 1

        updated = store.set_sheet_status(material.id, 2, "skip")
        assert updated.sheet_statuses[2] == S
        assert updated.completed_sheets == 0
        assert_well_formed(updated)

    def test_set_then_read(self, store, material):
        store.set_sheet_status(material.id, 4, SheetStatus.CUT)
        read = store.get_material(material.id)
        assert read.sheet_statuses[4] == C
        assert [s for i, s in enumerate(read.sheet_statuses) if i != 4] == [P] * 5

    def test_same_status_twice_is_idempotent(self, store, material):
        once = store.set_sheet_status(material.id, 1, "cut")
        twice = store.set_sheet_status(material.id, 1, "cut")
        assert once.sheet_statuses == twice.sheet_statuses
        assert once.completed_sheets == twice.completed_sheets == 1

    def test_any_status_may_follow_any_other(self, store, material):
        """The store does not enforce the activation cycle."""
        store.set_sheet_status(material.id, 0, "skip")
        updated = store.set_sheet_status(material.id, 0, "cut")
        assert updated.sheet_statuses[0] == C

    @pytest.mark.parametrize("index", [-1, 6, 100])
    def test_out_of_range_index(self, store, material, index):
        with pytest.raises(OutOfRangeError) as exc:
            store.set_sheet_status(material.id, index, "cut")
        assert exc.value.status_code == 400
        assert store.get_material(material.id).sheet_statuses == [P] * 6

    def test_invalid_status_rejected_before_write(self, store, material):
        with pytest.raises(InvalidArgumentError):
            store.set_sheet_status(material.id, 0, "done")
        assert store.get_material(material.id).sheet_statuses == [P] * 6

    def test_unknown_material(self, store):
        with pytest.raises(NotFoundError) as exc:
            store.set_sheet_status(999, 0, "cut")
        assert str(exc.value) == "Material not found: 999"


class TestResizing:

    def test_add_three_sheets(self, store, material):
        store.set_sheet_status(material.id, 0, "cut")
        updated = store.add_sheets(material.id, 3)
        assert updated.total_sheets == 9
        assert updated.sheet_statuses[:6] == [C, P, P, P, P, P]
        assert updated.sheet_statuses[6:] == [P, P, P]
        assert_well_formed(updated)

    @pytest.mark.parametrize("count", [0, -1])
    def test_add_non_positive_count(self, store, material, count):
        with pytest.raises(InvalidArgumentError):
            store.add_sheets(material.id, count)

    def test_add_recut_sheets_creates_entry(self, store, material):
        updated = store.add_sheets(material.id, 2, is_recut=True)
        assert updated.total_sheets == 6
        assert len(updated.recut_entries) == 1
        assert updated.recut_entries[0].quantity == 2
        assert updated.recut_entries[0].sheet_statuses == [P, P]

    def test_delete_sheet_shifts_later_indices(self, store, material):
        for index, status in enumerate(["cut", "skip", "cut", "pending", "skip", "cut"]):
            store.set_sheet_status(material.id, index, status)

        updated = store.delete_sheet(material.id, 2)

        assert updated.total_sheets == 5
        assert updated.sheet_statuses == [C, S, P, S, C]
        assert updated.completed_sheets == 2
        assert_well_formed(updated)

    def test_delete_last_sheet(self, store, material):
        updated = store.delete_sheet(material.id, 5)
        assert updated.sheet_statuses == [P] * 5

    def test_delete_out_of_range(self, store, material):
        with pytest.raises(OutOfRangeError):
            store.delete_sheet(material.id, 6)
        assert store.get_material(material.id).total_sheets == 6

    def test_invariant_across_mixed_operations(self, store, material):
        store.add_sheets(material.id, 2)
        store.set_sheet_status(material.id, 7, "cut")
        store.delete_sheet(material.id, 0)
        store.set_completed_count(material.id, 4)
        store.delete_sheet(material.id, 3)
        assert_well_formed(store.get_material(material.id))


class TestCompletedCount:

    def test_rewrites_statuses_to_match(self, store, material):
        updated = store.set_completed_count(material.id, 4)
        assert updated.completed_sheets == 4
        assert updated.sheet_statuses == [C, C, C, C, P, P]

    def test_above_total_rejected(self, store, material):
        with pytest.raises(InvalidArgumentError):
            store.set_completed_count(material.id, 7)


# =============================================================================
# Recut entries
# =============================================================================

class TestRecutEntries:

    def test_recut_has_its_own_sequence(self, store, material):
        recut = store.add_recut_entry(material.id, 3, reason="Chipped edge")
        updated = store.set_recut_sheet_status(recut.id, 1, "cut")

        assert updated.sheet_statuses == [P, C, P]
        assert updated.completed_sheets == 1
        assert_well_formed(updated, "quantity")
        assert store.get_material(material.id).sheet_statuses == [P] * 6

    def test_recut_index_bounded_by_quantity(self, store, material):
        recut = store.add_recut_entry(material.id, 2)
        with pytest.raises(OutOfRangeError):
            store.set_recut_sheet_status(recut.id, 2, "cut")

    def test_invalid_quantity(self, store, material):
        with pytest.raises(InvalidArgumentError):
            store.add_recut_entry(material.id, 0)

    def test_recut_for_unknown_material(self, store):
        with pytest.raises(NotFoundError):
            store.add_recut_entry(404, 1)

    def test_list_and_delete(self, store, material):
        first = store.add_recut_entry(material.id, 1)
        second = store.add_recut_entry(material.id, 2, user_id=None)
        assert [r.id for r in store.list_recut_entries(material.id)] == [first.id, second.id]

        deleted = store.delete_recut_entry(first.id)
        assert deleted.id == first.id
        assert [r.id for r in store.list_recut_entries(material.id)] == [second.id]
        with pytest.raises(NotFoundError):
            store.delete_recut_entry(first.id)


# =============================================================================
# Concurrency
# =============================================================================

class TestConcurrentWrites:

    def test_same_index_last_write_wins(self, store, material):
        """
        GIVEN: Many threads writing different statuses to sheet 3 at once
        WHEN: All writes have committed
        THEN: The array is well formed and sheet 3 holds one of the written values
        """
        statuses = ["cut", "skip", "pending", "cut", "skip", "cut", "skip", "pending"]
        barrier = threading.Barrier(len(statuses))
        errors = []

        def write(status):
            barrier.wait()
            try:
                store.set_sheet_status(material.id, 3, status)
            except Exception as e:  # surfaced through the assertion below
                errors.append(e)

        threads = [threading.Thread(target=write, args=(s,)) for s in statuses]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        final = store.get_material(material.id)
        assert_well_formed(final)
        assert final.sheet_statuses[3].value in statuses
        assert [s for i, s in enumerate(final.sheet_statuses) if i != 3] == [P] * 5

    def test_different_indices_are_all_kept(self, store, material):
        barrier = threading.Barrier(6)

        def write(index):
            barrier.wait()
            store.set_sheet_status(material.id, index, "cut")

        threads = [threading.Thread(target=write, args=(i,)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        final = store.get_material(material.id)
        assert final.sheet_statuses == [C] * 6
        assert final.completed_sheets == 6
