"""
Tests for the array state manager.
"""

import random

from formstudio.services.array_state import (
    add_item,
    derive_from_values,
    ensure_minimum,
    next_index,
    purge_values_for_removed_index,
    remove_item,
    reorder_items,
)


class TestDeriveFromValues:
    """Tests for reconstructing index sets from value keys."""

    def test_nested_indices(self):
        """Test indices at several nesting levels."""
        values = {
            "Tags.0": "A",
            "Tags.3": "B",
            "Address.1.Phones.0": "123",
            "SerialNumber": "SN-1",
        }
        assert derive_from_values(values) == {
            "Tags": [0, 3],
            "Address": [1],
            "Address.1.Phones": [0],
        }

    def test_no_arrays(self):
        """Test that plain keys yield no index sets."""
        assert derive_from_values({"A.B": 1}) == {}


class TestAddRemoveReorder:
    """Tests for the index set operations."""

    def test_next_index(self):
        """Test max + 1 and the empty case."""
        assert next_index([]) == 0
        assert next_index([0, 4, 2]) == 5
        assert next_index([], floor=3) == 3

    def test_add_item_does_not_mutate(self):
        """Test that inputs are left untouched."""
        items = {"Tags": [0]}
        updated = add_item(items, "Tags")
        assert updated == {"Tags": [0, 1]}
        assert items == {"Tags": [0]}

    def test_add_item_respects_issued(self):
        """Test that freed indices are not handed out again."""
        updated = add_item({"Tags": []}, "Tags", issued={"Tags": 2})
        assert updated["Tags"] == [2]

    def test_remove_item(self):
        """Test removing by display position."""
        updated, removed = remove_item({"Tags": [0, 1, 2]}, "Tags", 1)
        assert removed == 1
        assert updated == {"Tags": [0, 2]}

    def test_remove_out_of_bounds(self):
        """Test that out-of-bounds positions are no-ops."""
        updated, removed = remove_item({"Tags": [0]}, "Tags", 5)
        assert removed is None
        assert updated == {"Tags": [0]}

    def test_reorder_items(self):
        """Test moving an item."""
        assert reorder_items({"Tags": [0, 1, 2]}, "Tags", 0, 2) == {"Tags": [1, 2, 0]}

    def test_reorder_out_of_bounds(self):
        """Test that out-of-bounds moves are no-ops."""
        assert reorder_items({"Tags": [0, 1]}, "Tags", 0, 2) == {"Tags": [0, 1]}

    def test_ensure_minimum(self):
        """Test padding up to the minimum count."""
        assert ensure_minimum({}, {"Tags": 1}) == {"Tags": [0]}
        assert ensure_minimum({"Tags": [4]}, {"Tags": 1}) == {"Tags": [4]}
        assert ensure_minimum({"Tags": [4]}, {"Tags": 2}) == {"Tags": [4, 5]}

    def test_indices_stay_unique(self):
        """Test random operation sequences never produce duplicates."""
        rng = random.Random(7)
        items: dict[str, list[int]] = {"Tags": []}
        issued: dict[str, int] = {}
        history: list[int] = []
        for _ in range(200):
            op = rng.choice(["add", "add", "remove", "reorder"])
            size = len(items["Tags"])
            if op == "add":
                items = add_item(items, "Tags", issued)
                new_index = items["Tags"][-1]
                assert new_index not in history
                history.append(new_index)
                issued["Tags"] = new_index + 1
            elif op == "remove" and size:
                items, _ = remove_item(items, "Tags", rng.randrange(size))
            elif op == "reorder" and size:
                items = reorder_items(items, "Tags", rng.randrange(size), rng.randrange(size))
            assert len(set(items["Tags"])) == len(items["Tags"])


class TestPurge:
    """Tests for purging the values of a removed item."""

    def test_purge_removes_prefix_only(self):
        """Test that only the removed item's keys are dropped."""
        values = {"Tags.1": "B", "Tags.10": "K", "Tags.0": "A", "Address.1.Street": "X"}
        errors = {"Tags.1": "bad", "Tags.0": "bad"}
        touched = {"Tags.1": True}
        new_values, new_errors, new_touched = purge_values_for_removed_index(
            values, errors, touched, "Tags", 1
        )
        assert new_values == {"Tags.10": "K", "Tags.0": "A", "Address.1.Street": "X"}
        assert new_errors == {"Tags.0": "bad"}
        assert new_touched == {}

    def test_purge_nested_keys(self):
        """Test that keys beneath the removed item are dropped."""
        values = {"Measurements.0.Value": 1, "Measurements.1.Value": 2}
        new_values, _, _ = purge_values_for_removed_index(values, {}, {}, "Measurements", 0)
        assert new_values == {"Measurements.1.Value": 2}
