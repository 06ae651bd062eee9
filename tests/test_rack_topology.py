"""Raf topolojisi testleri."""

import pytest

from rack_ledger.models.warehouse import Bin, RackConfig
from rack_ledger.services import rack_topology
from rack_ledger.services.rack_topology import BinSlot


def _bin(grid: int, level: str, position: int, bin_id: str = None) -> Bin:
    return Bin(
        id=bin_id or f"{grid}{level}{position}",
        rack_id="rack-1",
        grid_number=grid,
        level=level,
        position=position,
        code=f"WH-GF-R01-G{grid:02d}-{level}{position}",
        capacity=10,
    )


def _config(grids: int, levels: list, bins: int) -> RackConfig:
    return RackConfig(
        floor="GF", rack_number=1, grid_count=grids, levels_per_grid=levels,
        bins_per_level=bins, max_products_per_bin=10,
    )


class TestEnumerateSlots:

    def test_stable_order(self):
        slots = rack_topology.enumerate_slots(2, ["B", "A"], 2)
        assert slots[:3] == [BinSlot(1, "A", 1), BinSlot(1, "A", 2), BinSlot(1, "B", 1)]
        assert slots[-1] == BinSlot(2, "B", 2)
        assert len(slots) == rack_topology.total_bins(2, ["A", "B"], 2) == 8


class TestLevels:

    def test_levels_through(self):
        assert rack_topology.levels_through("j") == list("ABCDEFGHIJ")

    def test_levels_through_invalid(self):
        with pytest.raises(ValueError):
            rack_topology.levels_through("1")

    def test_validate_levels(self):
        assert rack_topology.validate_levels(["A", "B"]) == []
        assert rack_topology.validate_levels([]) != []
        assert rack_topology.validate_levels(["A", "C"]) != []
        assert rack_topology.validate_levels(["B"]) != []

    def test_validate_levels_unordered(self):
        """Seviyeler küme olarak doğrulanır; sıra önemli değil."""
        assert rack_topology.validate_levels(["B", "A"]) == []
        assert rack_topology.validate_levels(["C", "A", "B"]) == []
        assert rack_topology.validate_levels(["A", "A"]) != []
        assert rack_topology.validate_levels(["a", "B"]) != []
        assert rack_topology.validate_levels(["", "A"]) != []

    def test_enumerate_slots_sorts_levels(self):
        slots = rack_topology.enumerate_slots(1, ["B", "A"], 1)
        assert [s.level for s in slots] == ["A", "B"]


class TestDiff:

    def test_expand(self):
        bins = [_bin(1, "A", 1)]
        result = rack_topology.diff(bins, _config(1, ["A"], 3))
        assert result.to_create == [BinSlot(1, "A", 2), BinSlot(1, "A", 3)]
        assert result.to_remove == []
        assert [b.id for b in result.retained] == ["1A1"]

    def test_shrink(self):
        bins = [_bin(1, "A", 1), _bin(1, "A", 2), _bin(2, "A", 1)]
        result = rack_topology.diff(bins, _config(1, ["A"], 1))
        assert {b.id for b in result.to_remove} == {"1A2", "2A1"}
        assert result.to_create == []

    def test_duplicate_slot_removed(self):
        bins = [_bin(1, "A", 1, "first"), _bin(1, "A", 1, "dup")]
        result = rack_topology.diff(bins, _config(1, ["A"], 1))
        assert len(result.retained) == 1
        assert len(result.to_remove) == 1

    def test_no_change(self):
        bins = [_bin(1, "A", 1)]
        assert rack_topology.diff(bins, _config(1, ["A"], 1)).is_empty
