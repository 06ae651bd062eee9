"""Eski lokasyon kodu taşıma testleri."""

import pytest

from rack_ledger.errors import MalformedLocationCode
from rack_ledger.models.warehouse import Rack
from rack_ledger.services import legacy_codes


def _create_rack() -> Rack:
    return Rack(
        id="rack-1",
        warehouse_id="WH001",
        floor="GF",
        rack_number=4,
        grid_count=2,
        levels_per_grid=["A", "B", "C"],
        bins_per_level=3,
        max_products_per_bin=50,
    )


class TestSequentialToSlot:

    def test_first_position(self):
        assert legacy_codes.sequential_to_slot(1, ["A", "B"], 3) == ("A", 1)

    def test_wraps_to_next_level(self):
        assert legacy_codes.sequential_to_slot(4, ["A", "B"], 3) == ("B", 1)
        assert legacy_codes.sequential_to_slot(6, ["A", "B"], 3) == ("B", 3)

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            legacy_codes.sequential_to_slot(7, ["A", "B"], 3)


class TestMigrateCode:
    """Grid-harfi formatından kanonik formata."""

    def test_grid_letter_code(self):
        # B = grid 2, 7. göz -> 3 göz/seviye ile C seviyesi, 1. pozisyon
        new_code = legacy_codes.migrate_code("WH1-GF-R04-G02-B7", "WH", ["A", "B", "C"], 3)
        assert new_code == "WH-GF-R04-G02-C1"

    def test_letter_grid_mismatch(self):
        with pytest.raises(MalformedLocationCode):
            legacy_codes.parse_legacy_code("WH1-GF-R04-G02-A7")


class TestMigrateBinDocuments:

    def test_legacy_documents_get_patches(self):
        docs = [
            {"id": "b1", "code": "WH1-GF-R04-G01-A5", "gridLevel": 1, "position": 5},
            {"id": "b2", "code": "WH-GF-R04-G01-A1", "gridNumber": 1, "level": "A", "position": 1},
        ]
        migrations = legacy_codes.migrate_bin_documents(docs, _create_rack(), "WH")
        assert len(migrations) == 1
        patch = migrations[0].to_patch()
        assert patch == {"code": "WH-GF-R04-G01-B2", "gridNumber": 1, "level": "B", "position": 2}
        assert migrations[0].old_code == "WH1-GF-R04-G01-A5"
