"""Rapor şekillendirici testleri."""

from rack_ledger.models.history import MovementRecord
from rack_ledger.models.warehouse import OperationType
from rack_ledger.services.report_projector import Direction, ReportProjector


def _movements() -> list:
    return [
        MovementRecord("2024-01-01T00:00:00Z", "SKU1", "b1", "WH-GF-R01-G01-A1", OperationType.PUTAWAY, 30, 0, 30),
        MovementRecord("2024-01-02T00:00:00Z", "SKU1", "b1", "WH-GF-R01-G01-A1", OperationType.PICK, 10, 30, 20),
        MovementRecord("2024-01-03T00:00:00Z", "SKU2", "b2", "WH-GF-R01-G01-A2", OperationType.PUTAWAY, 5, 0, 5),
    ]


class TestProject:

    def test_most_recent_first_by_default(self):
        report = ReportProjector().project(_movements())
        assert [r.timestamp[:10] for r in report.rows] == ["2024-01-03", "2024-01-02", "2024-01-01"]

    def test_chronological(self):
        report = ReportProjector().project(_movements(), direction=Direction.CHRONOLOGICAL)
        assert report.rows[0].quantity == 30

    def test_summary(self):
        summary = ReportProjector().project(_movements()).summary
        assert summary == {
            "total_movements": 3,
            "putaway_count": 2,
            "pick_count": 1,
            "total_quantity_moved": 45,
            "unique_skus": 2,
            "unique_locations": 2,
        }

    def test_empty(self):
        report = ReportProjector().project([])
        assert report.rows == []
        assert report.summary["total_movements"] == 0

    def test_input_not_mutated(self):
        movements = _movements()
        ReportProjector().project(movements)
        assert movements[0].quantity == 30

    def test_to_dict(self):
        data = ReportProjector().project(_movements()).to_dict()
        assert data["rows"][0]["operationType"] == "putaway"
        assert data["rows"][0]["binCode"] == "WH-GF-R01-G01-A2"
