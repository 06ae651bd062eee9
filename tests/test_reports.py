"""Rapor servisi ve uçtan uca senaryo testleri."""

from rack_ledger.config import Settings
from rack_ledger.models.history import history_document
from rack_ledger.models.warehouse import Bin, BinStatus, OperationType, RackConfig
from rack_ledger.services.inventory_ledger import ReplayScope
from rack_ledger.services.rack_structure import RackStructureManager
from rack_ledger.services.reports import StockReportService
from rack_ledger.store import InMemoryDocumentStore, bins_path, history_path, warehouses_path

WAREHOUSE_ID = "WH001"


def _create_services():
    store = InMemoryDocumentStore()
    store.create(warehouses_path(), {"id": WAREHOUSE_ID, "code": "WH", "name": "Ana Depo"})
    settings = Settings()
    manager = RackStructureManager(store, settings=settings)
    rack = manager.create_rack_with_structure(
        WAREHOUSE_ID,
        RackConfig(floor="GF", rack_number=1, grid_count=1, levels_per_grid=["A"], bins_per_level=2, max_products_per_bin=100),
    )
    return store, StockReportService(store, settings=settings), rack


def _bin_doc(store, code: str) -> dict:
    return next(d for d in store.list(bins_path(WAREHOUSE_ID)) if d["code"] == code)


class TestEndToEnd:
    """Raf oluştur -> putaway kaydet -> oynat."""

    def test_putaway_movement(self):
        store, service, result = _create_services()
        assert sorted(b.code for b in result.bins) == ["WH-GF-R01-G01-A1", "WH-GF-R01-G01-A2"]

        a1 = _bin_doc(store, "WH-GF-R01-G01-A1")
        store.create(history_path(WAREHOUSE_ID), history_document(
            "putaway", "2024-03-01T09:00:00Z",
            [{"sku": "SKU1", "status": "Completed", "allocationPlan": [
                {"binId": a1["id"], "binCode": "A1", "allocatedQuantity": 40},
            ]}],
        ))

        report = service.stock_movements_report(WAREHOUSE_ID)
        assert len(report.rows) == 1
        row = report.rows[0]
        assert (row.sku, row.bin_code, row.operation_type) == ("SKU1", "A1", OperationType.PUTAWAY)
        assert (row.quantity, row.opening, row.closing) == (40, 0, 40)
        assert report.warnings == []

    def test_scoped_report(self):
        store, service, _ = _create_services()
        a1 = _bin_doc(store, "WH-GF-R01-G01-A1")
        for ts, op, qty in [("2024-03-01T09:00:00Z", "putaway", 30), ("2024-03-02T09:00:00Z", "pick", 10)]:
            key = "allocationPlan" if op == "putaway" else "pickedBins"
            qty_field = "allocatedQuantity" if op == "putaway" else "quantity"
            store.create(history_path(WAREHOUSE_ID), history_document(
                op, ts, [{"sku": "SKU1", key: [{"binId": a1["id"], qty_field: qty}]}],
            ))
        report = service.stock_movements_report(WAREHOUSE_ID, scope=ReplayScope(since="2024-03-02T00:00:00Z"))
        assert report.rows[0].opening == 30
        assert report.rows[0].bin_code == "WH-GF-R01-G01-A1"
        assert report.summary["pick_count"] == 1


class TestInventorySummary:

    def test_mixed_and_single_bins(self):
        store, service, _ = _create_services()
        a1 = _bin_doc(store, "WH-GF-R01-G01-A1")
        a2 = _bin_doc(store, "WH-GF-R01-G01-A2")
        store.update(bins_path(WAREHOUSE_ID), a1["id"], {"sku": "SKU2", "currentQty": 10})
        store.update(bins_path(WAREHOUSE_ID), a2["id"], {
            "currentQty": 7,
            "mixedContents": [{"sku": "SKU2", "quantity": 3}, {"sku": "SKU1", "quantity": 4}],
        })
        data = service.inventory_summary(WAREHOUSE_ID)
        assert [(r["sku"], r["location"]) for r in data["inventory"]] == [
            ("SKU1", "WH-GF-R01-G01-A2"),
            ("SKU2", "WH-GF-R01-G01-A1"),
            ("SKU2", "WH-GF-R01-G01-A2"),
        ]
        assert data["summary"]["total_quantity"] == 17
        assert data["inventory"][0]["rack_code"] == "R01"

    def test_sku_filter(self):
        store, service, _ = _create_services()
        a1 = _bin_doc(store, "WH-GF-R01-G01-A1")
        store.update(bins_path(WAREHOUSE_ID), a1["id"], {"sku": "SKU2", "currentQty": 10})
        assert service.inventory_summary(WAREHOUSE_ID, skus=["SKU1"])["inventory"] == []


class TestBinUtilization:

    def test_rack_stats(self):
        store, service, _ = _create_services()
        a1 = _bin_doc(store, "WH-GF-R01-G01-A1")
        store.update(bins_path(WAREHOUSE_ID), a1["id"], {"sku": "SKU1", "currentQty": 100})
        data = service.bin_utilization(WAREHOUSE_ID)
        assert data["utilization"][0]["utilization_percent"] == 100.0
        assert data["summary"]["full_bins"] == 1
        assert data["summary"]["overall_utilization"] == 50.0
        assert data["summary"]["rack_stats"][0]["occupied_bins"] == 1


class TestUnknownBinStatus:
    """Dış araçların yazdığı bilinmeyen göz durumları raporları bozmamalı."""

    def test_inactive_bin_in_all_reports(self):
        store, service, _ = _create_services()
        a1 = _bin_doc(store, "WH-GF-R01-G01-A1")
        a2 = _bin_doc(store, "WH-GF-R01-G01-A2")
        store.update(bins_path(WAREHOUSE_ID), a1["id"], {"sku": "SKU1", "currentQty": 40})
        store.update(bins_path(WAREHOUSE_ID), a2["id"], {"status": "inactive"})
        store.create(history_path(WAREHOUSE_ID), history_document(
            "putaway", "2024-03-01T09:00:00Z",
            [{"sku": "SKU1", "allocationPlan": [{"binId": a1["id"], "allocatedQuantity": 40}]}],
        ))

        report = service.stock_movements_report(WAREHOUSE_ID)
        assert [(r.sku, r.closing) for r in report.rows] == [("SKU1", 40)]

        summary = service.inventory_summary(WAREHOUSE_ID)
        assert summary["summary"]["total_quantity"] == 40

        rows = service.bin_utilization(WAREHOUSE_ID)["utilization"]
        statuses = {row["bin_code"]: row["status"] for row in rows}
        assert statuses["WH-GF-R01-G01-A2"] == "inactive"
        assert statuses["WH-GF-R01-G01-A1"] == "available"

    def test_status_kept_on_round_trip(self):
        store, _, _ = _create_services()
        doc = {**_bin_doc(store, "WH-GF-R01-G01-A1"), "status": "inactive"}
        bin = Bin.from_document(doc)
        assert bin.status == "inactive"
        assert bin.to_document()["status"] == "inactive"
        assert Bin.from_document({**doc, "status": "occupied"}).status == BinStatus.OCCUPIED
        assert Bin.from_document({k: v for k, v in doc.items() if k != "status"}).status == BinStatus.AVAILABLE


class TestOperationSummary:

    def _seed(self, store):
        store.create(history_path(WAREHOUSE_ID), history_document("pick", "2024-03-01T09:00:00Z", [
            {"sku": "S1", "quantity": 10, "pickedQty": 10, "status": "Completed"},
            {"sku": "S2", "quantity": 10, "pickedQty": 5, "status": "Partial"},
        ]))
        store.create(history_path(WAREHOUSE_ID), history_document("pick", "2024-03-02T09:00:00Z", [
            {"sku": "S3", "quantity": 5, "pickedQty": 0, "status": "Failed"},
        ]))
        store.create(history_path(WAREHOUSE_ID), history_document("putaway", "2024-03-02T10:00:00Z", [
            {"sku": "S1", "quantity": 20, "status": "Completed"},
        ]))

    def test_pick_summary(self):
        store, service, _ = _create_services()
        self._seed(store)
        data = service.operation_summary(WAREHOUSE_ID, "pick")
        summary = data["summary"]
        assert summary["total_operations"] == 2
        assert (summary["successful_items"], summary["partial_items"], summary["failed_items"]) == (1, 1, 1)
        assert summary["fill_rate"] == 60.0
        assert [d["date"] for d in data["daily_stats"]] == ["2024-03-01", "2024-03-02"]
        assert data["operations"][0]["date"] == "2024-03-02"

    def test_putaway_summary_with_range(self):
        store, service, _ = _create_services()
        self._seed(store)
        data = service.operation_summary(WAREHOUSE_ID, OperationType.PUTAWAY, since="2024-03-02T00:00:00Z")
        assert data["summary"]["total_quantity"] == 20
        assert data["summary"]["success_rate"] == 100.0
        assert "fill_rate" not in data["summary"]
