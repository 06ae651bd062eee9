from rack_ledger.services import location_codec, rack_topology
from rack_ledger.services.inventory_ledger import InventoryLedger, ReplayRequest, ReplayResult, ReplayScope
from rack_ledger.services.rack_structure import RackStructureManager
from rack_ledger.services.report_projector import Direction, ReportProjector, StockMovementReport
from rack_ledger.services.reports import StockReportService

__all__ = [
    "Direction",
    "InventoryLedger",
    "RackStructureManager",
    "ReplayRequest",
    "ReplayResult",
    "ReplayScope",
    "ReportProjector",
    "StockMovementReport",
    "StockReportService",
    "location_codec",
    "rack_topology",
]
