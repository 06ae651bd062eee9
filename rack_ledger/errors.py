"""Hata sınıfları - raf yapısı ve stok defteri işlemleri.

Yapısal hatalar (çakışma, dolu göz, dolu raf) işlemi tamamen iptal eder;
hiçbir kısmi yazma yapılmaz. ReplayContinuityWarning ise fırlatılmaz,
rapor sonucuyla birlikte toplanıp döndürülür.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class RackLedgerError(Exception):
    """Tüm paket hatalarının temel sınıfı."""
    pass


class MalformedLocationCode(RackLedgerError, ValueError):
    """Lokasyon kodu beklenen formata uymuyor."""

    def __init__(self, code: Any, reason: str):
        self.code = code
        self.reason = reason
        super().__init__(f"Geçersiz lokasyon kodu {code!r}: {reason}")


class InvalidRackConfig(RackLedgerError, ValueError):
    """Raf konfigürasyonu doğrulamadan geçmedi."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Geçersiz raf konfigürasyonu: " + "; ".join(self.errors))


class WarehouseNotFound(RackLedgerError, LookupError):
    def __init__(self, warehouse_id: str):
        self.warehouse_id = warehouse_id
        super().__init__(f"Depo bulunamadı: {warehouse_id}")


class RackNotFound(RackLedgerError, LookupError):
    def __init__(self, warehouse_id: str, rack_id: str):
        self.warehouse_id = warehouse_id
        self.rack_id = rack_id
        super().__init__(f"Raf bulunamadı: {warehouse_id}/{rack_id}")


@dataclass(frozen=True)
class OccupiedBin:
    """Silinmesi/küçültülmesi engellenen dolu göz."""

    code: str
    sku: Optional[str]
    quantity: int

    def describe(self) -> str:
        return f"{self.code}: {self.sku or 'Bilinmeyen'} ({self.quantity} adet)"


class RackNumberConflict(RackLedgerError):
    """Aynı kat üzerinde aynı raf numarası zaten kullanılıyor."""

    def __init__(self, rack_number: int, floor: str, conflicting_rack: Any, suggestions: list[int]):
        self.rack_number = rack_number
        self.floor = floor
        self.conflicting_rack = conflicting_rack
        self.suggestions = list(suggestions)
        name = getattr(conflicting_rack, "name", None) or getattr(conflicting_rack, "id", "?")
        alternatives = ", ".join(f"R{n:02d}" for n in self.suggestions) or "yok"
        super().__init__(
            f"R{rack_number:02d} numaralı raf {floor} katında zaten mevcut "
            f"(\"{name}\"). Önerilen alternatifler: {alternatives}"
        )


class NonEmptyBinShrink(RackLedgerError):
    """Küçültme işlemi stok içeren gözleri silecekti."""

    def __init__(self, bins: list[OccupiedBin]):
        self.bins = list(bins)
        listing = ", ".join(b.describe() for b in self.bins)
        super().__init__(
            f"Raf küçültülemez. Şu gözlerde ürün var: {listing}. "
            "Önce bu ürünleri başka gözlere taşıyın."
        )


class CapacityBelowOccupancy(RackLedgerError):
    """Yeni göz kapasitesi mevcut stok miktarının altında kalıyor."""

    def __init__(self, capacity: int, bins: list[OccupiedBin]):
        self.capacity = capacity
        self.bins = list(bins)
        listing = ", ".join(b.describe() for b in self.bins)
        super().__init__(
            f"Göz kapasitesi {capacity} olarak düşürülemez; mevcut stok daha fazla: {listing}"
        )


class RackNotEmpty(RackLedgerError):
    """Dolu göz içeren raf silinemez."""

    def __init__(self, rack_id: str, bins: list[OccupiedBin]):
        self.rack_id = rack_id
        self.bins = list(bins)
        listing = ", ".join(b.describe() for b in self.bins)
        super().__init__(f"Raf {rack_id} boş değil, silinemez: {listing}")


class TransactionConflict(RackLedgerError):
    """İşlem kilidi alınamadı ya da commit sırasında çakışma oluştu."""

    def __init__(self, message: str, keys: tuple[str, ...] = ()):
        self.keys = tuple(keys)
        super().__init__(message)


class TransactionTooLarge(RackLedgerError):
    """İşlem deponun tek seferde kabul ettiği öğe sınırını aşıyor; hiçbir şey yazılmadı."""

    def __init__(self, item_count: int, limit: int, keys: tuple[str, ...] = ()):
        self.item_count = item_count
        self.limit = limit
        self.keys = tuple(keys)
        super().__init__(
            f"İşlem {item_count} öğe içeriyor, sınır {limit}. "
            "Raf yapısını daha küçük adımlarla değiştirin."
        )


class MalformedHistoryEntry(RackLedgerError, ValueError):
    """Operasyon geçmişi kaydı çözümlenemedi."""

    def __init__(self, entry_id: Any, reason: str):
        self.entry_id = entry_id
        self.reason = reason
        super().__init__(f"Geçersiz geçmiş kaydı {entry_id!r}: {reason}")


class ReplayCancelled(RackLedgerError):
    """Yeniden oynatma çağıran tarafından iptal edildi."""
    pass


class ReplayContinuityWarning(UserWarning):
    """Defter yeniden oynatmada tespit edilen veri tutarsızlığı.

    kind:
        continuity     - ardışık iki hareket arasında açılış != önceki kapanış
        clamped        - çekilen miktar mevcut stoktan fazla, kapanış 0'a sabitlendi
        reconciliation - yeniden hesaplanan bakiye göz kaydıyla uyuşmuyor
    """

    CONTINUITY = "continuity"
    CLAMPED = "clamped"
    RECONCILIATION = "reconciliation"

    def __init__(
        self,
        kind: str,
        sku: str,
        bin_id: str,
        expected: int,
        actual: int,
        timestamp: Optional[str] = None,
        event_id: Optional[str] = None,
    ):
        self.kind = kind
        self.sku = sku
        self.bin_id = bin_id
        self.expected = expected
        self.actual = actual
        self.timestamp = timestamp
        self.event_id = event_id
        super().__init__(
            f"[{kind}] {sku}@{bin_id}: beklenen={expected}, gerçekleşen={actual}"
            + (f" ({timestamp})" if timestamp else "")
        )

    @property
    def key(self) -> tuple[str, str]:
        return (self.sku, self.bin_id)
