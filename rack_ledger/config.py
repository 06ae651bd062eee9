"""Merkezi konfigürasyon. .env dosyası bir kez yüklenir, değerler ortamdan okunur."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Proje kökündeki .env dosyasını bul ve yükle (ortamdaki değerler öncelikli)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


@dataclass
class Settings:
    region: str = "us-west-2"
    table_name: str = "WarehouseDocuments"
    lock_timeout: float = 10.0
    suggestion_count: int = 5
    report_workers: int = 4
    log_level: str = "INFO"


def _env_number(name: str, default, cast):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ValueError(f"{name} ortam değişkeni geçersiz: {raw!r}") from e


def load_settings() -> Settings:
    """Ortam değişkenlerinden Settings üretir."""
    settings = Settings(
        region=os.environ.get("AWS_DEFAULT_REGION", Settings.region),
        table_name=os.environ.get("RACK_LEDGER_TABLE", Settings.table_name),
        lock_timeout=_env_number("RACK_LEDGER_LOCK_TIMEOUT", Settings.lock_timeout, float),
        suggestion_count=_env_number("RACK_LEDGER_SUGGESTION_COUNT", Settings.suggestion_count, int),
        report_workers=_env_number("RACK_LEDGER_REPORT_WORKERS", Settings.report_workers, int),
        log_level=os.environ.get("LOG_LEVEL", Settings.log_level).upper(),
    )
    if settings.suggestion_count < 1:
        raise ValueError("RACK_LEDGER_SUGGESTION_COUNT en az 1 olmalı")
    if settings.report_workers < 1:
        raise ValueError("RACK_LEDGER_REPORT_WORKERS en az 1 olmalı")
    return settings


def configure_logging(level: Optional[str] = None) -> None:
    """Uygulama genelinde logging ayarı. Seviye verilmezse LOG_LEVEL kullanılır."""
    if level is None:
        level = load_settings().log_level
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # AWS SDK loglarını biraz kısalım
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
