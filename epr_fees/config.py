"""
Runtime settings read from the environment.

- EPR_REFERENCE_DIR: directory holding materials.csv, fees.csv, vendors.csv, products.csv
- EPR_LOG_LEVEL: logging level name for the service
- EPR_TOP_SKU_LIMIT: default size of the top-SKU summary
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .rules import DEFAULT_TOP_SKUS

PROJECT_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_REFERENCE_DIR = PROJECT_ROOT / "data"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    reference_dir: Path = DEFAULT_REFERENCE_DIR
    log_level: str = "INFO"
    top_sku_limit: int = DEFAULT_TOP_SKUS


def load_settings() -> Settings:
    limit = os.environ.get("EPR_TOP_SKU_LIMIT", "")
    return Settings(
        reference_dir=Path(os.environ.get("EPR_REFERENCE_DIR") or DEFAULT_REFERENCE_DIR),
        log_level=(os.environ.get("EPR_LOG_LEVEL") or "INFO").upper(),
        top_sku_limit=int(limit) if limit.isdigit() and int(limit) > 0 else DEFAULT_TOP_SKUS,
    )


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
