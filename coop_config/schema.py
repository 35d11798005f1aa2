"""
CoopConfig schema.

Frozen dataclasses the YAML configuration set is parsed into.  Every value
has been validated by the loader by the time a CoopConfig exists.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    """Async SQLAlchemy URL and pool settings."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class LiquidationPolicy:
    # Full years since the last liquidation (or affiliation) before a
    # member is due for a periodic liquidation.
    min_years_for_periodic: int = 6
    # How many of the most overdue members the stats report lists.
    pending_top_n: int = 5


@dataclass(frozen=True)
class FiscalCalendar:
    # Month (1-12) on whose first day the fiscal year starts.
    start_month: int = 10


@dataclass(frozen=True)
class ReceiptPolicy:
    # Digits in the per-year sequence of a YYYY-NNNN receipt number.
    number_width: int = 4


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class CoopConfig:
    """The whole runtime configuration, identified by id + version + checksum."""

    config_id: str
    version: int
    database: DatabaseConfig
    liquidation: LiquidationPolicy = field(default_factory=LiquidationPolicy)
    fiscal: FiscalCalendar = field(default_factory=FiscalCalendar)
    receipts: ReceiptPolicy = field(default_factory=ReceiptPolicy)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""
