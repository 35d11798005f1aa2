"""
Configuration Loader (``coop_config.loader``).

Responsibility
--------------
Loads a YAML configuration set, applies environment overrides and parses
the result into the frozen ``coop_config.schema`` dataclasses.  Runtime
callers go through ``coop_config.get_active_config()`` instead.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required fields have no silent defaults.
* ``compute_checksum`` is a deterministic SHA-256 over the effective
  (post-override) configuration.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Mapping

import yaml

from coop_config.schema import (
    CoopConfig,
    DatabaseConfig,
    FiscalCalendar,
    LiquidationPolicy,
    LoggingConfig,
    ReceiptPolicy,
)

# Environment variable -> (section, key) of the YAML document it replaces.
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "DATABASE_URL": ("database", "url"),
    "COOP_LOG_LEVEL": ("logging", "level"),
}

_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of ``data`` with set environment overrides applied."""
    merged = {k: dict(v) if isinstance(v, dict) else v for k, v in data.items()}
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            merged.setdefault(section, {})
            merged[section][key] = value
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 checksum of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _positive_int(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{key} must be a positive integer, got {value!r}")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    url = data["url"]
    if not isinstance(url, str) or "://" not in url:
        raise ValueError(f"database.url is not a database URL: {url!r}")
    return DatabaseConfig(
        url=url,
        echo=bool(data.get("echo", False)),
        pool_size=_positive_int(data, "pool_size", 20),
        max_overflow=_positive_int(data, "max_overflow", 10),
        pool_timeout=_positive_int(data, "pool_timeout", 30),
        pool_recycle=_positive_int(data, "pool_recycle", 1800),
    )


def parse_liquidation(data: dict[str, Any]) -> LiquidationPolicy:
    min_years = data.get("min_years_for_periodic", 6)
    if isinstance(min_years, bool) or not isinstance(min_years, int) or min_years < 0:
        raise ValueError(f"min_years_for_periodic must be >= 0, got {min_years!r}")
    return LiquidationPolicy(
        min_years_for_periodic=min_years,
        pending_top_n=_positive_int(data, "pending_top_n", 5),
    )


def parse_fiscal(data: dict[str, Any]) -> FiscalCalendar:
    start_month = data.get("start_month", 10)
    if isinstance(start_month, bool) or not isinstance(start_month, int) or not 1 <= start_month <= 12:
        raise ValueError(f"fiscal.start_month must be 1..12, got {start_month!r}")
    return FiscalCalendar(start_month=start_month)


def parse_receipts(data: dict[str, Any]) -> ReceiptPolicy:
    return ReceiptPolicy(number_width=_positive_int(data, "number_width", 4))


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level is not a log level: {level!r}")
    return LoggingConfig(level=level)


def parse_config(data: dict[str, Any]) -> CoopConfig:
    """
    Parse an effective (post-override) configuration document.

    Raises:
        KeyError: if config_id, version or database.url is missing.
        ValueError: on out-of-range values.
    """
    return CoopConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        database=parse_database(data["database"]),
        liquidation=parse_liquidation(data.get("liquidation") or {}),
        fiscal=parse_fiscal(data.get("fiscal") or {}),
        receipts=parse_receipts(data.get("receipts") or {}),
        logging=parse_logging(data.get("logging") or {}),
        checksum=compute_checksum(data),
    )
