"""
coop_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration.  Sits beside ``coop_kernel`` and below
    ``coop_services``.  The kernel MUST NEVER import from ``coop_config``;
    callers pass the values the kernel needs (threshold, fiscal start
    month, receipt width) explicitly.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - Environment overrides (DATABASE_URL, COOP_LOG_LEVEL) are applied
      before validation and are part of the checksum.
    - There is no default cooperative id.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` / ``KeyError`` -- validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``COOP_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying each batch to the configuration that governed it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from coop_config.loader import (
    ENV_OVERRIDES,
    apply_env_overrides,
    load_yaml_file,
    parse_config,
)
from coop_config.schema import (
    CoopConfig,
    DatabaseConfig,
    FiscalCalendar,
    LiquidationPolicy,
    LoggingConfig,
    ReceiptPolicy,
)

_logger = logging.getLogger("coop_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_PATH_ENV = "COOP_CONFIG_PATH"


def get_active_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> CoopConfig:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: ``config_path``, then
    ``$COOP_CONFIG_PATH``, then ``coop_config/sets/default.yaml``.

    Args:
        config_path: Explicit YAML file.
        environ: Environment to read overrides from.  Defaults to
            ``os.environ``.

    Returns:
        A validated, frozen CoopConfig.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If a value is out of range.
        KeyError: If a required key is missing.
    """
    env = os.environ if environ is None else environ
    path = Path(config_path or env.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)

    raw = load_yaml_file(path)
    config = parse_config(apply_env_overrides(raw, env))

    _logger.info(
        "COOP_CONFIG_TRACE",
        extra={
            "trace_type": "COOP_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
            "overrides": sorted(k for k in ENV_OVERRIDES if env.get(k)),
        },
    )
    return config


__all__ = [
    "CoopConfig",
    "DatabaseConfig",
    "FiscalCalendar",
    "LiquidationPolicy",
    "LoggingConfig",
    "ReceiptPolicy",
    "get_active_config",
]
