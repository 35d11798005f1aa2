"""
coop_services.runtime -- Wire configuration into a running service set.

Responsibility:
    Single production entrypoint.  Reads the active configuration, sets up
    logging, the engine and the immutability listeners, and builds the
    receipt and liquidation services with the configured policy values.

Architecture position:
    Services.  The only place where coop_config and coop_kernel meet.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from coop_config import CoopConfig, get_active_config
from coop_kernel.db.engine import get_session_factory, init_engine_from_url, reset_engine
from coop_kernel.db.immutability import register_immutability_listeners
from coop_kernel.domain.clock import Clock, SystemClock
from coop_kernel.logging_config import configure_logging, get_logger
from coop_services.liquidation_service import LiquidationService
from coop_services.receipt_service import ReceiptGenerator, ReceiptService

logger = get_logger("services.runtime")


@dataclass(frozen=True)
class CoopRuntime:
    config: CoopConfig
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    receipts: ReceiptService
    liquidations: LiquidationService

    async def close(self) -> None:
        await reset_engine()


def build_runtime(
    config: CoopConfig | None = None,
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
    clock: Clock | None = None,
    receipt_generator: ReceiptGenerator | None = None,
) -> CoopRuntime:
    """Build the service set from configuration.

    Args:
        config: Already loaded configuration.  When None it is loaded with
            get_active_config(config_path, environ).
        clock: Defaults to SystemClock.
        receipt_generator: Replaces the database-backed ReceiptService as
            the post-commit receipt issuer.

    Returns:
        CoopRuntime.  Call ``await runtime.close()`` to dispose the engine.
    """
    if config is None:
        config = get_active_config(config_path, environ)
    clock = clock or SystemClock()

    configure_logging(level=config.logging.level)
    register_immutability_listeners()

    db = config.database
    engine = init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )
    session_factory = get_session_factory()

    receipts = ReceiptService(
        session_factory, clock=clock, number_width=config.receipts.number_width
    )
    liquidations = LiquidationService.from_config(
        config,
        session_factory,
        receipt_generator=receipt_generator or receipts,
        clock=clock,
    )

    logger.info(
        "runtime_built",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
        },
    )
    return CoopRuntime(
        config=config,
        engine=engine,
        session_factory=session_factory,
        receipts=receipts,
        liquidations=liquidations,
    )
