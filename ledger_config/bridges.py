"""
Config -> Kernel Bridges.

Functions that turn a LedgerConfig into the runtime objects it configures.
These live in ledger_config (the producer) because the kernel must NEVER
import ledger_config.

Usage:
    from ledger_config import get_active_config
    from ledger_config.bridges import build_projector, init_engine_from_config

    config = get_active_config()
    init_engine_from_config(config)
    projector = build_projector(config)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from ledger_config.schema import LedgerConfig
from ledger_engines.currency import CurrencyEngine
from ledger_engines.projector import LedgerProjector
from ledger_engines.units import UnitEngine
from ledger_kernel.db.engine import init_engine_from_url


def init_engine_from_config(config: LedgerConfig, url: str | None = None) -> Engine:
    """
    Initialise the ledger engine from the ``database`` section.

    ``url`` overrides the configured URL (tests point it at a scratch
    database); pool settings and echo still come from the config.

    Raises:
        ValueError: If the config has no database section and no url is given.
    """
    database = config.database
    if database is None:
        if url is None:
            raise ValueError(f"Configuration {config.config_id!r} has no database section")
        return init_engine_from_url(url)
    return init_engine_from_url(
        url or database.url,
        echo=database.echo,
        pool_size=database.pool_size,
        max_overflow=database.max_overflow,
    )


def build_unit_engine(config: LedgerConfig) -> UnitEngine:
    """UnitEngine that parses kind-less input as the configured default kind."""
    return UnitEngine(default_kind=config.default_unit_kind)


def build_projector(config: LedgerConfig) -> LedgerProjector:
    """LedgerProjector in the configured currency and default unit kind."""
    return LedgerProjector(
        currency_engine=CurrencyEngine(config.currency),
        unit_engine=build_unit_engine(config),
        currency=config.currency,
    )
