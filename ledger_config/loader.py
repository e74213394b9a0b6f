"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``LedgerConfig`` dataclass.  This is internal tooling; the single public
entry point for runtime config is ``ledger_config.get_active_config()``.

Invariants enforced
-------------------
* Missing required keys raise ``KeyError``; there are no silent defaults
  for required fields.
* Amounts are read as decimal strings and never pass through float.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid values (dates, unit kinds, float amounts)  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import DatabaseConfig, LedgerConfig
from ledger_kernel.domain.units import UnitKind
from ledger_kernel.domain.values import Money


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def _parse_amount(value: Any, currency: str) -> Money:
    # YAML turns 100000.00 into a float; require a quoted string or an int.
    if isinstance(value, float):
        raise ValueError(
            f"Amount {value!r} must be quoted (e.g. \"{value}\") to avoid float rounding"
        )
    if isinstance(value, (int, str, Decimal)):
        return Money.of(value, currency)
    raise ValueError(f"Invalid amount: {value!r}")


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def parse_database(data: dict[str, Any] | None) -> DatabaseConfig | None:
    if not data:
        return None
    return DatabaseConfig(
        url=data["url"],
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 20)),
        max_overflow=int(data.get("max_overflow", 10)),
    )


def parse_ledger_config(data: dict[str, Any]) -> LedgerConfig:
    """Parse a raw config mapping into a ``LedgerConfig``."""
    ledger = data["ledger"]
    currency = str(ledger["currency"]).upper()
    return LedgerConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        currency=currency,
        seed_opening_balance=_parse_amount(ledger["seed_opening_balance"], currency),
        seed_date=_parse_date(ledger["seed_date"]),
        conflict_max_attempts=int(ledger.get("conflict_max_attempts", 3)),
        default_unit_kind=UnitKind.from_value(ledger.get("default_unit_kind", "kg-grams")),
        database=parse_database(data.get("database")),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 checksum of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
