"""
expense_config -- single public entrypoint for reimbursement configuration.

Responsibility:
    Provides the way to obtain configuration at runtime through
    ``get_active_config()``, which returns a ``ReimbursementConfig``
    holding the rate tables and policies, with wiring methods for each
    engine.

Architecture position:
    Configuration -- YAML-driven.  This package sits above
    ``expense_kernel`` and ``expense_engines``; neither imports from it.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``KeyError`` / ``ValueError`` -- missing or invalid values,
      overlapping mileage rates.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``EXPENSE_CONFIG_TRACE`` log entry with the source path, checksum and
    rate counts, tying each reimbursement back to the exact rate table
    that priced it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from expense_config.loader import load_config
from expense_config.schema import (
    AllowancePolicy,
    MileagePolicy,
    ReceiptParsingPolicy,
    ReimbursementConfig,
)

_logger = logging.getLogger("expense_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "reimbursement.yaml"


def get_active_config(path: Path | str | None = None) -> ReimbursementConfig:
    """
    Load the active reimbursement configuration.

    Args:
        path: Override path to a YAML configuration document.
            Defaults to expense_config/defaults/reimbursement.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the configuration is invalid.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = load_config(config_path)

    _logger.info(
        "EXPENSE_CONFIG_TRACE",
        extra={
            "trace_type": "EXPENSE_CONFIG_TRACE",
            "source_path": str(config_path),
            "checksum": config.checksum,
            "mileage_rate_count": len(config.mileage_rates),
            "per_diem_rate_count": len(config.per_diem_rates),
        },
    )
    return config


__all__ = [
    "AllowancePolicy",
    "DEFAULT_CONFIG_PATH",
    "MileagePolicy",
    "ReceiptParsingPolicy",
    "ReimbursementConfig",
    "get_active_config",
]
