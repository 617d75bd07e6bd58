"""
Configuration Loader (``expense_config.loader``).

Responsibility
--------------
Loads a reimbursement YAML document and parses it into a typed
``ReimbursementConfig``.  Runtime callers go through
``expense_config.get_active_config()``; tests may call the parse
functions directly.

Architecture position
---------------------
**Config layer** -- sits above ``expense_kernel`` and ``expense_engines``.
Neither of those packages imports from here.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required keys are never silently defaulted.
* Mileage rate ranges may not overlap within a category.
* Money values are parsed through ``str`` into ``Decimal``; YAML floats
  never reach the engines as binary floats.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid dates, negative rates, overlapping ranges  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from expense_config.schema import (
    AllowancePolicy,
    MileagePolicy,
    ReceiptParsingPolicy,
    ReimbursementConfig,
)
from expense_engines.rate_resolver import find_rate_overlaps
from expense_kernel.domain.rates import PerDiemRate, RateCategory, RateRecord
from expense_kernel.logging_config import get_logger

logger = get_logger("config.loader")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """
    Parse a date from YAML (string or date object).

    Raises:
        ValueError: if ``value`` is not a valid date representation.
    """
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_decimal(value: Any, name: str) -> Decimal:
    """Parse a YAML scalar into a Decimal (floats go through ``str``)."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e


def parse_mileage_rate(data: dict[str, Any]) -> RateRecord:
    """Parse one ``mileage_rates`` entry."""
    return RateRecord(
        category=RateCategory(data["category"]),
        rate=parse_decimal(data["rate"], "rate"),
        effective_from=parse_date(data["effective_from"]),
        effective_until=(
            parse_date(data["effective_until"]) if data.get("effective_until") else None
        ),
        notes=data.get("notes"),
    )


def parse_per_diem_rate(data: dict[str, Any]) -> PerDiemRate:
    """Parse one ``per_diem_rates`` entry."""
    return PerDiemRate(
        location_name=data["location_name"],
        country_code=data["country_code"],
        state=data.get("state"),
        city=data.get("city"),
        lodging_rate=parse_decimal(data["lodging_rate"], "lodging_rate"),
        mie_rate=parse_decimal(data["mie_rate"], "mie_rate"),
        effective_from=parse_date(data["effective_from"]),
        effective_until=(
            parse_date(data["effective_until"]) if data.get("effective_until") else None
        ),
        organization_id=(
            UUID(str(data["organization_id"])) if data.get("organization_id") else None
        ),
        is_active=data.get("is_active", True),
        source=data.get("source", "gsa"),
    )


def parse_allowances(data: dict[str, Any]) -> AllowancePolicy:
    """Parse the ``allowances`` section."""
    meals = data.get("meal_deductions", {})
    defaults = AllowancePolicy()
    return AllowancePolicy(
        first_last_day_pct=parse_decimal(
            data.get("first_last_day_pct", defaults.first_last_day_pct),
            "first_last_day_pct",
        ),
        breakfast_pct=parse_decimal(
            meals.get("breakfast", defaults.breakfast_pct), "meal_deductions.breakfast",
        ),
        lunch_pct=parse_decimal(
            meals.get("lunch", defaults.lunch_pct), "meal_deductions.lunch",
        ),
        dinner_pct=parse_decimal(
            meals.get("dinner", defaults.dinner_pct), "meal_deductions.dinner",
        ),
    )


def parse_mileage_policy(data: dict[str, Any]) -> MileagePolicy:
    """Parse the ``mileage`` section."""
    custom = data.get("custom_rate_per_mile")
    return MileagePolicy(
        use_custom_rate=bool(data.get("use_custom_rate", False)),
        custom_rate_per_mile=(
            parse_decimal(custom, "custom_rate_per_mile") if custom is not None else None
        ),
    )


def parse_receipt_policy(data: dict[str, Any]) -> ReceiptParsingPolicy:
    """Parse the ``receipts`` section."""
    defaults = ReceiptParsingPolicy()
    return ReceiptParsingPolicy(
        max_plausible_amount=parse_decimal(
            data.get("max_plausible_amount", defaults.max_plausible_amount),
            "max_plausible_amount",
        ),
        manual_review_threshold=float(
            data.get("manual_review_threshold", defaults.manual_review_threshold)
        ),
        default_currency=str(data.get("default_currency", defaults.default_currency)),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any], source_path: str | None = None) -> ReimbursementConfig:
    """
    Parse a full reimbursement configuration document.

    Raises:
        KeyError: if a rate entry lacks a required key.
        ValueError: on invalid values or overlapping mileage rates.
    """
    mileage_rates = tuple(parse_mileage_rate(r) for r in data.get("mileage_rates", []))
    overlaps = find_rate_overlaps(mileage_rates)
    if overlaps:
        details = "; ".join(
            f"{a.category.value} {a.effective_from}..{a.effective_until or 'open'} "
            f"overlaps {b.effective_from}..{b.effective_until or 'open'}"
            for a, b in overlaps
        )
        raise ValueError(f"Overlapping mileage rates: {details}")

    config = ReimbursementConfig(
        mileage_rates=mileage_rates,
        per_diem_rates=tuple(
            parse_per_diem_rate(r) for r in data.get("per_diem_rates", [])
        ),
        allowances=parse_allowances(data.get("allowances", {})),
        mileage=parse_mileage_policy(data.get("mileage", {})),
        receipts=parse_receipt_policy(data.get("receipts", {})),
        checksum=compute_checksum(data),
        source_path=source_path,
    )

    logger.info(
        "reimbursement_config_parsed",
        extra={
            "mileage_rate_count": len(config.mileage_rates),
            "per_diem_rate_count": len(config.per_diem_rates),
            "use_custom_mileage_rate": config.mileage.use_custom_rate,
            "checksum": config.checksum,
        },
    )
    return config


def load_config(path: Path) -> ReimbursementConfig:
    """Load and parse a reimbursement configuration file."""
    return parse_config(load_yaml_file(path), source_path=str(path))
