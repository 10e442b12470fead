"""
Configuration Loader (``ops_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``ops_config.schema`` dataclasses.  Runtime callers go through
``ops_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass.
* Money values and rates become ``Decimal`` via ``str()``; YAML floats
  never reach arithmetic.
* ``compute_checksum`` is deterministic for identical content.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing or invalid values  -> ``ConfigurationError`` naming the field.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from ops_config.schema import CASH_CLASSIFICATIONS, AccountSeed, OpsConfiguration
from ops_engines.payment_rates import PaymentRateTable
from ops_engines.receipts import CompanyInfo, ReceiptSettings
from ops_engines.summary import RECONCILIATION_FORMULAS
from ops_kernel.domain.values import to_decimal
from ops_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_decimal(value: Any, field_name: str) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError as e:
        raise ConfigurationError(field_name, f"expected a number, got {value!r}") from e


def parse_account(data: dict[str, Any], index: int) -> AccountSeed:
    field_name = f"accounts[{index}]"
    if not data.get("name"):
        raise ConfigurationError(f"{field_name}.name", "is required")
    return AccountSeed(
        name=data["name"],
        opening_balance=parse_decimal(data.get("opening_balance", 0), f"{field_name}.opening_balance"),
        account_id=data.get("id"),
        is_cash=bool(data.get("is_cash", False)),
    )


def parse_receipt_settings(data: dict[str, Any], company: dict[str, Any]) -> ReceiptSettings:
    """Parse the ``receipts`` and ``company`` sections."""
    try:
        return ReceiptSettings(
            company_info=CompanyInfo(
                name=company.get("name", ""),
                address=company.get("address", ""),
                phone=company.get("phone", ""),
                tin_number=company.get("tin_number", ""),
                vat_number=company.get("vat_number", ""),
            ),
            decimal_places=int(data.get("decimal_places", 2)),
            number_width=int(data.get("number_width", 6)),
        )
    except ValueError as e:
        raise ConfigurationError("receipts", str(e)) from e


def parse_payment_rates(data: dict[str, Any]) -> PaymentRateTable:
    """
    Parse ``payment_rates``: a ``default_rate`` plus one mapping of
    material -> rate per collection type under ``rates``.
    """
    rates: dict[str, dict[str, Decimal]] = {}
    for collection_type, materials in (data.get("rates") or {}).items():
        if not isinstance(materials, dict):
            raise ConfigurationError(
                f"payment_rates.rates.{collection_type}", "expected a mapping of material to rate"
            )
        rates[collection_type] = {
            material: parse_decimal(rate, f"payment_rates.rates.{collection_type}.{material}")
            for material, rate in materials.items()
        }
    try:
        return PaymentRateTable(
            rates=rates,
            default_rate=parse_decimal(data.get("default_rate", 0), "payment_rates.default_rate"),
        )
    except ValueError as e:
        raise ConfigurationError("payment_rates", str(e)) from e


def parse_configuration(data: dict[str, Any]) -> OpsConfiguration:
    """
    Parse a full configuration document.

    Raises:
        ConfigurationError: for missing identity fields, negative VAT,
            or unknown formula / classification names.
    """
    for required in ("config_id", "version"):
        if required not in data:
            raise ConfigurationError(required, "is required")

    vat_rate = parse_decimal(data.get("default_vat_rate", "0.15"), "default_vat_rate")
    if vat_rate < 0:
        raise ConfigurationError("default_vat_rate", "cannot be negative")

    formula = data.get("reconciliation_formula", "cash_position")
    if formula not in RECONCILIATION_FORMULAS:
        raise ConfigurationError(
            "reconciliation_formula",
            f"unknown formula {formula!r}; expected one of {sorted(RECONCILIATION_FORMULAS)}",
        )

    classification = data.get("cash_classification", "flagged")
    if classification not in CASH_CLASSIFICATIONS:
        raise ConfigurationError(
            "cash_classification", f"expected one of {list(CASH_CLASSIFICATIONS)}"
        )

    return OpsConfiguration(
        config_id=data["config_id"],
        version=int(data["version"]),
        accounts=tuple(
            parse_account(account, i) for i, account in enumerate(data.get("accounts") or [])
        ),
        receipt_settings=parse_receipt_settings(
            data.get("receipts") or {}, data.get("company") or {}
        ),
        payment_rates=parse_payment_rates(data.get("payment_rates") or {}),
        default_vat_rate=vat_rate,
        reconciliation_formula=formula,
        cash_classification=classification,
        checksum=compute_checksum(data),
    )


def load_configuration(path: Path) -> OpsConfiguration:
    return parse_configuration(load_yaml_file(path))
