"""
Configuration loader (``recon_config.loader``).

Responsibility:
    Loads a YAML configuration file and parses it into the typed
    ``recon_config.schema`` dataclasses.  Runtime callers go through
    ``recon_config.get_active_config()`` instead of calling this directly.

Invariants enforced:
    - Every parsed object is a frozen dataclass from ``schema.py``.
    - Weights are parsed from their textual form, never through float.
    - ``compute_checksum`` is a deterministic SHA-256 of the canonical JSON.

Failure modes:
    - Missing YAML file  -> ``FileNotFoundError`` propagates.
    - Malformed YAML  -> ``yaml.YAMLError`` propagates.
    - Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from recon_config.schema import (
    MatchScoringConfig,
    ReconciliationConfig,
    SettlementAccounts,
)

_DECIMAL_FIELDS = frozenset({
    "exact_amount_tolerance",
    "counterparty_weight",
    "exact_amount_weight",
    "partial_amount_weight",
    "proximity_weight",
    "high_confidence_threshold",
})
_INT_FIELDS = frozenset({"max_days_before", "max_days_after"})
_SCORING_FIELDS = _DECIMAL_FIELDS | _INT_FIELDS | {
    "text_similarity_threshold",
    "similarity_mode",
}
_ACCOUNT_FIELDS = frozenset({"bank", "receivable", "payable"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration root must be a mapping: {path}")
    return data


def parse_decimal(name: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be numeric, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be numeric, got {value!r}") from exc


def _reject_unknown(section: str, data: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown keys in '{section}': {', '.join(unknown)}")


def parse_scoring(data: dict[str, Any]) -> MatchScoringConfig:
    """Parse the ``scoring`` section; absent keys keep their defaults."""
    _reject_unknown("scoring", data, _SCORING_FIELDS)
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key in _DECIMAL_FIELDS:
            kwargs[key] = parse_decimal(key, value)
        elif key in _INT_FIELDS:
            kwargs[key] = int(value)
        elif key == "text_similarity_threshold":
            kwargs[key] = float(value)
        else:
            kwargs[key] = str(value)
    return MatchScoringConfig(**kwargs)


def parse_settlement_accounts(data: dict[str, Any]) -> SettlementAccounts:
    """Parse the ``settlement_accounts`` section."""
    _reject_unknown("settlement_accounts", data, _ACCOUNT_FIELDS)
    return SettlementAccounts(**{k: str(v) for k, v in data.items()})


def parse_config(data: dict[str, Any]) -> ReconciliationConfig:
    """
    Parse a full configuration document.

    Postconditions:
        - The returned config carries the checksum of ``data``.
    """
    _reject_unknown(
        "root",
        data,
        frozenset({"config_id", "version", "default_currency", "scoring", "settlement_accounts"}),
    )
    return ReconciliationConfig(
        scoring=parse_scoring(data.get("scoring") or {}),
        settlement_accounts=parse_settlement_accounts(data.get("settlement_accounts") or {}),
        default_currency=str(data.get("default_currency", "CLP")),
        config_id=str(data.get("config_id", "default")),
        version=int(data.get("version", 1)),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
