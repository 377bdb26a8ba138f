"""
recon_config -- single public entrypoint for reconciliation configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains
    configuration.  It loads the bundled ``sets/default.yaml`` (or a given
    file), parses it into typed frozen dataclasses and emits a
    ``RECON_CONFIG_TRACE`` log record.

Architecture position:
    Configuration.  Sits above ``recon_kernel`` and below
    ``recon_services``.  The kernel MUST NEVER import from ``recon_config``.

Failure modes:
    - ``FileNotFoundError`` -- the given file does not exist.
    - ``ValueError`` -- schema validation failure.
"""

from __future__ import annotations

import logging
from pathlib import Path

from recon_config.loader import load_yaml_file, parse_config
from recon_config.schema import (
    HIGH_CONFIDENCE_THRESHOLD,
    MatchScoringConfig,
    ReconciliationConfig,
    SettlementAccounts,
)

_logger = logging.getLogger("recon_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> ReconciliationConfig:
    """The only public configuration entrypoint.

    Guarantees:
        - A ``RECON_CONFIG_TRACE`` log entry is emitted on every successful
          call.

    Non-goals:
        - No caching across calls; callers hold the returned config.

    Args:
        path: YAML file to load.  Defaults to recon_config/sets/default.yaml.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(config_path))

    _logger.info(
        "RECON_CONFIG_TRACE",
        extra={
            "trace_type": "RECON_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(config_path),
            "default_currency": config.default_currency,
            "similarity_mode": config.scoring.similarity_mode,
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "HIGH_CONFIDENCE_THRESHOLD",
    "MatchScoringConfig",
    "ReconciliationConfig",
    "SettlementAccounts",
    "get_active_config",
]
