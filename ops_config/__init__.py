"""
ops_config -- single public entrypoint for operations configuration.

Responsibility:
    Provides the runtime way to obtain configuration through
    ``get_active_config()``: opening bank accounts, company details
    printed on receipts, the default VAT rate, collector payment rates
    and the reconciliation formula.

Architecture position:
    Configuration -- YAML-driven, sits above ``ops_kernel`` and
    ``ops_engines`` and below ``ops_services``.  The kernel MUST NEVER
    import from ``ops_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``ConfigurationError`` -- a value is missing or invalid.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``OPS_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying later activity to the configuration that governed it.
"""

from __future__ import annotations

from pathlib import Path

from ops_config.loader import load_configuration
from ops_config.schema import AccountSeed, OpsConfiguration
from ops_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> OpsConfiguration:
    """
    Load and validate the active configuration.

    Args:
        path: YAML file to load.  Defaults to the bundled
            ``ops_config/sets/default.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If validation fails.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = load_configuration(config_path)

    _logger.info(
        "OPS_CONFIG_TRACE",
        extra={
            "trace_type": "OPS_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "account_count": len(config.accounts),
            "reconciliation_formula": config.reconciliation_formula,
        },
    )
    return config


__all__ = ["AccountSeed", "OpsConfiguration", "get_active_config"]
