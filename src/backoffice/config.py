"""Deployment configuration: seed capital, seed rates and report thresholds.

The ledgers never read configuration themselves. Callers load a
``BackofficeConfig`` and pass its seeds into each call, so a deployment can
change its starting capital without code changes.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from backoffice.domain.errors import DomainError

CONFIG_ENV_VAR = "BACKOFFICE_CONFIG"

DEFAULT_SEED_VAULT = {
    "USD": "10000",
    "EUR": "5000",
    "GBP": "5000",
    "LOCAL": "500000",
}

DEFAULT_SEED_RATES = [
    {"code": "USD", "buy": "1.00", "sell": "1.02"},
    {"code": "EUR", "buy": "0.90", "sell": "0.92"},
    {"code": "GBP", "buy": "0.80", "sell": "0.82"},
]


class ConfigError(DomainError):
    """Configuration file is missing or invalid."""


@dataclass(frozen=True)
class BackofficeConfig:
    """Settings injected into the ledgers by their callers."""

    seed_vault: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_SEED_VAULT))
    seed_rates: Any = field(default_factory=lambda: list(DEFAULT_SEED_RATES))
    use_default_seed_when_empty: bool = False
    low_stock_threshold: int = 10
    expiry_warning_days: int = 30


def load_config(config_path: Optional[str] = None) -> BackofficeConfig:
    """Load configuration from a JSON file.

    Args:
        config_path: Path to a JSON config file. If None, checks the
            BACKOFFICE_CONFIG environment variable, then falls back to the
            built-in defaults.

    Returns:
        BackofficeConfig with file values layered over the defaults

    Raises:
        ConfigError: If the file cannot be read or has unknown or invalid keys
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_ENV_VAR)

    if config_path is None:
        return BackofficeConfig()

    path = Path(config_path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {config_path}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a JSON object")

    known = set(BackofficeConfig.__dataclass_fields__)
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    if "seed_vault" in data and not isinstance(data["seed_vault"], dict):
        raise ConfigError("seed_vault must be an object of currency code to quantity")
    if "use_default_seed_when_empty" in data and not isinstance(data["use_default_seed_when_empty"], bool):
        raise ConfigError("use_default_seed_when_empty must be true or false")
    for key in ("low_stock_threshold", "expiry_warning_days"):
        value = data.get(key, 0)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError(f"{key} must be a non-negative integer")

    return BackofficeConfig(**data)
