"""Configuration file management for splitledger."""

import os
import tomllib
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import tomli_w

from splitledger.domain.fees import DEFAULT_FEE_SCHEDULE, FeeSchedule
from splitledger.domain.models import DEFAULT_CURRENCY, Currency, UserId
from splitledger.domain.money import ensure_minor_units


def get_xdg_config_home() -> Path:
    """Get XDG config directory, with fallback to ~/.config."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config)
    return Path.home() / ".config"


def get_config_path() -> Path:
    """Get the config file path (XDG compliant).

    Returns:
        Path to the config file.
    """
    return get_xdg_config_home() / "splitledger" / "config.toml"


def default_config() -> dict[str, Any]:
    """Build the default configuration document."""
    return {
        "user": "",
        "currency": str(DEFAULT_CURRENCY),
        "fees": {
            # Percentages are strings so they round-trip as exact decimals
            "processor_percent": str(DEFAULT_FEE_SCHEDULE.processor_percent),
            "processor_fixed": int(DEFAULT_FEE_SCHEDULE.processor_fixed),
            "payout_percent": str(DEFAULT_FEE_SCHEDULE.payout_percent),
            "platform_fixed": int(DEFAULT_FEE_SCHEDULE.platform_fixed),
        },
    }


def create_default_config(config_path: Path | None = None) -> None:
    """Create default config file with secure permissions.

    Args:
        config_path: Path to config file. If None, uses default location.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "wb") as f:
        tomli_w.dump(default_config(), f)

    os.chmod(config_path, 0o600)


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from TOML file.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If config file doesn't exist.
    """
    if config_path is None:
        config_path = get_config_path()

    with open(config_path, "rb") as f:
        return tomllib.load(f)


def save_config(config: dict[str, Any], config_path: Path | None = None) -> None:
    """Save configuration to TOML file.

    Args:
        config: Configuration dictionary.
        config_path: Path to config file. If None, uses default location.
    """
    if config_path is None:
        config_path = get_config_path()

    with open(config_path, "wb") as f:
        tomli_w.dump(config, f)

    os.chmod(config_path, 0o600)


def _fee_percent(fees: dict[str, Any], key: str, default: Decimal) -> Decimal:
    value = fees.get(key, default)
    try:
        pct = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"{key} must be a number, got {value!r}") from e
    if not pct.is_finite() or pct < 0:
        raise ValueError(f"{key} must be a finite, non-negative number, got {value!r}")
    return pct


def get_fee_schedule(config: dict[str, Any]) -> FeeSchedule:
    """Build the fee schedule from config, falling back to defaults per key.

    Args:
        config: Configuration dictionary.

    Returns:
        FeeSchedule.

    Raises:
        ValueError: If a percentage is not a finite, non-negative decimal.
        MoneyContractError: If a fixed fee is not an integer number of cents.
    """
    fees = config.get("fees", {})
    return FeeSchedule(
        processor_percent=_fee_percent(fees, "processor_percent", DEFAULT_FEE_SCHEDULE.processor_percent),
        processor_fixed=ensure_minor_units(fees.get("processor_fixed", DEFAULT_FEE_SCHEDULE.processor_fixed)),
        payout_percent=_fee_percent(fees, "payout_percent", DEFAULT_FEE_SCHEDULE.payout_percent),
        platform_fixed=ensure_minor_units(fees.get("platform_fixed", DEFAULT_FEE_SCHEDULE.platform_fixed)),
    )


def get_currency(config: dict[str, Any]) -> Currency:
    """Get the default currency for new splits."""
    return Currency(str(config.get("currency") or DEFAULT_CURRENCY).upper())


def get_current_user(config: dict[str, Any]) -> UserId | None:
    """Get the user id commands act as, or None if not set."""
    user = config.get("user")
    return UserId(user) if user else None


def set_current_user(user_id: str, config_path: Path | None = None) -> None:
    """Set the user id commands act as.

    Args:
        user_id: User ID.
        config_path: Path to config file. If None, uses default location.
    """
    config = load_config(config_path)
    config["user"] = user_id
    save_config(config, config_path)
