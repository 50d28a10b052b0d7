"""
Auction configuration parameters.

Defines phase durations, the fixed-point price scale and operational
settings (logging, persistence). Values come from defaults, an optional
.env file and BOND_AUCTION_* environment variables, in increasing order
of precedence.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError

from bondauction.core.errors import ConfigurationError
from bondauction.utils.logger import setup_logging

ENV_PREFIX = "BOND_AUCTION_"

DAY = 24 * 60 * 60

# Prices and quantities are 18-decimal fixed-point integers
PRICE_SCALE = 10**18


class AuctionConfig(BaseModel):
    """Auction-wide configuration parameters"""

    # Phase durations (seconds)
    commit_duration: int = Field(default=3 * DAY, gt=0)
    reveal_duration: int = Field(default=2 * DAY, gt=0)
    claim_duration: int = Field(default=7 * DAY, gt=0)

    # Fixed-point scale shared by prices, quantities and payments
    price_scale: int = Field(default=PRICE_SCALE, gt=0)

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    # Persistence (None = in-memory only)
    data_dir: Optional[Path] = None


def load_config(env_file: Optional[str] = None) -> AuctionConfig:
    """
    Load configuration from a .env file and the environment.

    Args:
        env_file: Optional path to a .env file

    Returns:
        AuctionConfig instance
    """
    values = {}
    if env_file:
        values.update(dotenv_values(env_file))
    values.update(os.environ)

    overrides = {}
    for name in AuctionConfig.model_fields:
        key = ENV_PREFIX + name.upper()
        if values.get(key) not in (None, ""):
            overrides[name] = values[key]

    try:
        return AuctionConfig(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid auction configuration: {e}") from e


def configure_logging(config: AuctionConfig) -> None:
    """Apply the configured log level and optional log directory."""
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level: {config.log_level}")
    setup_logging(
        level=level,
        log_dir=str(config.log_dir) if config.log_dir else None,
        force=True,
    )
