"""
Configuration for the Capital Gains Tax Engine

Loads engine parameters from a YAML settings file:
- Capital gains tax rate
- Currency symbol used when rendering the result
- Concurrency parameters for the tax aggregator (join strategy, workers,
  polling interval, optional timeout)
- Raw record conventions (buy indicator, header row)

All values are passed explicitly to the components that need them; nothing
is read from module-level state at computation time.

Author: Your Name
Date: 2024
"""

import logging
from dataclasses import dataclass, asdict
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union

import yaml

from tax_engine.exceptions import ConfigError

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/settings.yaml"


class JoinStrategy(Enum):
    """How the tax aggregator waits for its per-security workers."""
    BLOCKING = "blocking"    # Countdown latch, then drain
    POLLING = "polling"      # Non-blocking reads with a fixed sleep

    @classmethod
    def validate(cls, strategy: Union[str, "JoinStrategy"]) -> "JoinStrategy":
        """
        Normalize a strategy name or member.

        Raises:
            ConfigError: If the name is not a known strategy
        """
        if isinstance(strategy, cls):
            return strategy
        try:
            return cls(str(strategy).lower())
        except ValueError:
            valid = [e.value for e in cls]
            raise ConfigError(f"Invalid join strategy '{strategy}'. Valid strategies: {valid}")


@dataclass
class TaxConfig:
    """
    Engine configuration.

    Attributes:
        tax_rate: Capital gains rate applied to positive per-security profit
        currency_symbol: Prefix used by the currency formatter
        join_strategy: Default aggregator join strategy
        max_workers: Upper bound on concurrent workers (None = default_max_workers())
        poll_interval: Sleep between empty polls for the polling join, in seconds
        timeout: Optional wait limit for aggregation, in seconds (None = wait forever)
        buy_indicator: Side token identifying a buy (case-insensitive)
        has_header: Whether the raw input carries a CSV header row
    """
    tax_rate: float = 0.25
    currency_symbol: str = "$"
    join_strategy: JoinStrategy = JoinStrategy.BLOCKING
    max_workers: Optional[int] = None
    poll_interval: float = 0.1
    timeout: Optional[float] = None
    buy_indicator: str = "b"
    has_header: bool = False

    def __post_init__(self):
        self.join_strategy = JoinStrategy.validate(self.join_strategy)
        self.validate()

    def validate(self) -> None:
        """
        Validate parameters for logical consistency.

        Raises:
            ConfigError: If any parameter is invalid
        """
        if not isinstance(self.tax_rate, (int, float)) or not 0 <= self.tax_rate <= 1:
            raise ConfigError("Tax rate must be between 0 and 1")

        if not isinstance(self.currency_symbol, str):
            raise ConfigError("Currency symbol must be a string")

        if self.max_workers is not None and (not isinstance(self.max_workers, int) or self.max_workers < 1):
            raise ConfigError("max_workers must be a positive integer")

        if not isinstance(self.poll_interval, (int, float)) or self.poll_interval <= 0:
            raise ConfigError("Poll interval must be positive")

        if self.timeout is not None and (not isinstance(self.timeout, (int, float)) or self.timeout <= 0):
            raise ConfigError("Timeout must be positive when set")

        if not self.buy_indicator:
            raise ConfigError("Buy indicator must be a non-empty string")

    @classmethod
    def from_dict(cls, config: Dict) -> "TaxConfig":
        """
        Build a configuration from a parsed settings dictionary.

        Missing sections or keys fall back to the defaults.

        Args:
            config: Dictionary as loaded from settings.yaml

        Returns:
            TaxConfig instance
        """
        config = config or {}
        taxes = config.get('taxes', {}) or {}
        concurrency = config.get('concurrency', {}) or {}
        input_config = config.get('input', {}) or {}
        output = config.get('output', {}) or {}

        return cls(
            tax_rate=taxes.get('capital_gains_rate', cls.tax_rate),
            currency_symbol=output.get('currency_symbol', cls.currency_symbol),
            join_strategy=concurrency.get('join_strategy', cls.join_strategy),
            max_workers=concurrency.get('max_workers', cls.max_workers),
            poll_interval=concurrency.get('poll_interval_seconds', cls.poll_interval),
            timeout=concurrency.get('timeout_seconds', cls.timeout),
            buy_indicator=input_config.get('buy_indicator', cls.buy_indicator),
            has_header=bool(input_config.get('has_header', cls.has_header)),
        )

    def to_dict(self) -> Dict:
        """Convert to dictionary for logging and reporting."""
        data = asdict(self)
        data['join_strategy'] = self.join_strategy.value
        return data


def load_config(config_path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> TaxConfig:
    """
    Load configuration with error handling.

    A missing file yields the default configuration. An unreadable or
    malformed file is logged and re-raised.

    Args:
        config_path: Path to configuration file

    Returns:
        TaxConfig instance

    Raises:
        yaml.YAMLError: If config file is invalid
        ConfigError: If a value is out of range
    """
    try:
        with open(config_path, 'r') as file:
            raw_config = yaml.safe_load(file)
    except FileNotFoundError:
        logger.warning(f"Configuration file not found: {config_path}, using defaults")
        return TaxConfig()
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML configuration: {str(e)}")
        raise

    if raw_config is not None and not isinstance(raw_config, dict):
        raise ConfigError(f"Configuration in {config_path} must be a mapping")

    config = TaxConfig.from_dict(raw_config)
    logger.info(f"Configuration loaded from {config_path}")
    return config
