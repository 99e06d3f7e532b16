"""
Gateway configuration state.

Single source of truth for gateway configuration, combining hierarchical
YAML files with environment overrides, type validation and sensible
defaults:

    <config_dir>/gateway.yaml            global settings
    <config_dir>/env/<env>.yaml          environment overrides (GATEWAY_ENV)
    <config_dir>/exchanges/<id>.yaml     one file per exchange

Credentials are never read from YAML in production: use
``<EXCHANGE>_API_KEY``, ``<EXCHANGE>_API_SECRET`` and ``<EXCHANGE>_PASSWORD``.
"""

import copy
import logging
import math
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from ccxt_gateway.shared.models.enums import KLINE_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


# =============================================================================
# PYDANTIC MODELS - Type-Safe Configuration
# =============================================================================


class ThrottleConfig(BaseModel):
    """Client-side request throttling handed to ccxt."""

    enabled: bool = Field(default=True)
    max_requests_per_second: float | None = Field(default=None, gt=0)

    @property
    def rate_limit_ms(self) -> int | None:
        """Delay between requests in ms, as ccxt expects it."""
        if self.max_requests_per_second is None:
            return None
        return math.floor(1000 / self.max_requests_per_second)

    class Config:
        extra = "allow"


class LoggingConfig(BaseModel):
    """Logging configuration (see infrastructure.observability.setup_logging)."""

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)
    include_timestamp: bool = Field(default=True)

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    class Config:
        extra = "allow"


class ExchangeConfig(BaseModel):
    """Configuration of one exchange reached through ccxt."""

    exchange_id: str
    ccxt_id: str | None = Field(default=None, description="ccxt class name if different")
    enabled: bool = Field(default=True)

    # Credentials (environment overrides preferred)
    api_key: str | None = Field(default=None, repr=False)
    api_secret: str | None = Field(default=None, repr=False)
    password: str | None = Field(default=None, repr=False)

    # Client
    sandbox: bool = Field(default=False)
    verbose: bool = Field(default=False)
    timeout_ms: int = Field(default=30000, ge=1000)
    async_client: bool = Field(default=False)
    throttle: ThrottleConfig = Field(default_factory=ThrottleConfig)
    options: dict[str, Any] = Field(default_factory=dict)

    # Facade defaults
    default_order_book_limit: int | None = Field(default=None, ge=1)
    default_trades_limit: int | None = Field(default=None, ge=1)
    kline_intervals: list[str] | None = Field(default=None)
    default_kline_interval: str | None = Field(default=None)
    history_window_days: int | None = Field(default=None, ge=1)

    @field_validator("exchange_id")
    @classmethod
    def lower_exchange_id(cls, v: str) -> str:
        return v.lower()

    @field_validator("kline_intervals")
    @classmethod
    def validate_intervals(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        unknown = [interval for interval in v if interval not in KLINE_INTERVAL_SECONDS]
        if unknown:
            raise ValueError(f"Unknown kline intervals: {unknown}")
        return v

    @model_validator(mode="after")
    def check_default_interval(self) -> "ExchangeConfig":
        if (
            self.default_kline_interval is not None
            and self.kline_intervals is not None
            and self.default_kline_interval not in self.kline_intervals
        ):
            raise ValueError(
                f"default_kline_interval {self.default_kline_interval} "
                f"is not one of {self.kline_intervals}"
            )
        return self

    @property
    def connector_id(self) -> str:
        """ccxt class name used to build the client."""
        return self.ccxt_id or self.exchange_id

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)

    class Config:
        extra = "allow"


class GatewayConfig(BaseModel):
    """Root configuration state."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    exchanges: dict[str, ExchangeConfig] = Field(default_factory=dict)

    # Environment metadata
    env: str = Field(default="dev")
    config_dir: str = Field(default="./config")

    def exchange(self, exchange_id: str) -> ExchangeConfig:
        """Exchange configuration, defaults when the exchange has no section."""
        key = exchange_id.lower()
        if key in self.exchanges:
            return self.exchanges[key]
        return ExchangeConfig(exchange_id=key)

    class Config:
        extra = "allow"


# =============================================================================
# CONFIG LOADER
# =============================================================================


class ConfigLoader:
    """
    Load and validate configuration from hierarchical YAML files.

    Merges:
      1. Model defaults
      2. gateway.yaml
      3. env/<env>.yaml
      4. exchanges/<id>.yaml
      5. Environment variable overrides
    """

    def __init__(self, config_dir: str = "./config", env: str | None = None):
        self.config_dir = Path(config_dir)
        self._yaml_cache: dict[Path, Any] = {}
        self.env = env or os.getenv("GATEWAY_ENV", "dev")

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load YAML file with caching."""
        if path in self._yaml_cache:
            return self._yaml_cache[path]

        if not path.exists():
            logger.debug(f"Config file not found (using defaults): {path}")
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load {path}: {e}")
            raise

        self._yaml_cache[path] = data
        logger.debug(f"Loaded config: {path.relative_to(self.config_dir)}")
        return data

    def _merge_dicts(self, base: dict, override: dict) -> dict:
        """Deep merge override into base dict."""
        result = base.copy()
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result

    def _load_exchange_files(self, config: dict[str, Any]) -> dict[str, Any]:
        exchanges_dir = self.config_dir / "exchanges"
        if not exchanges_dir.is_dir():
            return config
        for path in sorted(exchanges_dir.glob("*.yaml")):
            exchange_id = path.stem.lower()
            exchanges = config.setdefault("exchanges", {})
            exchanges[exchange_id] = self._merge_dicts(
                exchanges.get(exchange_id) or {}, self._load_yaml(path)
            )
        return config

    def _apply_env_overrides(self, config: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to config."""
        # Log level
        if log_level := os.getenv("LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level

        # Credentials per exchange
        for exchange_id, exchange in (config.get("exchanges") or {}).items():
            prefix = exchange_id.upper()
            for suffix, key in (
                ("API_KEY", "api_key"),
                ("API_SECRET", "api_secret"),
                ("PASSWORD", "password"),
            ):
                if value := os.getenv(f"{prefix}_{suffix}"):
                    exchange[key] = value

        return config

    def load(self) -> GatewayConfig:
        """
        Load complete configuration state.

        Returns:
            GatewayConfig: Validated configuration object

        Raises:
            ValidationError: If configuration is invalid
        """
        logger.info(f"Loading configuration from {self.config_dir} (env: {self.env})")

        # 1. Global file
        config: dict[str, Any] = self._load_yaml(self.config_dir / "gateway.yaml")

        # 2. Environment-specific overrides
        env_config = self._load_yaml(self.config_dir / "env" / f"{self.env}.yaml")
        config = self._merge_dicts(config, env_config)

        # 3. One file per exchange (on a copy: YAML data is cached)
        config = copy.deepcopy(config)
        config = self._load_exchange_files(config)

        # 4. Environment variable overrides
        exchanges = config.get("exchanges") or {}
        for exchange_id in list(exchanges):
            exchanges[exchange_id] = exchanges[exchange_id] or {}
            exchanges[exchange_id].setdefault("exchange_id", exchange_id)
        config = self._apply_env_overrides(config)

        # 5. Validation
        config.pop("env", None)
        config.pop("config_dir", None)
        try:
            state = GatewayConfig(env=self.env, config_dir=str(self.config_dir), **config)
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

        logger.info(
            f"Configuration loaded: exchanges={sorted(state.exchanges)}, "
            f"log_level={state.logging.level}"
        )
        return state

    def load_exchange_config(self, exchange_id: str) -> ExchangeConfig:
        """Load configuration for a single exchange (defaults if absent)."""
        return self.load().exchange(exchange_id)


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================


def get_config(config_dir: str | None = None) -> GatewayConfig:
    """
    Load and return the gateway configuration.

    Args:
        config_dir: Override config directory. Defaults to GATEWAY_CONFIG_DIR or ./config

    Returns:
        GatewayConfig: Validated configuration object
    """
    if config_dir is None:
        config_dir = os.getenv("GATEWAY_CONFIG_DIR", "./config")
        if not Path(config_dir).exists():
            logger.warning(f"Config directory not found at {config_dir}, using defaults")

    loader = ConfigLoader(config_dir=config_dir)
    return loader.load()


__all__ = [
    "ConfigLoader",
    "ExchangeConfig",
    "GatewayConfig",
    "LoggingConfig",
    "ThrottleConfig",
    "get_config",
]
