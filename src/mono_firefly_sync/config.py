"""Configuration loader and validation for the sync service."""

from pathlib import Path
from typing import Any, Optional
import logging
import os

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MONO_FIREFLY_SYNC_CONFIG"

MONOBANK_API_URL = "https://api.monobank.ua"


class ServerConfig(BaseModel):
    """Configuration for the webhook HTTP server."""

    host: str = "0.0.0.0"
    port: int = Field(default=80, gt=0)


class MonobankConfig(BaseModel):
    """Configuration for the Monobank personal API."""

    token: str
    webhook_url: Optional[str] = None
    api_url: str = MONOBANK_API_URL
    retry_delay: float = Field(default=60.0, ge=0)
    statement_page_size: int = Field(default=500, gt=0)
    client_info_ttl: float = Field(default=300.0, ge=0)
    cache_file: Optional[str] = "data/client-data.json"


class FireflyConfig(BaseModel):
    """Configuration for the Firefly III API."""

    api_url: str
    token: str


class SyncConfig(BaseModel):
    """Provenance markers and recovery behaviour."""

    tag: str = "monosync"
    external_url: str = MONOBANK_API_URL
    sort_transactions: bool = False
    index_file: Optional[str] = None


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class SyncServiceConfig(BaseModel):
    """Main configuration model for the sync service."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    monobank: MonobankConfig
    firefly: FireflyConfig
    sync: SyncConfig = Field(default_factory=SyncConfig)
    currencies: dict[int, str] = Field(default_factory=dict)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "server": {
            "host": "0.0.0.0",
            "port": 80,
        },
        "monobank": {
            "token": "",
            "webhook_url": None,
            "api_url": MONOBANK_API_URL,
            "retry_delay": 60,
            "statement_page_size": 500,
            "client_info_ttl": 300,
            "cache_file": "data/client-data.json",
        },
        "firefly": {
            "api_url": "http://localhost:8080/api",
            "token": "",
        },
        "sync": {
            "tag": "monosync",
            "external_url": MONOBANK_API_URL,
            "sort_transactions": False,
            "index_file": None,
        },
        # ISO 4217 numeric -> alphabetic overrides, e.g. {980: UAH}
        "currencies": {},
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file": None,
        },
    }


def load_config(config_path: Optional[Path] = None) -> SyncServiceConfig:
    """
    Load configuration from the environment, a YAML file, or defaults.

    The ``MONO_FIREFLY_SYNC_CONFIG`` environment variable, when set, holds the
    whole document (YAML or JSON) and takes precedence over the file.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        SyncServiceConfig object with loaded settings

    Raises:
        ConfigurationError: If the document cannot be parsed or validated
    """
    config_dict = get_default_config()

    env_config = os.environ.get(CONFIG_ENV_VAR)
    try:
        if env_config:
            logger.info(f"Loading configuration from ${CONFIG_ENV_VAR}")
            user_config = yaml.safe_load(env_config) or {}
            config_dict = _deep_merge(config_dict, user_config)
        elif config_path and config_path.exists():
            logger.info(f"Loading configuration from: {config_path}")
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}

            config_dict = _deep_merge(config_dict, user_config)
            config_dict["config_file_path"] = str(config_path)
        else:
            logger.info("Using default configuration")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid configuration document: {e}") from e

    try:
        config = SyncServiceConfig(**config_dict)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if not config.monobank.token:
        raise ConfigurationError("monobank.token is required")
    if not config.firefly.token:
        raise ConfigurationError("firefly.token is required")

    return config


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    if not isinstance(override, dict):
        raise ConfigurationError("Configuration document must be a mapping")

    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# Monobank to Firefly III sync configuration
# Fill in monobank.token and firefly.token before starting the service

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
