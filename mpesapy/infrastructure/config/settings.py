"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files (``.env.mpesapy`` takes precedence over
``.env``), environment variables, and a YAML configuration file
(``~/.mpesapy/config.yaml``). Typed helpers build the SDK's records
(retry, admission, credentials) from the merged configuration.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from mpesapy.domain.models.resilience import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIME_WINDOW_MS,
    AdmissionConfig,
    RetryConfig,
)

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".mpesapy"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
SDK_ENV_FILE_NAME = ".env.mpesapy"
ENV_FILE_NAME = ".env"
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


@dataclass(frozen=True)
class Credentials:
    """Gateway credentials read from configuration."""
    consumer_key: str
    consumer_secret: str
    initiator_name: str = ""
    security_credential: str = ""


def load_configuration(config_file: Optional[Path] = None, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env files, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env.mpesapy (or ``env_file`` when given)
    3. .env
    4. YAML configuration file

    Args:
        config_file: Path to the YAML configuration file. Defaults to
            ~/.mpesapy/config.yaml.
        env_file: Explicit .env file to load instead of the cwd lookup.
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}
    config_file = config_file or DEFAULT_CONFIG_FILE

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env files. override=False keeps whatever was loaded first, so the
    # SDK-specific file goes before the generic one.
    env_paths = [env_file] if env_file else [Path.cwd() / SDK_ENV_FILE_NAME, Path.cwd() / ENV_FILE_NAME]
    for env_path in env_paths:
        if env_path.is_file():
            load_dotenv(dotenv_path=env_path, override=False)
            logger.info(f"Loaded environment variables from: {env_path}")

    _loaded = True
    logger.info("Configuration loading process completed.")


def reset_configuration() -> None:
    """Forgets loaded configuration so the next load_configuration() reloads."""
    global _config, _loaded
    _config = {}
    _loaded = False


def _coerce(value: str) -> Any:
    """Converts common string forms from the environment to Python types."""
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _lookup_yaml(key: str) -> Any:
    """Flat key first ('retry.max_retries'), then nested sections."""
    if key in _config:
        return _config[key]
    current: Any = _config
    for part in key.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration
    2. Environment variable (key upper-cased, dots replaced by underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace(".", "_")
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    value = _lookup_yaml(key)
    if value is not None:
        return value

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def get_str(key: str, default: str = "") -> str:
    """Like get_config, but environment values are returned uncoerced.

    Short codes and phone numbers must keep leading zeros.
    """
    env_key = key.upper().replace(".", "_")
    if key not in _test_config and env_key in os.environ:
        return os.environ[env_key]
    value = get_config(key, default)
    return default if value is None else str(value)


def get_bool(key: str, default: bool = False) -> bool:
    value = get_config(key, default)
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


# --- Typed Helpers ---

def get_retry_config() -> RetryConfig:
    """Builds the retry configuration. Invalid values raise ValueError."""
    return RetryConfig(
        max_retries=int(get_config("MPESAPY_MAX_RETRIES", DEFAULT_MAX_RETRIES)),
        initial_delay_ms=float(get_config("MPESAPY_INITIAL_DELAY_MS", DEFAULT_INITIAL_DELAY_MS)),
        max_delay_ms=float(get_config("MPESAPY_MAX_DELAY_MS", DEFAULT_MAX_DELAY_MS)),
        backoff_factor=float(get_config("MPESAPY_BACKOFF_FACTOR", DEFAULT_BACKOFF_FACTOR)),
    )


def get_admission_config() -> AdmissionConfig:
    """Builds the admission configuration. Invalid values raise ValueError."""
    return AdmissionConfig(
        max_concurrent=int(get_config("MPESAPY_MAX_CONCURRENT", DEFAULT_MAX_CONCURRENT)),
        time_window_ms=float(get_config("MPESAPY_TIME_WINDOW_MS", DEFAULT_TIME_WINDOW_MS)),
    )


def get_credentials() -> Credentials:
    return Credentials(
        consumer_key=get_str("MPESA_CONSUMER_KEY"),
        consumer_secret=get_str("MPESA_CONSUMER_SECRET"),
        initiator_name=get_str("MPESA_INITIATOR_NAME"),
        security_credential=get_str("MPESA_SECURITY_CREDENTIAL"),
    )


def is_sandbox() -> bool:
    return get_bool("MPESA_SANDBOX", True)


def get_http_timeout() -> float:
    return float(get_config("MPESAPY_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT_SECONDS))


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
