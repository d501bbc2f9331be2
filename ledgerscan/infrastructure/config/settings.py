"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (~/.ledgerscan/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from ledgerscan.domain.models.errors import ConfigurationError
from ledgerscan.domain.models.scan import ScanConfig

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".ledgerscan"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "LEDGERSCAN_"

DEFAULT_RPC_URL = "https://eth-mainnet.public.blastapi.io"
DEFAULT_CONTRACT_ADDRESS = "0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d"  # BAYC
DEFAULT_RPC_TIMEOUT_S = 30.0
DEFAULT_BLOCK_TAG = "latest"

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def _flatten(mapping: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys ('scan.owner_batch_size')."""
    flat: Dict[str, Any] = {}
    for key, value in mapping.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def load_configuration(config_file: Optional[Path] = None, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file (defaults to DEFAULT_CONFIG_FILE).
        env_file: Path to the .env file (searches upwards from cwd if None).
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
            with open(config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load or parse YAML config {config_file}: {e}") from e
        if isinstance(yaml_config, dict):
            _config.update(_flatten(yaml_config))
            logger.info(f"Loaded configuration from YAML: {config_file}")
        elif yaml_config is not None:
            logger.warning(f"YAML config file {config_file} did not contain a mapping.")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False keeps real environment variables on top
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above the current directory.")

    _loaded = True
    logger.info("Configuration loading process completed.")


def reset_configuration() -> None:
    """Forgets loaded values so the next load_configuration reads sources again."""
    global _config, _loaded
    _config = {}
    _loaded = False


def env_var_name(key: str) -> str:
    """Environment variable consulted for a dotted key ('scan.retry_attempts')."""
    return ENV_PREFIX + key.upper().replace('.', '_')


def _coerce(value: str) -> Any:
    lowered = value.lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable
    3. YAML config
    4. Default value

    Args:
        key: The configuration key (dotted)
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def _as_int(key: str, default: int) -> int:
    value = get_config(key, default)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e


def _as_float(key: str, default: float) -> float:
    value = get_config(key, default)
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from e


def _as_bool(key: str, default: bool) -> bool:
    flag = get_config(key, default)
    if isinstance(flag, str):
        if flag.lower() in {'1', 'true', 'yes', 'on'}:
            return True
        if flag.lower() in {'0', 'false', 'no', 'off'}:
            return False
        logger.warning(f"Unexpected string value for {key}: '{flag}'. Defaulting to {default}.")
        return default
    if flag is None:
        return default
    return bool(flag)


def get_scan_config(**overrides: Any) -> ScanConfig:
    """Builds a validated ScanConfig. Non-None overrides (CLI options) win.

    Raises:
        ConfigurationError: If a value is missing its expected type or range.
    """
    values = {
        'concurrent_requests': _as_int('scan.concurrent_requests', 25),
        'owner_batch_size': _as_int('scan.owner_batch_size', 150),
        'balance_batch_size': _as_int('scan.balance_batch_size', 75),
        'retry_attempts': _as_int('scan.retry_attempts', 3),
        'retry_delay_s': _as_float('scan.retry_delay_s', 1.0),
        'first_item_id': _as_int('scan.first_item_id', 1),
        'performance_logging': _as_bool('scan.performance_logging', True),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ScanConfig(**values)


def get_rpc_url() -> str:
    """Gets the JSON-RPC endpoint of the ledger."""
    url = get_config('ledger.rpc_url', DEFAULT_RPC_URL)
    if not url:
        raise ConfigurationError("ledger.rpc_url must not be empty")
    return str(url)


def get_contract_address() -> str:
    """Gets the address of the collection contract to scan."""
    address = get_config('ledger.contract_address', DEFAULT_CONTRACT_ADDRESS)
    if not address:
        raise ConfigurationError("ledger.contract_address must not be empty")
    return str(address)


def get_rpc_timeout() -> float:
    """Gets the hard per-call timeout of the RPC transport, in seconds."""
    return _as_float('ledger.timeout_s', DEFAULT_RPC_TIMEOUT_S)


def get_block_tag() -> str:
    """Gets the block tag balance queries are evaluated at."""
    return str(get_config('ledger.block_tag', DEFAULT_BLOCK_TAG))


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
