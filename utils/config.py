"""
Configuration
Defaults <- config/pipeline_config.json <- environment (.env)
"""

import copy
import json
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from loguru import logger

from blockchain.errors import ConfigError

load_dotenv()

DEFAULT_CONFIG_PATH = "config/pipeline_config.json"

DEFAULTS: Dict[str, Any] = {
    'network': {
        'rpc_url': 'http://127.0.0.1:8545',
        'request_timeout': 30,
        'receipt_timeout': 120,
        'poll_latency': 0.5
    },
    'compiler': {
        'solc_version': '0.8.20',
        'optimize': False,
        'optimize_runs': 200,
        'evm_version': None
    },
    'deployment': {
        'gas_safety_margin': 1.2,
        'constructor_args': [1]
    },
    'paths': {
        'contract_source': 'contracts/SimpleStorage.sol',
        'artifacts_dir': 'build/artifacts'
    },
    'sender': {
        'account_index': 0
    }
}

# env var -> (section, key, converter)
ENV_OVERRIDES = {
    'RPC_URL': ('network', 'rpc_url', str),
    'SOLC_VERSION': ('compiler', 'solc_version', str),
    'GAS_SAFETY_MARGIN': ('deployment', 'gas_safety_margin', float),
    'ARTIFACTS_DIR': ('paths', 'artifacts_dir', str),
}


def _merge(base: Dict, override: Dict) -> Dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def validate_config(config: Dict):
    """
    Check value ranges

    Raises:
        ConfigError: on invalid values
    """
    network = config['network']
    if not network.get('rpc_url'):
        raise ConfigError("network.rpc_url is required")
    for key in ('request_timeout', 'receipt_timeout'):
        if network[key] <= 0:
            raise ConfigError(f"network.{key} must be positive, got {network[key]}")

    margin = config['deployment']['gas_safety_margin']
    if margin < 1.0:
        raise ConfigError(f"deployment.gas_safety_margin must be >= 1.0, got {margin}")

    if not isinstance(config['deployment']['constructor_args'], list):
        raise ConfigError("deployment.constructor_args must be a list")

    if config['sender']['account_index'] < 0:
        raise ConfigError("sender.account_index must be >= 0")


def load_config(path: Optional[str] = None) -> Dict:
    """
    Load pipeline configuration

    Args:
        path: JSON config file (defaults to config/pipeline_config.json when present)

    Returns:
        Configuration dict
    """
    config = copy.deepcopy(DEFAULTS)
    config_path = path or DEFAULT_CONFIG_PATH

    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config = _merge(config, json.load(f))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e
        logger.debug(f"Loaded configuration from {config_path}")
    elif path:
        raise ConfigError(f"Config file not found: {path}")

    for env_var, (section, key, convert) in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            try:
                config[section][key] = convert(value)
            except ValueError as e:
                raise ConfigError(f"Invalid value for {env_var}: {value!r}") from e

    validate_config(config)
    return config
