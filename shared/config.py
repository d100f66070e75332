# =============================================================================
# POLYGON CTF SCANNER - CONFIGURATION
# =============================================================================
#
# Reads config/scanner.yaml and applies environment overrides.
#
# PRECEDENCE (highest first):
#   1. Explicit CLI flags (applied by the caller)
#   2. Environment (POLYSCAN_RPC_URL, POLYSCAN_GAMMA_URL), .env included
#   3. config/scanner.yaml
#   4. Defaults below
#
# =============================================================================

import os
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from chain.consts import (
    CTF_ADDRESS,
    EXCHANGE_PROXY_ADDRESS,
    NEG_RISK_ADAPTER_ADDRESS,
    NEG_RISK_WRAPPED_COLLATERAL_ADDRESS,
    POLYGON_RPC_URL,
    USDC_ADDRESS,
)

logger = logging.getLogger(__name__)

# Base directory
BASE_DIR = Path(__file__).parent.parent
CONFIG_PATH = BASE_DIR / "config" / "scanner.yaml"

RPC_URL_ENV_VAR: str = "POLYSCAN_RPC_URL"
GAMMA_URL_ENV_VAR: str = "POLYSCAN_GAMMA_URL"


class ConfigError(Exception):
    """Configuration file exists but cannot be used."""


@dataclass
class ScannerConfig:
    """Runtime settings for the scanner and the Gamma client."""
    rpc_url: str = POLYGON_RPC_URL
    rpc_timeout: int = 30
    max_retries: int = 3
    exchange_address: str = EXCHANGE_PROXY_ADDRESS
    ctf_address: str = CTF_ADDRESS
    collateral_address: str = USDC_ADDRESS
    neg_risk_adapter_address: str = NEG_RISK_ADAPTER_ADDRESS
    neg_risk_collateral_address: str = NEG_RISK_WRAPPED_COLLATERAL_ADDRESS
    gamma_base_url: str = "https://gamma-api.polymarket.com"
    default_from_block: int = 66_000_000
    default_range: int = 10
    log_chunk_size: int = 2000

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScannerConfig":
        """
        Build from a mapping, ignoring unknown keys.

        Raises:
            ConfigError: If a known key has the wrong type
        """
        known = {f.name: f for f in fields(cls)}
        kwargs = {}

        for key, value in data.items():
            if key not in known:
                logger.warning(f"Unknown config key ignored: {key}")
                continue

            expected = type(getattr(cls, key))
            if expected is int and (isinstance(value, bool) or not isinstance(value, int)):
                raise ConfigError(f"{key} must be an integer, got {value!r}")
            if expected is str and not isinstance(value, str):
                raise ConfigError(f"{key} must be a string, got {value!r}")
            kwargs[key] = value

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_config(
    config_path: Optional[Path] = None,
    env_file: Optional[Path] = None,
) -> ScannerConfig:
    """
    Load configuration from YAML and environment.

    Args:
        config_path: Path to scanner.yaml. Defaults to config/scanner.yaml
        env_file: Path to .env. Defaults to .env in the project root

    Returns:
        ScannerConfig with overrides applied

    Raises:
        ConfigError: If the YAML is malformed or has invalid values
    """
    load_dotenv(env_file or BASE_DIR / ".env", override=False)

    path = Path(config_path) if config_path else CONFIG_PATH
    data: Dict[str, Any] = {}

    if not path.exists():
        logger.warning(f"Config file not found: {path}, using defaults")
    else:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse {path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")

        data = data.get("scanner", data)
        logger.debug(f"Loaded config from {path}")

    config = ScannerConfig.from_dict(data)

    rpc_url = os.getenv(RPC_URL_ENV_VAR)
    if rpc_url:
        config.rpc_url = rpc_url

    gamma_url = os.getenv(GAMMA_URL_ENV_VAR)
    if gamma_url:
        config.gamma_base_url = gamma_url

    return config
