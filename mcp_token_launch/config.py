import os
import logging
from typing import Optional
from dotenv import load_dotenv

from mcp_token_launch.errors import ConfigurationError

"""
Configuration Management for the Token Launch Wizard

This module loads the settings used by the wizard core and its submission client from
environment variables, falling back to documented defaults. Values are type-checked and
range-checked on import so that a misconfigured deployment fails fast.

Configuration Sources (in order of precedence):
1. Environment variables (a local .env file is loaded first)
2. Default values defined in this module

Environment Variables:
    API_BASE_URL: Base URL of the token creation service
    CREATE_TOKEN_ENDPOINT: Path of the token creation endpoint
    TOKEN_DECIMALS: Implied decimal places of launched tokens (0-36)
    DEFAULT_TOTAL_SUPPLY: Total supply pre-filled in a new draft (whole tokens)
    DEFAULT_LOCK_DAYS: LP lock duration pre-filled in a new draft
    MIN_LOCK_DAYS: Minimum accepted LP lock duration in days
    HEADERLESS_ADDON_FEE: Native-currency fee for removing the contract header
    STEALTH_ADDON_FEE: Native-currency fee for stealth mode
    GRADUATION_FEE: Native-currency fee charged at graduation
    LOCKER_FEE: Native-currency fee for locking liquidity
    SUBMIT_TIMEOUT_SECONDS: Upper bound on one submission attempt
    DEFAULT_CHAIN_ID: Chain id used when no wallet network is known
    MAX_SESSIONS: Maximum number of concurrently open wizard sessions
"""

# Set up logger
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()


def _check_range(key: str, value, min_val, max_val):
    if min_val is not None and value < min_val:
        raise ConfigurationError(f"Environment variable {key} must be >= {min_val}")
    if max_val is not None and value > max_val:
        raise ConfigurationError(f"Environment variable {key} must be <= {max_val}")
    return value


def _get_env_str(key: str, default: str, required: bool = False) -> str:
    """Reads a text setting such as the service URL; a required one may not be blank."""
    value = os.getenv(key, default)
    if required and not value:
        raise ConfigurationError(f"Required environment variable {key} is not set")
    return value


def _get_env_int(key: str, default: int, min_val: Optional[int] = None, max_val: Optional[int] = None) -> int:
    """Reads a whole-number setting (decimals, lock days, chain id, session limit) within bounds."""
    try:
        value = int(os.getenv(key, str(default)))
    except ValueError:
        raise ConfigurationError(f"Environment variable {key} must be a valid integer")
    return _check_range(key, value, min_val, max_val)


def _get_env_float(key: str, default: float, min_val: Optional[float] = None, max_val: Optional[float] = None) -> float:
    """Reads a native-currency fee or a timeout in seconds within bounds."""
    try:
        value = float(os.getenv(key, str(default)))
    except ValueError:
        raise ConfigurationError(f"Environment variable {key} must be a valid float")
    return _check_range(key, value, min_val, max_val)


def _get_env_supply(key: str, default: str) -> str:
    """Reads the default total supply, kept as a whole-token integer string."""
    value = os.getenv(key, default).strip()
    if not value.isdigit() or int(value) <= 0:
        raise ConfigurationError(f"Environment variable {key} must be a positive integer string")
    return value


try:
    # --- Token Creation Service ---
    API_BASE_URL = _get_env_str("API_BASE_URL", "http://localhost:3001/api", required=True).rstrip("/")
    CREATE_TOKEN_ENDPOINT = _get_env_str("CREATE_TOKEN_ENDPOINT", "/tokens/newToken")
    SUBMIT_TIMEOUT_SECONDS = _get_env_float("SUBMIT_TIMEOUT_SECONDS", 30.0, min_val=1.0, max_val=600.0)

    # --- Token Defaults ---
    TOKEN_DECIMALS = _get_env_int("TOKEN_DECIMALS", 18, min_val=0, max_val=36)
    DEFAULT_TOTAL_SUPPLY = _get_env_supply("DEFAULT_TOTAL_SUPPLY", "1000000000")
    DEFAULT_LOCK_DAYS = _get_env_int("DEFAULT_LOCK_DAYS", 90, min_val=1)
    MIN_LOCK_DAYS = _get_env_int("MIN_LOCK_DAYS", 30, min_val=1)

    # --- Add-on Fees (native currency) ---
    HEADERLESS_ADDON_FEE = _get_env_float("HEADERLESS_ADDON_FEE", 0.001, min_val=0.0)
    STEALTH_ADDON_FEE = _get_env_float("STEALTH_ADDON_FEE", 0.003, min_val=0.0)
    GRADUATION_FEE = _get_env_float("GRADUATION_FEE", 0.1, min_val=0.0)
    LOCKER_FEE = _get_env_float("LOCKER_FEE", 0.08, min_val=0.0)

    # --- Network ---
    DEFAULT_CHAIN_ID = _get_env_int("DEFAULT_CHAIN_ID", 1, min_val=1)

    # --- Sessions ---
    MAX_SESSIONS = _get_env_int("MAX_SESSIONS", 1000, min_val=1, max_val=100000)

    if DEFAULT_LOCK_DAYS < MIN_LOCK_DAYS:
        raise ConfigurationError("DEFAULT_LOCK_DAYS must be >= MIN_LOCK_DAYS")

    logger.info("Configuration loaded successfully")

except ConfigurationError as e:
    logger.error(f"Configuration error: {e}")
    raise
