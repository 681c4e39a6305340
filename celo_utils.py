#!/usr/bin/env python3
"""
Celo Governance Tools - Shared Utilities

Common functions, exceptions and constants used across the governance tools.
"""

import logging
import os
from pathlib import Path
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP, getcontext
from typing import Dict, Optional, Any, Union

import yaml
import pytz

# Set up basic logging first (before config loading)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


# Custom exception classes
class CeloToolError(Exception):
    """Base exception for all Celo Governance Tools errors"""
    pass


class NetworkError(CeloToolError):
    """Raised when a node request or contract call fails"""
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error


class DecodeError(CeloToolError):
    """Raised when a proposal transaction cannot be decoded"""
    def __init__(self, message: str, index: Optional[int] = None,
                 destination: Optional[str] = None):
        super().__init__(message)
        self.index = index
        self.destination = destination


class ValidationError(CeloToolError):
    """Raised when decoded data does not line up with what is on chain"""
    pass


class ProposalNotFoundError(CeloToolError):
    """Raised when a proposal has no queue event in the chain history"""
    def __init__(self, proposal_id: int):
        super().__init__(f"Proposal {proposal_id} was not found")
        self.proposal_id = proposal_id


class ContractNotFoundError(CeloToolError):
    """Raised when the registry has no address for a contract"""
    pass


# Configuration loading
def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the governance tools' YAML configuration.

    Recognised sections are ``network`` (url, timeout), ``explorer``
    (base_url), ``decoder`` (max_workers, abi_dir), ``logging`` (level,
    format, datefmt) and the top-level ``decimal_precision``; see
    config.example.yaml.

    Args:
        config_path: YAML file to read (defaults to config.yaml next to this module)

    Returns:
        The parsed mapping, or {} when the file is missing, unreadable or not a mapping
    """
    if config_path is None:
        config_path = Path(__file__).parent / "config.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        return {}

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load config file {config_path}: {e}")
        return {}

    if not isinstance(config, dict):
        logger.warning(f"Ignoring config file {config_path}: expected a mapping of sections")
        return {}
    return config


def configure_logging(config: Dict[str, Any], verbose: bool = False) -> None:
    """Reconfigure root logging from the 'logging' config section"""
    log_config = config.get('logging', {}) or {}
    if verbose:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    log_format = log_config.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    log_datefmt = log_config.get('datefmt', '%Y-%m-%d %H:%M:%S')
    logging.basicConfig(level=log_level, format=log_format, datefmt=log_datefmt, force=True)


# Load configuration
_config = load_config()

if _config.get('logging'):
    configure_logging(_config)

# Set precision for decimal calculations (with config override support)
_precision = _config.get('decimal_precision', 50)
getcontext().prec = _precision

# Constants (with config override support)
_network_config = _config.get('network', {}) or {}
DEFAULT_NETWORK_URL = os.getenv(
    'CELO_NETWORK_URL',
    _network_config.get('url', "https://forno.celo.org")
)
RPC_TIMEOUT_DEFAULT = _network_config.get('timeout', 30)

EXPLORER_BASE = (_config.get('explorer', {}) or {}).get('base_url', "https://explorer.celo.org")

_decoder_config = _config.get('decoder', {}) or {}
MAX_CONCURRENT_LOOKUPS = _decoder_config.get('max_workers', 4)
ABI_DIR = _decoder_config.get('abi_dir')

# CELO and stable tokens use 18 decimals; governance fractions are Fixidity (24)
CELO_DECIMALS = 18
FIXIDITY_DECIMALS = 24


def from_fixed(value: Union[int, str, Decimal]) -> Decimal:
    """Convert a Fixidity fixed-point integer into a Decimal fraction"""
    return Decimal(value) / (Decimal(10) ** FIXIDITY_DECIMALS)


def format_amount(amount: int, decimals: int = CELO_DECIMALS) -> str:
    """
    Format token amount with every decimal place shown.

    Args:
        amount: Token amount in smallest unit (wei)
        decimals: Number of decimal places for the token

    Returns:
        Formatted amount string, e.g. '1.500000000000000000'
    """
    formatted = Decimal(amount) / Decimal(10 ** decimals)
    return f"{formatted:.{decimals}f}"


def format_percent(fraction: Decimal) -> str:
    """Render a fraction (0.6) as a percentage figure without trailing zeros ('60')"""
    pct = fraction * 100
    if pct == pct.to_integral_value():
        return str(pct.quantize(Decimal(1)))
    return f"{pct:f}".rstrip('0').rstrip('.')


def round_half_up(value: Decimal) -> int:
    """Round a Decimal to the nearest integer, halves away from zero"""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_timestamp(timestamp: int) -> str:
    """
    Convert an epoch timestamp to a human-readable UTC string.

    Args:
        timestamp: Unix timestamp (integer seconds)

    Returns:
        Formatted timestamp string, e.g. 'Thu, 01 Jan 1970 00:00:00 GMT'
    """
    dt_utc = datetime.fromtimestamp(int(timestamp), tz=pytz.UTC)
    return dt_utc.strftime("%a, %d %b %Y %H:%M:%S GMT")
