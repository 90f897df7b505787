"""
qMint Constants

This module consolidates the global constants and environment configuration
used throughout the package. Values that shape issuance (caps, ceilings,
denominators) live here; per-deployment settings live in collection.toml
(see qmint.config).
"""
from decimal import Decimal
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'True',
}

STORAGE_DEFAULTS = {
    'QMINT_DB_PATH':                   'data/qmint.db',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# WARNING: THE ISSUANCE VALUES BELOW ARE BAKED INTO EVERY DEPLOYMENT. CHANGING THEM AFTER
# TOKENS HAVE BEEN MINTED BREAKS THE SUPPLY GUARANTEES HOLDERS RELY ON.

# ==================================================================================
# ARITHMETIC BOUNDS
# ==================================================================================
U64_MAX = 2 ** 64 - 1


# ==================================================================================
# COLLECTION DEFAULTS
# ==================================================================================
DEFAULT_COLLECTION_NAME = 'qMint Characters'
DEFAULT_COLLECTION_SYMBOL = 'QCHAR'
DEFAULT_NUM_TYPES = 8  # Distinct character types
DEFAULT_MAX_TOTAL_SUPPLY = 480
DEFAULT_MAX_MINT_PER_TYPE = 60
DEFAULT_UNIT_PRICE = Decimal('0.05')  # Price of one unit in the public sale
DEFAULT_TYPE_SUFFIX_FORMAT = '{type_id}.json'
DEFAULT_CONTRACT_SUFFIX = 'contract.json'


# ==================================================================================
# RELEASE (LOCKUP) WINDOW
# ==================================================================================
# Hard ceiling for the release timestamp: 2027-01-01T00:00:00Z.
# Not configurable at runtime; the administrator may move the release
# anywhere up to this instant but never past it.
RELEASE_TIMESTAMP_CEILING = 1_798_761_600


# ==================================================================================
# ROYALTIES
# ==================================================================================
ROYALTY_DENOMINATOR = 10_000  # Basis points in 100%
DEFAULT_ROYALTY_BASIS_POINTS = 500  # 5%


# ==================================================================================
# ADDRESSES
# ==================================================================================
ZERO_ADDRESS = '0x' + '0' * 40


# ==================================================================================
# ENVIRONMENT-BACKED SETTINGS
# ==================================================================================
# Each key of LOGGER_DEFAULTS / STORAGE_DEFAULTS becomes a module attribute.
# Booleans are exposed as ConfigBool, everything else as ConfigString; both
# remember the built-in default so callers can fall back to it.

class ConfigString(str):
    """A setting read from .env, with ``default()`` returning the built-in value."""

    def __new__(cls, value, default):
        setting = super().__new__(cls, value)
        setting._default = default
        return setting

    def default(self):
        return self._default


class ConfigBool(int):
    """Boolean setting read from .env; compares and prints like a bool."""

    def __new__(cls, value, default):
        setting = super().__new__(cls, bool(value))
        setting._default = default
        return setting

    def default(self):
        return self._default

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__

    def __str__(self):
        return "True" if self else "False"

    __repr__ = __str__


_BOOL_LITERALS = {"true": True, "false": False}


def parse_bool(v):
    """Map "true"/"false" (any case, surrounding blanks ignored) to bool; leave anything else."""
    if isinstance(v, str):
        return _BOOL_LITERALS.get(v.strip().casefold(), v)
    return v


def _env_setting(key, default_raw):
    raw = _config.get(key)  # None when the key is absent from .env
    value = parse_bool(default_raw if raw is None else raw)
    if isinstance(value, bool):
        return ConfigBool(value, parse_bool(default_raw))
    return ConfigString(value, default_raw)


DEFAULTS = LOGGER_DEFAULTS | STORAGE_DEFAULTS
globals().update({key: _env_setting(key, raw) for key, raw in DEFAULTS.items()})
