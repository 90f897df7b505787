"""
qMint TOML Configuration Loader

Loads collection.toml with environment variable overrides. Each [section]
maps to a dataclass with ``from_dict`` and ``apply_env``.

Environment variable mapping:
    [collection] unit_price        → QMINT_UNIT_PRICE
    [collection] release_timestamp → QMINT_RELEASE_TIMESTAMP
    [royalty] receiver             → QMINT_ROYALTY_RECEIVER
    [royalty] basis_points         → QMINT_ROYALTY_BPS
    [metadata] base_uri            → QMINT_BASE_URI
    [admin] owner                  → QMINT_OWNER
    [storage] path                 → QMINT_DB_PATH
    [logging] level                → QMINT_LOG_LEVEL

Supply caps and the number of types are deliberately NOT overridable from
the environment: they must come from the reviewed config file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from eth_utils import is_address

from ..constants import (
    DEFAULT_COLLECTION_NAME,
    DEFAULT_COLLECTION_SYMBOL,
    DEFAULT_CONTRACT_SUFFIX,
    DEFAULT_MAX_MINT_PER_TYPE,
    DEFAULT_MAX_TOTAL_SUPPLY,
    DEFAULT_NUM_TYPES,
    DEFAULT_ROYALTY_BASIS_POINTS,
    DEFAULT_UNIT_PRICE,
    QMINT_DB_PATH,
    RELEASE_TIMESTAMP_CEILING,
    ROYALTY_DENOMINATOR,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _to_decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ConfigurationError(f"{name} is not a number: {value!r}") from e


def _to_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} is not an integer: {value!r}") from e


# ---------------------------------------------------------------------------
# Section dataclasses — one per [section] of collection.toml
# ---------------------------------------------------------------------------


@dataclass
class CollectionSectionConfig:
    """[collection] section."""
    name: str = DEFAULT_COLLECTION_NAME
    symbol: str = DEFAULT_COLLECTION_SYMBOL
    num_types: int = DEFAULT_NUM_TYPES
    max_total_supply: int = DEFAULT_MAX_TOTAL_SUPPLY
    max_mint_per_type: int = DEFAULT_MAX_MINT_PER_TYPE
    unit_price: Decimal = DEFAULT_UNIT_PRICE
    release_timestamp: int = RELEASE_TIMESTAMP_CEILING

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CollectionSectionConfig":
        return cls(
            name=data.get("name", DEFAULT_COLLECTION_NAME),
            symbol=data.get("symbol", DEFAULT_COLLECTION_SYMBOL),
            num_types=data.get("num_types", DEFAULT_NUM_TYPES),
            max_total_supply=data.get("max_total_supply", DEFAULT_MAX_TOTAL_SUPPLY),
            max_mint_per_type=data.get("max_mint_per_type", DEFAULT_MAX_MINT_PER_TYPE),
            unit_price=_to_decimal(data.get("unit_price", DEFAULT_UNIT_PRICE), "unit_price"),
            release_timestamp=data.get("release_timestamp", RELEASE_TIMESTAMP_CEILING),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("QMINT_UNIT_PRICE"):
            self.unit_price = _to_decimal(v, "QMINT_UNIT_PRICE")
        if v := os.environ.get("QMINT_RELEASE_TIMESTAMP"):
            self.release_timestamp = _to_int(v, "QMINT_RELEASE_TIMESTAMP")


@dataclass
class RoyaltySectionConfig:
    """[royalty] section. An empty receiver means "pay the owner"."""
    receiver: str = ""
    basis_points: int = DEFAULT_ROYALTY_BASIS_POINTS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoyaltySectionConfig":
        return cls(
            receiver=data.get("receiver", ""),
            basis_points=data.get("basis_points", DEFAULT_ROYALTY_BASIS_POINTS),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("QMINT_ROYALTY_RECEIVER"):
            self.receiver = v
        if v := os.environ.get("QMINT_ROYALTY_BPS"):
            self.basis_points = _to_int(v, "QMINT_ROYALTY_BPS")


@dataclass
class MetadataSectionConfig:
    """[metadata] section. Empty ``type_suffixes`` → "<type>.json"."""
    base_uri: str = ""
    type_suffixes: List[str] = field(default_factory=list)
    contract_suffix: str = DEFAULT_CONTRACT_SUFFIX

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetadataSectionConfig":
        return cls(
            base_uri=data.get("base_uri", ""),
            type_suffixes=list(data.get("type_suffixes", [])),
            contract_suffix=data.get("contract_suffix", DEFAULT_CONTRACT_SUFFIX),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("QMINT_BASE_URI"):
            self.base_uri = v


@dataclass
class AdminSectionConfig:
    """[admin] section."""
    owner: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdminSectionConfig":
        return cls(owner=data.get("owner", ""))

    def apply_env(self) -> None:
        if v := os.environ.get("QMINT_OWNER"):
            self.owner = v


@dataclass
class OperatorsSectionConfig:
    """[operators] section — third-party operator allow-list."""
    enabled: bool = True
    allowed: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OperatorsSectionConfig":
        return cls(
            enabled=data.get("enabled", True),
            allowed=list(data.get("allowed", [])),
        )


@dataclass
class StorageSectionConfig:
    """[storage] section."""
    path: str = str(QMINT_DB_PATH)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageSectionConfig":
        return cls(path=data.get("path", str(QMINT_DB_PATH)))

    def apply_env(self) -> None:
        if v := os.environ.get("QMINT_DB_PATH"):
            self.path = v


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(level=str(data.get("level", "INFO")).upper())

    def apply_env(self) -> None:
        if v := os.environ.get("QMINT_LOG_LEVEL"):
            self.level = v.upper()


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------


@dataclass
class CollectionSettings:
    """Complete deployment configuration for one collection."""
    collection: CollectionSectionConfig = field(default_factory=CollectionSectionConfig)
    royalty: RoyaltySectionConfig = field(default_factory=RoyaltySectionConfig)
    metadata: MetadataSectionConfig = field(default_factory=MetadataSectionConfig)
    admin: AdminSectionConfig = field(default_factory=AdminSectionConfig)
    operators: OperatorsSectionConfig = field(default_factory=OperatorsSectionConfig)
    storage: StorageSectionConfig = field(default_factory=StorageSectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CollectionSettings":
        return cls(
            collection=CollectionSectionConfig.from_dict(data.get("collection", {})),
            royalty=RoyaltySectionConfig.from_dict(data.get("royalty", {})),
            metadata=MetadataSectionConfig.from_dict(data.get("metadata", {})),
            admin=AdminSectionConfig.from_dict(data.get("admin", {})),
            operators=OperatorsSectionConfig.from_dict(data.get("operators", {})),
            storage=StorageSectionConfig.from_dict(data.get("storage", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "CollectionSettings":
        """
        Load settings from a TOML file. A missing file yields defaults
        (with env overrides applied).
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s — using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            try:
                raw = tomli.load(f)
            except tomli.TOMLDecodeError as e:
                raise ConfigurationError(f"Malformed config {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        self.collection.apply_env()
        self.royalty.apply_env()
        self.metadata.apply_env()
        self.admin.apply_env()
        self.storage.apply_env()
        self.logging.apply_env()

    # --- derived ----------------------------------------------------------

    @property
    def royalty_receiver(self) -> str:
        return self.royalty.receiver or self.admin.owner

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all sections.

        Returns:
            True if all valid

        Raises:
            ConfigurationError: on invalid config
        """
        c = self.collection
        if c.num_types < 1:
            raise ConfigurationError("num_types must be >= 1")
        if c.max_total_supply < 1 or c.max_mint_per_type < 1:
            raise ConfigurationError("Supply caps must be positive")
        if c.max_mint_per_type > c.max_total_supply:
            raise ConfigurationError(
                f"max_mint_per_type ({c.max_mint_per_type}) exceeds "
                f"max_total_supply ({c.max_total_supply})"
            )
        if c.unit_price < 0:
            raise ConfigurationError("unit_price cannot be negative")
        if not 0 <= c.release_timestamp <= RELEASE_TIMESTAMP_CEILING:
            raise ConfigurationError(
                f"release_timestamp must be within [0, {RELEASE_TIMESTAMP_CEILING}]"
            )
        if not self.admin.owner or not is_address(self.admin.owner):
            raise ConfigurationError(f"Invalid admin owner: {self.admin.owner!r}")
        if not is_address(self.royalty_receiver):
            raise ConfigurationError(f"Invalid royalty receiver: {self.royalty_receiver!r}")
        if not 0 < self.royalty.basis_points < ROYALTY_DENOMINATOR:
            raise ConfigurationError(
                f"royalty basis_points must be within (0, {ROYALTY_DENOMINATOR})"
            )
        suffixes = self.metadata.type_suffixes
        if suffixes and len(suffixes) != c.num_types:
            raise ConfigurationError(
                f"{len(suffixes)} type_suffixes configured for {c.num_types} types"
            )
        for op in self.operators.allowed:
            if not is_address(op):
                raise ConfigurationError(f"Invalid operator address: {op!r}")
        if self.logging.level not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.logging.level}")
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "collection": {
                "name": self.collection.name,
                "symbol": self.collection.symbol,
                "num_types": self.collection.num_types,
                "max_total_supply": self.collection.max_total_supply,
                "max_mint_per_type": self.collection.max_mint_per_type,
                "unit_price": str(self.collection.unit_price),
                "release_timestamp": self.collection.release_timestamp,
            },
            "royalty": {
                "receiver": self.royalty_receiver,
                "basis_points": self.royalty.basis_points,
            },
            "metadata": {
                "base_uri": self.metadata.base_uri,
                "contract_suffix": self.metadata.contract_suffix,
            },
            "admin": {"owner": self.admin.owner},
            "operators": {
                "enabled": self.operators.enabled,
                "allowed": list(self.operators.allowed),
            },
            "storage": {"path": self.storage.path},
            "logging": {"level": self.logging.level},
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> CollectionSettings:
    """
    Load collection settings.

    Resolution order:
        1. Explicit *path* argument
        2. QMINT_CONFIG env var
        3. ./collection.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("QMINT_CONFIG", "collection.toml")

    return CollectionSettings.from_file(path)
