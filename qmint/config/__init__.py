"""
qMint Configuration

Loads collection.toml at startup. Environment variables override TOML
values where noted in ``qmint.config.loader``.
"""

from .loader import (
    AdminSectionConfig,
    CollectionSectionConfig,
    CollectionSettings,
    LoggingSectionConfig,
    MetadataSectionConfig,
    OperatorsSectionConfig,
    RoyaltySectionConfig,
    StorageSectionConfig,
    load_config,
)

__all__ = [
    "AdminSectionConfig",
    "CollectionSectionConfig",
    "CollectionSettings",
    "LoggingSectionConfig",
    "MetadataSectionConfig",
    "OperatorsSectionConfig",
    "RoyaltySectionConfig",
    "StorageSectionConfig",
    "load_config",
]
