"""
Configuration management for ArrayFlow

This module provides configuration loading, validation, and the output
layout shared by both pipelines.
"""

from .config import (ENRICHMENT_SOURCES, GO_CATEGORIES, REVIGO_CUTOFFS,
                     REVIGO_MEASURES, REVIGO_VALUE_ORDERS, Config,
                     get_default_config, load_config, save_config,
                     validate_config, validate_revigo)
from .paths import PathConfig, category_slug

__all__ = [
    "Config",
    "load_config",
    "save_config",
    "validate_config",
    "validate_revigo",
    "get_default_config",
    "PathConfig",
    "category_slug",
    "ENRICHMENT_SOURCES",
    "GO_CATEGORIES",
    "REVIGO_CUTOFFS",
    "REVIGO_MEASURES",
    "REVIGO_VALUE_ORDERS",
]
