"""Configuration models for the model cache."""

from .settings import CacheSettings
from .validation import (
    DEFAULT_LIMIT,
    DEFAULT_READ_METHODS,
    DEFAULT_TTL,
    DEFAULT_WRITE_METHODS,
    CacheOptions,
    NamespaceConfig,
    parse_cache_config,
    parse_cache_options,
    parse_namespace_config,
    validate_config_schema,
)

__all__ = [
    "CacheOptions",
    "CacheSettings",
    "DEFAULT_LIMIT",
    "DEFAULT_READ_METHODS",
    "DEFAULT_TTL",
    "DEFAULT_WRITE_METHODS",
    "NamespaceConfig",
    "parse_cache_config",
    "parse_cache_options",
    "parse_namespace_config",
    "validate_config_schema",
]
