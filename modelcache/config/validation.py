"""Configuration models and validation for the model cache."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.types import NonNegativeFloat, PositiveFloat, PositiveInt

from ..cache.exceptions import ModelCacheConfigError

logger = logging.getLogger(__name__)

DEFAULT_TTL = 60.0 * 60  # 1 hour
DEFAULT_LIMIT = 50

DEFAULT_READ_METHODS: Tuple[str, ...] = (
    "find_by_id",
    "find_by_pk",
    "find_one",
    "find_all",
    "find_and_count_all",
    "count",
    "min",
    "max",
    "sum",
    "aggregate",
)

DEFAULT_WRITE_METHODS: Tuple[str, ...] = (
    "create",
    "bulk_create",
    "update",
    "destroy",
    "upsert",
    "find_or_create",
    "find_or_build",
    "increment",
    "decrement",
    "restore",
    "truncate",
)

Delegate = Callable[[str, Dict[str, Any]], None]


class NamespaceConfig(BaseModel):
    """Caching configuration of one namespace (model).

    ``ttl`` of None (or False) means entries never expire. camelCase aliases
    ``methodsUpdate`` and ``clearOnUpdate`` are accepted.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    ttl: Optional[PositiveFloat] = Field(DEFAULT_TTL, description="Entry lifetime in seconds, None = never expire")
    methods: Tuple[str, ...] = Field(DEFAULT_READ_METHODS, description="Read operations served from cache")
    methods_update: Tuple[str, ...] = Field(
        DEFAULT_WRITE_METHODS, alias="methodsUpdate", description="Write operations that invalidate the namespace"
    )
    limit: PositiveInt = Field(DEFAULT_LIMIT, description="Maximum number of entries")
    clear_on_update: bool = Field(True, alias="clearOnUpdate", description="Clear the namespace on watched writes")

    @field_validator("ttl", mode="before")
    @classmethod
    def normalize_never(cls, v: Any) -> Any:
        """Map the ``False`` sentinel to None and reject ``True``."""
        if v is False:
            return None
        if v is True:
            raise ValueError("ttl must be a positive number, False or None")
        return v

    @field_validator("ttl")
    @classmethod
    def warn_long_ttl(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v > 24 * 60 * 60:
            logger.warning(f"Very long cache ttl ({v}s > 1 day) configured")
        return v

    @field_validator("methods", "methods_update", mode="before")
    @classmethod
    def validate_method_names(cls, v: Any) -> Any:
        """Accept any iterable of identifiers; a bare string is a mistake."""
        if isinstance(v, str):
            raise ValueError("expected a list of method names, got a string")
        names = tuple(v)
        for name in names:
            if not isinstance(name, str) or not name.isidentifier():
                raise ValueError(f"invalid method name: {name!r}")
        return names

    @field_validator("limit")
    @classmethod
    def warn_large_limit(cls, v: int) -> int:
        if v > 100_000:
            logger.warning(f"Very large cache limit ({v}) configured, eviction scans are O(n)")
        return v

    @model_validator(mode="after")
    def check_disjoint_methods(self) -> "NamespaceConfig":
        both = set(self.methods) & set(self.methods_update)
        if both:
            raise ValueError(f"methods cannot be both read and write: {sorted(both)}")
        return self


class CacheOptions(BaseModel):
    """Facade-wide options.

    ``ops`` is the heartbeat interval in seconds; 0, False or None disable it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    debug: bool = Field(False, description="Forward per-call events to the delegate")
    ops: NonNegativeFloat = Field(0.0, description="Heartbeat interval in seconds, 0 = disabled")
    delegate: Optional[Delegate] = Field(None, description="Event sink (event, details) -> None")

    @field_validator("ops", mode="before")
    @classmethod
    def normalize_disabled(cls, v: Any) -> Any:
        if v is False or v is None:
            return 0.0
        if v is True:
            raise ValueError("ops must be a number of seconds, 0 or False")
        return v


def validate_config_schema(config: Mapping[str, Any], model: Type[BaseModel]) -> Tuple[bool, Optional[Dict[str, str]]]:
    """Validate configuration against a pydantic model.

    Args:
        config: Configuration mapping
        model: Pydantic model class

    Returns:
        Tuple of (is_valid, error_dict)
    """
    try:
        model.model_validate(dict(config))
        return True, None
    except ValidationError as e:
        return False, _flatten_errors(e)


def parse_namespace_config(namespace: str, config: Union[NamespaceConfig, Mapping[str, Any], None]) -> NamespaceConfig:
    """Build a NamespaceConfig from a mapping (or pass one through).

    Raises:
        ModelCacheConfigError: If the mapping is invalid
    """
    if isinstance(config, NamespaceConfig):
        return config
    try:
        return NamespaceConfig.model_validate(dict(config or {}))
    except ValidationError as e:
        errors = {f"{namespace}.{loc}": msg for loc, msg in _flatten_errors(e).items()}
        raise ModelCacheConfigError(f"Invalid cache config for namespace {namespace!r}", errors) from e


def parse_cache_config(config: Optional[Mapping[str, Any]]) -> Dict[str, NamespaceConfig]:
    """Validate a ``{namespace: config}`` mapping.

    Args:
        config: Mapping of namespace name to config mapping or NamespaceConfig

    Returns:
        Mapping of namespace name to validated NamespaceConfig

    Raises:
        ModelCacheConfigError: If any namespace config is invalid
    """
    parsed: Dict[str, NamespaceConfig] = {}
    for namespace, namespace_config in (config or {}).items():
        if not isinstance(namespace, str) or not namespace:
            raise ModelCacheConfigError(f"Namespace names must be non-empty strings, got {namespace!r}")
        parsed[namespace] = parse_namespace_config(namespace, namespace_config)
    return parsed


def parse_cache_options(options: Union[CacheOptions, Mapping[str, Any], None]) -> CacheOptions:
    """Validate facade options.

    Raises:
        ModelCacheConfigError: If the options are invalid
    """
    if isinstance(options, CacheOptions):
        return options
    try:
        return CacheOptions.model_validate(dict(options or {}))
    except ValidationError as e:
        raise ModelCacheConfigError("Invalid cache options", _flatten_errors(e)) from e


def _flatten_errors(error: ValidationError) -> Dict[str, str]:
    errors = {}
    for item in error.errors():
        field = ".".join(str(x) for x in item["loc"]) or "__root__"
        errors[field] = item["msg"]
    return errors
