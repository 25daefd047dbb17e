"""Exception hierarchy for the model cache."""
from __future__ import annotations

from typing import Dict, Optional


class ModelCacheError(Exception):
    """Base class for all errors raised by the cache layer itself."""


class ModelCacheConfigError(ModelCacheError, ValueError):
    """Invalid namespace configuration or cache options.

    Attributes:
        errors: Mapping of dotted field location to validation message
    """

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors = errors or {}


class ContractViolationError(ModelCacheError, TypeError):
    """A watched read operation did not return an awaitable.

    Raised at call time, before anything is cached. The wrapped object is
    broken (or wrongly mocked), so this is never retried or swallowed.
    """

    def __init__(self, namespace: str, operation: str, result_type: str):
        super().__init__(
            f"{namespace}.{operation}() did not return an awaitable but should "
            f"(got {result_type})"
        )
        self.namespace = namespace
        self.operation = operation
