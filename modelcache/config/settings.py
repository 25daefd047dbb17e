"""Environment-driven cache options.

Deployments can switch debug events or the ops heartbeat on without code
changes:

    MODELCACHE_DEBUG=1 MODELCACHE_OPS=60 python app.py

``CacheSettings`` reads ``MODELCACHE_*`` variables (and a ``.env`` file if
present); ``to_options`` turns them into validated CacheOptions.
"""
from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .validation import CacheOptions, Delegate


class CacheSettings(BaseSettings):
    """Facade options loaded from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="MODELCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = Field(False, description="Forward per-call events to the delegate")
    ops: float = Field(0.0, ge=0, description="Heartbeat interval in seconds, 0 = disabled")

    def to_options(self, delegate: Optional[Delegate] = None) -> CacheOptions:
        return CacheOptions(debug=self.debug, ops=self.ops, delegate=delegate)
