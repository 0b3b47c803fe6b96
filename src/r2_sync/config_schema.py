"""Unified configuration schema for r2_sync.

Defines Pydantic models for the YAML config structure with dedicated
sections for the object store connection, sync behaviour and logging.
Includes an adapter that flattens the file sections into the fallback
dict consumed by ``load_config()``.

Usage:
    from r2_sync.config_schema import build_config, to_yaml_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=to_yaml_fallbacks(unified))
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class R2Config(BaseModel):
    """Object store connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    bucket_name: str | None = Field(default=None, description="Bucket name")
    endpoint: str | None = Field(
        default=None,
        description="API endpoint, e.g. https://<account_id>.r2.cloudflarestorage.com",
    )
    access_key_id: str | None = Field(
        default=None, description="Access key ID"
    )
    secret_access_key: str | None = Field(
        default=None, description="Secret access key"
    )
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Local tree and scheduling settings."""

    vault_root: str | None = Field(
        default=None, description="Local vault directory"
    )
    sync_folder: str = Field(
        default="",
        description="Folder inside the vault to sync; empty syncs the whole vault",
    )
    auto_sync: bool = Field(
        default=False, description="Run sync periodically in watch mode"
    )
    sync_interval: int = Field(
        default=5,
        ge=1,
        description="Auto sync interval in minutes",
    )
    language: str = Field(default="en", description="Message language")

    model_config = {"frozen": True}

    @field_validator("sync_folder")
    @classmethod
    def _strip_slashes(cls, v: str) -> str:
        return v.strip().strip("/")


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            unset keeps the per-mode default.
        file: Optional log file path.
    """

    level: str | None = Field(default=None, description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    r2: R2Config = Field(default_factory=R2Config)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully -- anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> load_config() fallbacks
# ---------------------------------------------------------------------------


def to_yaml_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten the ``r2`` and ``sync`` sections into one fallback dict.

    ``None`` values are dropped so they never shadow built-in defaults.

    Args:
        unified: The unified config produced by ``build_config()``.

    Returns:
        Dict keyed by ``Config`` field names.
    """
    merged = {
        **unified.r2.model_dump(),
        **unified.sync.model_dump(),
    }
    return {k: v for k, v in merged.items() if v is not None}
