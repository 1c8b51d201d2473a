"""Registry configuration."""

from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ENTRY_POINT_GROUP = "typedesc.providers"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class RegistrySettings(BaseModel):
    """Options of a :class:`~typedesc.registry.MetadataRegistry`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    trace: bool = Field(
        default=False,
        description="Log pipeline cache hits, misses and node allocations at DEBUG level.",
    )
    discover_providers: bool = Field(
        default=False,
        description="Register entry point providers when the registry is created.",
    )
    entry_point_group: str = Field(
        default=DEFAULT_ENTRY_POINT_GROUP,
        description="Entry point group searched for provider classes.",
    )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RegistrySettings":
        """Build settings from ``TYPEDESC_*`` environment variables."""
        env = os.environ if environ is None else environ
        values = {}
        if "TYPEDESC_TRACE" in env:
            values["trace"] = env["TYPEDESC_TRACE"].strip().lower() in _TRUE_VALUES
        if "TYPEDESC_DISCOVER_PROVIDERS" in env:
            values["discover_providers"] = (
                env["TYPEDESC_DISCOVER_PROVIDERS"].strip().lower() in _TRUE_VALUES
            )
        if env.get("TYPEDESC_ENTRY_POINT_GROUP"):
            values["entry_point_group"] = env["TYPEDESC_ENTRY_POINT_GROUP"]
        return cls(**values)
