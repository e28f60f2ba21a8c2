from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the bulk importer.

These are the typed form of ``config/import.yml`` once the loader has
validated it and applied environment overrides.
"""

DEFAULT_TIMEOUT_SECONDS = 100.0


@dataclass(frozen=True)
class ApiConfig:
    """REST API connection settings.

    Environment variables (PHARMA_API_BASE_URL / PHARMA_API_TOKEN) take
    precedence over the values in the YAML file.
    """
    base_url: str
    token: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True)
class EntityOverride:
    """Per-entity tuning; None keeps the entity policy's built-in constant."""
    batch_size: int | None = None
    batch_delay_ms: int | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for the import tool."""
    api: ApiConfig
    entities: dict[str, EntityOverride] = field(default_factory=dict)
    logs_directory: str = "./logs"
