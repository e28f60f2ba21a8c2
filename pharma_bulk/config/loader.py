from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from pharma_bulk.models.config_models import (
    DEFAULT_TIMEOUT_SECONDS,
    ApiConfig,
    EntityOverride,
    ImportConfig,
)

"""Config loader.

Responsibilities:
- Load YAML config (default ``config/import.yml``)
- Validate it against the JSON schema shipped next to this module
- Apply defaults (timeout 100s, logs directory ./logs)
- Let PHARMA_API_BASE_URL / PHARMA_API_TOKEN override the api section
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")

ENV_BASE_URL = "PHARMA_API_BASE_URL"
ENV_TOKEN = "PHARMA_API_TOKEN"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data fails validation (missing keys, wrong types, unknown
            entity names or properties).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    api = dict(data.get("api") or {})
    if os.getenv(ENV_BASE_URL):
        api["base_url"] = os.environ[ENV_BASE_URL]
    if os.getenv(ENV_TOKEN):
        api["token"] = os.environ[ENV_TOKEN]
    if api:
        data = {**data, "api": api}
    return data


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid yaml: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"config root must be a mapping: {path}")
    elif os.getenv(ENV_BASE_URL):
        # Environment alone is enough to run
        data = {}
    else:
        raise ConfigError(f"config file not found: {path}")

    data = _apply_env_overrides(data)
    _validate_config_schema(data)

    api_raw = data["api"]
    api = ApiConfig(
        base_url=api_raw["base_url"].rstrip("/"),
        token=api_raw.get("token"),
        timeout_seconds=float(api_raw.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
    )
    entities = {
        name: EntityOverride(
            batch_size=raw.get("batch_size"),
            batch_delay_ms=raw.get("batch_delay_ms"),
        )
        for name, raw in (data.get("entities") or {}).items()
    }
    return ImportConfig(
        api=api,
        entities=entities,
        logs_directory=data.get("logs_directory", "./logs"),
    )
