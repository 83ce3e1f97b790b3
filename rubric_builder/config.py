"""Configuration utilities for the rubric builder.

This module loads application configuration with the following rules:
- Primary source: `rubric_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_RUBRIC_CONFIG = Path("rubric_config.json")
DEFAULT_API_PREFIX = "/api/v1/peerreview"
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class DatabaseConfig(BaseModel):
    dsn: str

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class OrganizationConfig(BaseModel):
    org_id: str
    name: str
    short_name: Optional[str] = None

    @field_validator("org_id", "name")
    @classmethod
    def must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("organization.org_id and organization.name must be non-empty")
        return v.strip()

    @property
    def display_name(self) -> str:
        """Title forced onto the organization-default rubric."""
        return self.short_name or self.name


class PersistenceConfig(BaseModel):
    base_url: str
    timeout: float = Field(default=10.0, gt=0)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("persistence.base_url must be a non-empty string")
        return v.strip().rstrip("/")


class AppConfig(BaseModel):
    database: DatabaseConfig
    organization: OrganizationConfig
    persistence: PersistenceConfig


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) rubric_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_RUBRIC_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    dsn = _env("DATABASE_URL") or _read_config_file("database.url") or _base("database.dsn") or "sqlite+pysqlite:///:memory:"

    org_id = _env("ORG_ID") or _read_config_file("organization.id") or _base("organization.org_id", "libretexts")
    org_name = _env("ORG_NAME") or _read_config_file("organization.name") or _base("organization.name", "LibreTexts")
    org_short = _env("ORG_SHORT_NAME") or _read_config_file("organization.short_name") or _base("organization.short_name")

    base_url = (
        _env("RUBRIC_API_BASE_URL")
        or _read_config_file("persistence.base_url")
        or _base("persistence.base_url", f"http://localhost:8000{DEFAULT_API_PREFIX}")
    )
    timeout_text = _env("RUBRIC_API_TIMEOUT") or _read_config_file("persistence.timeout") or _base("persistence.timeout", "10")

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn),
            organization=OrganizationConfig(org_id=org_id, name=org_name, short_name=org_short),
            persistence=PersistenceConfig(base_url=base_url, timeout=float(str(timeout_text).strip())),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "OrganizationConfig",
    "PersistenceConfig",
    "DEFAULT_API_PREFIX",
    "load_config",
]
