"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``COURSE_RECOMMENDER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The CLI, pipeline stages and dataset sessions receive an ``AppConfig``
instance, never raw dicts or individual env var lookups scattered through
the codebase.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

VALID_AI_PROVIDERS = frozenset({"none", "openai", "gemini"})

# ── Sub-config models ─────────────────────────────────────────────────────────


class DataConfig(BaseModel):
    """Filesystem paths for the input dataset and generated outputs."""

    model_config = ConfigDict(frozen=True)

    dataset_path: str = "data/dataset.json"
    output_dir: str = "data/output"
    run_dir: str = "data/runs"


class EngineConfig(BaseModel):
    """Default generation-request parameters and similarity index tuning."""

    model_config = ConfigDict(frozen=True)

    max_recommendations: int = 5
    min_probability: float = 0.1
    max_trainees: int = 50
    chunk_size: int = 20
    include_explanations: bool = True
    inverted_index_threshold: int = 300   # catalogs above this use the token index

    @field_validator("min_probability")
    @classmethod
    def validate_min_probability(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"min_probability must be in [0.0, 1.0], got {v}.")
        return v

    @field_validator("max_recommendations", "max_trainees", "chunk_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Value must be >= 1, got {v}.")
        return v


class CacheConfig(BaseModel):
    """Result cache TTLs, in seconds, keyed by query operation name."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    default_ttl_seconds: float = 300.0
    ttl_by_operation: dict[str, float] = {
        "statistics": 300.0,
        "filtered_trainees": 300.0,
        "search_trainees": 120.0,
    }

    def ttl_for(self, operation: str) -> float:
        return self.ttl_by_operation.get(operation, self.default_ttl_seconds)


class SessionConfig(BaseModel):
    """Dataset session settings."""

    model_config = ConfigDict(frozen=True)

    reload_timeout_seconds: float = 30.0


class AIConfig(BaseModel):
    """Optional text-generation enrichment settings."""

    model_config = ConfigDict(frozen=True)

    provider: str = "none"
    model: str = "gpt-4o-mini"
    base_url: str = ""
    api_key_env: str = "COURSE_RECOMMENDER_AI_API_KEY"
    timeout_seconds: float = 30.0
    max_enriched_per_trainee: int = 3

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_AI_PROVIDERS:
            raise ValueError(
                f"AI provider must be one of {sorted(VALID_AI_PROVIDERS)}, got '{v}'."
            )
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/recommender.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration: the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env. Tests build it
    directly with ``AppConfig()`` to get the committed defaults.
    """

    model_config = ConfigDict(frozen=True)

    data: DataConfig = DataConfig()
    engine: EngineConfig = EngineConfig()
    cache: CacheConfig = CacheConfig()
    session: SessionConfig = SessionConfig()
    ai: AIConfig = AIConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

# env var → (section, key) in the raw TOML dict
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "COURSE_RECOMMENDER_DATASET": ("data", "dataset_path"),
    "COURSE_RECOMMENDER_LOG_LEVEL": ("logging", "level"),
    "COURSE_RECOMMENDER_AI_PROVIDER": ("ai", "provider"),
}
DEBUG_ENV_VAR = "COURSE_RECOMMENDER_DEBUG"
_TRUTHY = ("1", "true", "yes")


def project_root() -> Path:
    """Nearest ancestor of this package holding a ``pyproject.toml``."""
    here = Path(__file__).resolve().parent
    for candidate in (here, *here.parents):
        if (candidate / "pyproject.toml").exists():
            return candidate
    return here.parent


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Build the application config from TOML, ``.env`` and the environment.

    ``config_path`` defaults to ``<project_root>/config/default.toml``. A
    ``local.toml`` next to it, when present, is merged on top key by key.

    Raises:
        FileNotFoundError: If the config file does not exist.
        pydantic.ValidationError: If a merged value is out of range.
    """
    root = project_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    path = Path(config_path) if config_path is not None else root / "config" / "default.toml"
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Create config/default.toml or pass --config."
        )

    raw = _read_toml(path)
    local = path.with_name("local.toml")
    if local.exists():
        raw = _deep_merge(raw, _read_toml(local))

    return AppConfig.model_validate(_apply_env_overrides(raw))


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, val in override.items():
        current = merged.get(key)
        merged[key] = (
            _deep_merge(current, val)
            if isinstance(current, dict) and isinstance(val, dict)
            else val
        )
    return merged


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply ``ENV_OVERRIDES`` and ``COURSE_RECOMMENDER_DEBUG`` to ``raw``."""
    for var, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(var)
        if value:
            raw.setdefault(section, {})[key] = value

    debug = os.environ.get(DEBUG_ENV_VAR)
    if debug:
        raw["debug"] = debug.strip().lower() in _TRUTHY
    return raw
