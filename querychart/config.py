from __future__ import annotations

import functools
import os
import pathlib
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_CONFIG_PATH = "config.yaml"
CONFIG_ENV_VAR = "QUERYCHART_CONFIG"


class RetryConfig(BaseModel):
    attempts: int = Field(default=1, ge=1)
    backoff_seconds: float = Field(default=1.0, ge=0)


class AppConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"
    log_format: str = "console"
    static_dir: str = "public"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return v


class PostgresConfig(BaseModel):
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = ""
    database: str = "postgres"
    dsn: Optional[str] = None
    min_pool_size: int = Field(default=1, ge=1)
    max_pool_size: int = Field(default=10, ge=1)
    statement_timeout_ms: Optional[int] = Field(default=None, ge=100)

    @model_validator(mode="after")
    def validate_pool_sizes(self) -> "PostgresConfig":
        if self.max_pool_size < self.min_pool_size:
            raise ValueError("max_pool_size must be >= min_pool_size")
        return self


class LLMConfig(BaseModel):
    provider: str = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = Field(default=1024, ge=1)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    request_timeout_s: float = Field(default=60.0, gt=0)
    base_url: Optional[str] = None
    api_key_env: str = "ANTHROPIC_API_KEY"
    retry_config: RetryConfig = Field(default_factory=RetryConfig)


class CatalogConfig(BaseModel):
    namespace: str = "public"
    allowed_tables: List[str] = Field(default_factory=lambda: [
        "dim_date",
        "dim_customer",
        "dim_card",
        "dim_merchant",
        "fact_transactions",
    ])
    fact_table: str = "fact_transactions"

    @field_validator("allowed_tables")
    @classmethod
    def validate_allowed_tables(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("allowed_tables must not be empty")
        return v


class SQLGuardConfig(BaseModel):
    enforce_select_only: bool = False
    enforce_row_limit: bool = False
    row_limit: int = Field(default=100, ge=1)


class ObservabilityConfig(BaseModel):
    metrics_port: int = Field(default=0, ge=0)


class Settings(BaseModel):
    environment: str = "development"
    app: AppConfig = Field(default_factory=AppConfig)
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    sql_guard: SQLGuardConfig = Field(default_factory=SQLGuardConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


# env var -> (section, key)
_ENV_OVERRIDES = {
    "DB_HOST": ("postgres", "host"),
    "DB_PORT": ("postgres", "port"),
    "DB_USER": ("postgres", "user"),
    "DB_PASSWORD": ("postgres", "password"),
    "DB_NAME": ("postgres", "database"),
    "PORT": ("app", "port"),
}


def _load_yaml(path: pathlib.Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def apply_env_overrides(raw: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    merged = {key: dict(value) if isinstance(value, dict) else value for key, value in raw.items()}
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            merged.setdefault(section, {})[key] = value
    return merged


@functools.lru_cache(maxsize=1)
def load_settings(path: Optional[str] = None) -> Settings:
    explicit = path or os.environ.get(CONFIG_ENV_VAR)
    cfg_path = pathlib.Path(explicit or DEFAULT_CONFIG_PATH).resolve()
    raw: Dict[str, Any] = {}
    if cfg_path.exists():
        raw = _load_yaml(cfg_path)
    elif explicit:
        raise FileNotFoundError(f"Config file not found at {cfg_path}")
    return Settings(**apply_env_overrides(raw))


def get_settings() -> Settings:
    return load_settings()


def get_api_key(cfg: LLMConfig) -> str:
    return os.environ.get(cfg.api_key_env, "")
