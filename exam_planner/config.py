"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Type-safe configuration sourced from .env / environment."""

    # LLM endpoint (OpenAI-compatible chat completions)
    llm_base_url: str = "https://api.deepseek.com"
    llm_api_key: str = ""
    llm_model: str = "deepseek-chat"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 8000
    llm_timeout_seconds: float = 120.0

    # Transport retries
    llm_max_attempts: int = 3
    llm_backoff_base_seconds: float = 1.0
    llm_backoff_max_seconds: float = 20.0
    llm_backoff_jitter: float = 0.25

    # Pipeline
    max_regenerations: int = 1
    max_daily_plan_days: int = 30
    fallback_to_local_plan: bool = False
    generation_workers: int = 2

    # Client-visible progress estimate
    estimated_generation_ms: int = 3 * 60 * 1000
    progress_tick_seconds: float = 5.0
    progress_tick_cap: int = 90

    # Storage
    debug_dir: str = "./preparation-plan-tips"
    state_dir: str = "./preparation-plan-tips/tasks"
    snapshot_retention_seconds: int = 24 * 60 * 60
    snapshot_backend: str = "file"  # file | memory
    plan_backend: str = "memory"  # memory | psycopg2

    # PostgreSQL
    pg_host: str = "localhost"
    pg_port: int = 5432
    pg_database: str = "exam_planner"
    pg_user: str = "postgres"
    pg_password: str = "postgres"
    pg_pool_min: int = 1
    pg_pool_max: int = 5
    pg_connect_timeout: int = 5

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
