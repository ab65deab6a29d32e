"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    anthropic_api_key: str = ""
    sketchgraph_env: str = "development"
    sketchgraph_log_level: str = "info"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Model routing
    model_cheap: str = "claude-haiku-4-5-20251001"
    model_mid: str = "claude-sonnet-4-5-20250929"

    # Semantic enhancement is only worth the API cost inside this window
    enhancement_min_components: int = 3
    enhancement_max_components: int = 30
    enhancement_timeout_s: float = 10.0
    enhancement_batch_size: int = 12

    # Extraction worker
    worker_max_concurrent: int = 8
    worker_timeout_s: float = 30.0
    worker_max_threads: int = 4

    # Widget storage
    widget_snapshot_history: int = 50

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
