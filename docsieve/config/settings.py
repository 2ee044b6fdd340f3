from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docsieve"
    db_username: str = "docsieve"
    db_password: str = "secret"

    max_job_attempts: int = 3
    job_poll_interval_seconds: int = 5
    max_concurrent_documents: int = Field(default=4, ge=1)

    files_root: str = "/app/files"

    pdf_engine: str = "pymupdf"
    pdf_render_dpi: int = 150

    extraction_provider: str = "openai"
    extraction_api_key: str = ""
    extraction_base_url: str = ""
    extraction_timeout_seconds: int = 60

    reasoning_model_name: str = "o4-mini"
    structured_model_name: str = "gpt-4o-mini"
    vision_model_name: str = "gpt-4o"
    classifier_model_name: str = "gpt-4o-mini"
    max_input_chars: int = 120_000

    retry_max_attempts: int = Field(default=3, ge=1)
    retry_backoff_seconds: list[float] = [1.0, 2.0, 4.0]
    attempt_timeout_seconds: float = Field(default=30.0, gt=0)
    page_retry_max_attempts: int = Field(default=3, ge=1)
    page_attempt_timeout_seconds: float = Field(default=30.0, gt=0)

    classifier_timeout_seconds: float = 15.0
    classifier_fast_track_max_bytes: int = 2 * 1024 * 1024

    ocr_batch_size: int = Field(default=10, ge=1)
    ocr_concurrency: int | None = None
    ocr_cache_size: int = 100

    chunking_threshold_chars: int = 15_000
    chunk_size_chars: int = 20_000
    chunk_overlap_chars: int = 500
    retrieval_top_k: int = Field(default=5, ge=1)
    retrieval_token_budget: int = 30_000
    retrieval_position_weight: float = Field(default=0.2, ge=0.0, le=1.0)

    notifier_backend: str = "log"
    notifier_channel: str = "document_progress"
    notifier_timeout_seconds: float = 2.0

    default_domain: str = "general"
