from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "exam_parser"
    db_username: str = "exam_parser"
    db_password: str = "secret"

    max_job_attempts: int = 3
    job_poll_interval_seconds: int = 5
    stale_job_after_seconds: int = 900

    files_root: Path = Path("/app/storage/app")
    public_files_root: Path = Path("/app/storage/app/public")

    pdf_engine: str = "pdfplumber"

    prompt_variant: str = "questions"
    prompt_max_chars: int = 25000

    llm_provider: str = "gemini"
    llm_endpoint: str = ""
    llm_api_key: str = ""
    llm_model_name: str = "gemini-2.0-flash"
    llm_timeout_seconds: int = 180
