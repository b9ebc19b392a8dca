# Filename: thecrew/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from pathlib import Path
from typing import Literal, Optional


class Settings(BaseSettings):
    # Core
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    app_name: str = "thecrew"
    app_version: str = "0.1.0"

    secret_key: str = Field(..., description="JWT secret key - required")
    access_token_expire_minutes: int = 60 * 24 * 7
    jwt_algorithm: str = "HS256"
    cookie_secure: bool = False
    min_password_length: int = 6

    database_url: str = Field(..., description="Database connection string")

    # object storage
    storage_path: Path = Path("./data")
    public_base_url: str = "http://localhost:8000"
    upload_url_expire_seconds: int = 3600
    max_upload_size_mb: int = 500

    # language model + summary service
    llm_api_url: str = "https://generativelanguage.googleapis.com/v1beta"
    llm_api_key: Optional[str] = None
    llm_model: str = "gemini-2.0-flash"
    llm_timeout_seconds: float = 60.0
    summary_api_url: Optional[str] = None
    summary_max_retries: int = 3
    summary_retry_backoff_seconds: float = 2.0

    cors_allow_origins: str = "*"
    cors_allow_credentials: bool = True
    cors_allow_methods: str = "*"
    cors_allow_headers: str = "*"

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False

    model_config = SettingsConfigDict(
        env_prefix="THECREW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
