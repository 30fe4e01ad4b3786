from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # LLM (OpenAI-compatible chat completions)
    OPENAI_API_KEY: str = ""
    LLM_BASE_URL: Optional[str] = None
    LLM_MODEL: str = "gpt-4o"
    LLM_TEMPERATURE: float = 0.1
    LLM_MAX_TOKENS: int = 16384

    # Conversion
    ALLOWED_EXTENSIONS: list[str] = ["docx"]
    MAX_HTML_CHARS: int = 15000
    CONVERT_MAX_ATTEMPTS: int = 3
    CONVERT_RETRY_BACKOFF_SECONDS: float = 0.0
    CONVERT_MAX_DURATION_SECONDS: float = 60.0
    CLEANUP_ASSETS_ON_FAILURE: bool = False

    # Storage
    STORAGE_PROVIDER: str = "local"
    UPLOAD_DIR: str = "./uploads"
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    UPLOAD_FOLDER_PREFIX: str = "lms"
    MAX_MEDIA_SIZE_BYTES: int = 100 * 1024 * 1024
    S3_BUCKET: str = ""
    AWS_REGION: str = "us-east-1"
    S3_PUBLIC_URL_BASE: Optional[str] = None

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./lms_convert.db"

    # Identity fallback (authentication happens upstream)
    DEFAULT_OWNER_ID: str = "local-user"
    DEFAULT_ORG_ID: str = "local-org"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # App
    DEBUG: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
