import os
from pydantic import BaseModel
from functools import lru_cache
from dotenv import load_dotenv
load_dotenv()


def _csv(value: str) -> list[str]:
    return [item.strip().lower() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    APP_NAME: str = os.getenv("APP_NAME", "Smart CV Filter")
    ENV: str = os.getenv("ENV", "development")
    STORAGE_DIR: str = os.getenv("STORAGE_DIR", "storage/cvs")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    SCREENING_LOG_FILE: str | None = os.getenv("SCREENING_LOG_FILE") or None
    SQLITE_PATH: str = os.getenv("SQLITE_PATH", "app.sqlite3")
    DATABASE_URL: str = os.getenv("DATABASE_URL") or f"sqlite:///{os.getenv('SQLITE_PATH', 'app.sqlite3')}"

    OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY") or None
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    OPENROUTER_API_KEY: str | None = os.getenv("OPENROUTER_API_KEY") or None
    OPENROUTER_MODEL: str = os.getenv("OPENROUTER_MODEL", "openai/gpt-4o-mini")

    # upload validation
    MAX_CV_FILE_SIZE: int = int(os.getenv("MAX_CV_FILE_SIZE", str(10 * 1024 * 1024)))
    ALLOWED_CV_EXTENSIONS: list[str] = _csv(
        os.getenv("ALLOWED_CV_EXTENSIONS", ".pdf,.doc,.docx,.txt"))
    ALLOWED_CV_CONTENT_TYPES: list[str] = _csv(os.getenv(
        "ALLOWED_CV_CONTENT_TYPES",
        "application/pdf,application/msword,"
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document,"
        "text/plain",
    ))

    # screening
    SCORING_TIMEOUT_SECONDS: float = float(os.getenv("SCORING_TIMEOUT_SECONDS", "60"))
    SCORING_MAX_CV_CHARS: int = int(os.getenv("SCORING_MAX_CV_CHARS", "12000"))
    SCREENING_MAX_CONCURRENCY: int = int(os.getenv("SCREENING_MAX_CONCURRENCY", "4"))
    SCREENING_STALE_AFTER_MINUTES: int = int(os.getenv("SCREENING_STALE_AFTER_MINUTES", "30"))
    # 0 disables the periodic sweep; startup recovery always runs
    SCREENING_STALE_SWEEP_SECONDS: float = float(os.getenv("SCREENING_STALE_SWEEP_SECONDS", "300"))

    # paging
    DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
    MIN_PAGE_SIZE: int = int(os.getenv("MIN_PAGE_SIZE", "1"))
    MAX_PAGE_SIZE: int = int(os.getenv("MAX_PAGE_SIZE", "100"))


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
