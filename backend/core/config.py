# backend/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional, List
import json


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore unknown keys instead of crashing
        populate_by_name=True,
    )

    # ---- Auth / JWT
    secret_key: str = Field("dev-secret-change-me", alias="JWT_SECRET")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # ---- DB (accept either)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    db_url_compat: Optional[str] = Field(default=None, alias="DB_URL")

    # ---- CORS raw (we parse it below)
    cors_origins_raw: str = Field(
        "http://localhost:3000,http://127.0.0.1:3000",
        alias="CORS_ORIGINS",
    )

    # ---- Redis / Celery
    redis_url: Optional[str] = Field("redis://127.0.0.1:6379/0", alias="REDIS_URL")
    celery_broker_url: Optional[str] = Field(None, alias="CELERY_BROKER_URL")
    celery_result_backend: Optional[str] = Field(None, alias="CELERY_RESULT_BACKEND")
    celery_task_always_eager: bool = Field(False, alias="CELERY_TASK_ALWAYS_EAGER")

    # ---- Extractor (Groq, OpenAI-compatible chat completions)
    groq_api_key: Optional[str] = Field(None, alias="GROQ_API_KEY")
    groq_model: str = Field("llama-3.3-70b-versatile", alias="GROQ_MODEL")
    groq_base_url: str = Field("https://api.groq.com/openai/v1", alias="GROQ_BASE_URL")
    groq_timeout_seconds: int = Field(30, alias="GROQ_TIMEOUT_SECONDS")

    # Content longer than this is cut before it reaches the model (lossy).
    extraction_max_chars: int = Field(10000, alias="EXTRACTION_MAX_CHARS")

    # ---- Background extraction pool
    extraction_worker_concurrency: int = Field(4, alias="EXTRACTION_WORKER_CONCURRENCY")
    extraction_task_time_limit: int = Field(300, alias="EXTRACTION_TASK_TIME_LIMIT")
    extraction_stale_after_seconds: int = Field(900, alias="EXTRACTION_STALE_AFTER_SECONDS")
    extraction_max_attempts: int = Field(3, alias="EXTRACTION_MAX_ATTEMPTS")

    # ---- Content fetcher
    fetch_timeout_seconds: int = Field(15, alias="FETCH_TIMEOUT_SECONDS")
    fetch_user_agent: str = Field(
        "Mozilla/5.0 (compatible; InterviewLedgerBot/1.0)", alias="FETCH_USER_AGENT"
    )
    leetcode_csrf_token: str = Field("", alias="LEETCODE_CSRF_TOKEN")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # ---- Helpers / parsed properties
    @property
    def cors_origins(self) -> List[str]:
        s = (self.cors_origins_raw or "").strip()
        if not s:
            return ["http://localhost:3000", "http://127.0.0.1:3000"]
        if s.startswith("["):
            try:
                arr = json.loads(s)
                if isinstance(arr, list):
                    return [str(x).strip() for x in arr if str(x).strip()]
            except ValueError:
                pass
        return [x.strip() for x in s.split(",") if x.strip()]

    @property
    def database_url_effective(self) -> str:
        return self.database_url or self.db_url_compat or "sqlite:///./interview_ledger.sqlite"

    @property
    def broker_url(self) -> str:
        return self.celery_broker_url or self.redis_url or "redis://127.0.0.1:6379/0"

    @property
    def result_backend(self) -> str:
        return self.celery_result_backend or self.broker_url

    # ---- Back-compat uppercase properties (used elsewhere in the code)
    @property
    def DATABASE_URL(self) -> str:
        return self.database_url_effective

    @property
    def SECRET_KEY(self) -> str:
        return self.secret_key

    @property
    def JWT_ALGORITHM(self) -> str:
        return self.jwt_algorithm

    @property
    def ACCESS_TOKEN_EXPIRE_MINUTES(self) -> int:
        return int(self.access_token_expire_minutes)


settings = Settings()
