# pyright: reportCallIssue=false, reportConstantRedefinition=false
from typing import Self
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator
import os
import logging

from .logging_utils import install_log_sanitizer

install_log_sanitizer()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database - managed Postgres in production, SQLite file for local runs
    DATABASE_URL: str = Field(
        default="sqlite:///./casebrain.db",
        description="SQLAlchemy connection URL",
        min_length=1,
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Convert postgresql:// to postgresql+psycopg2:// for SQLAlchemy"""
        if v and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+psycopg2://", 1)
        return v

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_credentials(cls, v: str) -> str:
        """Block the docker-compose default credentials in production."""
        env = os.getenv("ENV", "development").lower()
        weak_db_patterns = [
            "casebrain:casebrain@",
            "postgres:postgres@",
            "admin:admin@",
        ]
        if any(pattern in v for pattern in weak_db_patterns):
            if env == "production":
                raise ValueError("DATABASE_URL uses default credentials in production")
            logging.warning(
                "DATABASE_URL uses default credentials - override via environment variable"
            )
        return v

    # Corpus aggregation
    CORPUS_MIN_CHARS: int = 100  # Below this the scorers report NONE
    CORPUS_DOCUMENT_LIMIT: int = 20
    CORPUS_BUNDLE_CHUNK_LIMIT: int = 50
    CORPUS_TIMELINE_EVENT_LIMIT: int = 100
    CORPUS_SUMMARY_MIN_CHARS: int = 50  # AI summaries shorter than this are skipped
    CORPUS_CHUNK_MIN_CHARS: int = 50  # Bundle chunk text or summary at or below this is skipped

    # Scoring
    EXPERT_MIN_INDICATORS: int = 3
    SCORER_MAX_WORKERS: int = 4

    # Correspondence timeline
    LONG_GAP_THRESHOLD_DAYS: int = 14
    OPPONENT_REPLY_MAX_DAYS: int = 365
    OPPONENT_CONCERN_MULTIPLIER: float = 1.5
    OPPONENT_SLOW_AVERAGE_DAYS: int = 28

    # Version store
    VERSION_CREATE_MAX_RETRIES: int = 5

    @model_validator(mode="after")
    def check_thresholds(self) -> Self:
        if self.CORPUS_MIN_CHARS < 0:
            raise ValueError("CORPUS_MIN_CHARS must not be negative")
        if self.EXPERT_MIN_INDICATORS < 1:
            raise ValueError("EXPERT_MIN_INDICATORS must be at least 1")
        if self.VERSION_CREATE_MAX_RETRIES < 1:
            raise ValueError("VERSION_CREATE_MAX_RETRIES must be at least 1")
        if self.OPPONENT_CONCERN_MULTIPLIER <= 1.0:
            raise ValueError("OPPONENT_CONCERN_MULTIPLIER must be greater than 1.0")
        return self


settings = Settings()
