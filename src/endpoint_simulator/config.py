import os
import random
from dataclasses import dataclass
from functools import lru_cache

import redis.asyncio as redis
from dotenv import load_dotenv

load_dotenv()


def _optional_float(name: str) -> float | None:
    value = os.getenv(name)
    return float(value) if value else None


def _optional_int(name: str) -> int | None:
    value = os.getenv(name)
    return int(value) if value else None


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables.

    Values are read once at startup and passed explicitly into each
    component; nothing below the API layer calls ``get_settings()``.
    """

    # Source of canned answers
    data_source: str = os.getenv("DATA_SOURCE", "file")
    response_dir: str = os.getenv("RESPONSE_DIR", "responses")

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")
    redis_timeout: float = float(os.getenv("REDIS_TIMEOUT", "0.5"))

    # Cache
    cache_prefix: str = os.getenv("CACHE_PREFIX", "simulator")
    cache_ttl: int = int(os.getenv("CACHE_TTL", "300"))
    file_list_ttl: int = int(os.getenv("FILE_LIST_TTL", "3600"))

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///responses.db")
    database_username: str | None = os.getenv("DATABASE_USERNAME")
    database_password: str | None = os.getenv("DATABASE_PASSWORD")
    database_table: str = os.getenv("DATABASE_TABLE", "response_simulator")

    # Admission and delivery
    semaphore_limit: int = int(os.getenv("SEMAPHORE_LIMIT", "1000"))
    admission_timeout: float | None = _optional_float("ADMISSION_TIMEOUT")
    channel_capacity: int = int(os.getenv("CHANNEL_CAPACITY", "10000"))
    workers: int = int(os.getenv("WORKERS", "1"))

    # Streaming
    stream_delay_ms: float = float(os.getenv("STREAM_DELAY_MS", "0"))
    chunk_granularity: str = os.getenv("CHUNK_GRANULARITY", "word")
    chunk_size: int = int(os.getenv("CHUNK_SIZE", "1"))
    response_style: str = os.getenv("RESPONSE_STYLE", "answer")
    model_name: str = os.getenv("MODEL_NAME", "gpt-4o-2024-08-06")
    system_fingerprint: str = os.getenv("SYSTEM_FINGERPRINT", "fp_d28bcae782")
    random_seed: int | None = _optional_int("RANDOM_SEED")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "info")
    log_format: str = os.getenv("LOG_FORMAT", "console")
    tracking_enabled: bool = os.getenv("TRACKING_ENABLED", "false").lower() == "true"

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "4545"))

    @property
    def stream_delay(self) -> float:
        """Inter-chunk pacing delay in seconds."""
        return self.stream_delay_ms / 1000.0

    @property
    def file_content_ttl(self) -> int:
        """TTL for individual document bodies."""
        return self.cache_ttl

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.data_source not in ("file", "database"):
            raise ValueError(f"DATA_SOURCE must be 'file' or 'database', got {self.data_source!r}")

        if self.cache_ttl <= 0:
            raise ValueError("CACHE_TTL must be a positive number of seconds")

        if self.file_list_ttl < self.cache_ttl:
            raise ValueError("FILE_LIST_TTL must be greater than or equal to CACHE_TTL")

        if self.semaphore_limit < 1:
            raise ValueError("SEMAPHORE_LIMIT must be at least 1")

        if self.admission_timeout is not None and self.admission_timeout <= 0:
            raise ValueError("ADMISSION_TIMEOUT must be positive when set")

        if self.channel_capacity < 1:
            raise ValueError("CHANNEL_CAPACITY must be at least 1")

        if self.workers < 1:
            raise ValueError("WORKERS must be at least 1")

        if self.stream_delay_ms < 0:
            raise ValueError("STREAM_DELAY_MS must not be negative")

        if self.chunk_granularity not in ("word", "character"):
            raise ValueError(
                f"CHUNK_GRANULARITY must be 'word' or 'character', got {self.chunk_granularity!r}"
            )

        if self.chunk_size < 1:
            raise ValueError("CHUNK_SIZE must be at least 1")

        if self.response_style not in ("answer", "qa"):
            raise ValueError(f"RESPONSE_STYLE must be 'answer' or 'qa', got {self.response_style!r}")

        if self.log_format not in ("console", "json"):
            raise ValueError(f"LOG_FORMAT must be 'console' or 'json', got {self.log_format!r}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_redis_client(settings: Settings) -> redis.Redis:
    """Create an asyncio Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
        socket_timeout=settings.redis_timeout,
        socket_connect_timeout=settings.redis_timeout,
    )


def get_random(settings: Settings) -> random.Random:
    """Create the random source used for response selection."""
    return random.Random(settings.random_seed)
