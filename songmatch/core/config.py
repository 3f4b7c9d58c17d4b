"""
Application configuration management using Pydantic Settings.

This module keeps every tunable of the matching core in one place:
- Environment-based configuration separation
- Type-safe configuration with validation
- Default values with environment variable overrides
- Scoring weights and window constants exposed as configuration
"""

from functools import lru_cache
from typing import Optional, List, Dict, Any

from pydantic import validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    The scoring weights are product tuning values, not invariants of the
    algorithm, which is why they live here instead of in the scorer.
    """

    # Application
    APP_NAME: str = "SongMatch"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Database
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "songmatch"
    DATABASE_URL: Optional[str] = None
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20
    DATABASE_POOL_PRE_PING: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    # API Configuration
    API_V1_STR: str = "/api/v1"
    CORS_ORIGINS: List[str] = ["*"]

    # Daily rollover window
    ROLLOVER_HOUR: int = 9
    ROLLOVER_TIMEZONE: str = "America/Los_Angeles"

    # Discovery feed
    FEED_RESULT_CAP: int = 15
    FEED_FETCH_CAP: int = 100
    PREFERENCE_SAMPLE_SIZE: int = 20

    # Compatibility scoring
    WEIGHT_QUESTIONNAIRE: float = 0.40
    WEIGHT_AUDIO: float = 0.30
    WEIGHT_MOOD: float = 0.20
    WEIGHT_ENGAGEMENT: float = 0.10
    QUESTIONNAIRE_FIELD_WEIGHTS: Dict[str, float] = {
        "weekend_soundtrack": 25.0,
        "mood_genre": 25.0,
        "discovery_frequency": 20.0,
        "preferred_mood_tag": 20.0,
        "favorite_song_memory": 10.0,
    }
    AUDIO_FEATURE_WEIGHTS: Dict[str, float] = {
        "valence": 0.25,
        "energy": 0.25,
        "danceability": 0.20,
        "acousticness": 0.15,
        "tempo": 0.15,
    }

    # Third-party access tokens are treated as expired this many seconds early
    TOKEN_EXPIRY_SKEW_SECONDS: int = 60

    @validator("DATABASE_URL", pre=True, always=True)
    def build_database_url(cls, v: Optional[str], values: dict) -> Any:
        """
        Build database URL from components if not provided directly.
        This pattern allows both direct URL and component-based configuration.
        """
        if isinstance(v, str):
            return v

        user = values.get("POSTGRES_USER", "postgres")
        password = values.get("POSTGRES_PASSWORD", "postgres")
        host = values.get("POSTGRES_HOST", "localhost")
        port = values.get("POSTGRES_PORT", 5432)
        db = values.get("POSTGRES_DB", "songmatch")

        return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"

    @validator("ROLLOVER_HOUR")
    def validate_rollover_hour(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError("ROLLOVER_HOUR must be between 0 and 23")
        return v

    @validator("WEIGHT_ENGAGEMENT", always=True)
    def validate_weights_sum(cls, v: float, values: dict) -> float:
        """The four top-level scoring weights must add up to 1.0."""
        total = (
            values.get("WEIGHT_QUESTIONNAIRE", 0.0)
            + values.get("WEIGHT_AUDIO", 0.0)
            + values.get("WEIGHT_MOOD", 0.0)
            + v
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.4f}")
        return v

    class Config:
        # Real environment variables take precedence over .env, class defaults are last
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Singleton per process: N workers means N settings instances.
    """
    return Settings()
