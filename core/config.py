from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Backend
    API_BASE_URL: str = Field("http://localhost:5006", description="Base URL of the exam REST backend")
    API_TOKEN: str = Field("", description="Value sent in the Authorization header, empty for anonymous")
    REQUEST_TIMEOUT_SECONDS: float = 10.0

    # Redis (result cache)
    REDIS_URL: str = Field("redis://localhost:6379/0")
    RESULT_CACHE_TTL_SECONDS: int = 604800  # 7 days

    # Exam Settings
    TICK_INTERVAL_SECONDS: float = 1.0
    TIME_WARNING_SECONDS: int = 300  # 5 minutes
    DEFAULT_DURATION_MINUTES: int = 60
    SHUFFLE_OPTIONS: bool = False

    # Environment
    LANGUAGE: str = "EN"  # EN, VI
    ENV: str = "production"  # development, staging, production
    DEBUG: bool = False

settings = Settings()
