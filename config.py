from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache

class Settings(BaseSettings):
    # Database settings
    DATABASE_URL: str = "sqlite:///./cards.db"

    # Vision model settings
    ANTHROPIC_API_KEY: Optional[str] = None
    VISION_MODEL: str = "claude-sonnet-4-5"
    VISION_MAX_TOKENS: int = 1024

    # Upload limits
    IMPORT_MAX_BYTES: int = 10 * 1024 * 1024
    IMAGE_MAX_BYTES: int = 5 * 1024 * 1024

    # Price research
    PRICE_SAMPLE_LIMIT: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"

    # CORS settings
    CORS_ORIGINS: list[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings() -> Settings:
    return Settings()
