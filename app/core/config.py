from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # MongoDB Configuration
    MONGO_URI: str
    MONGO_DB_NAME: str = "zedzen"

    # OpenAI-compatible provider Configuration
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None

    # Model Configuration
    DEFAULT_MODEL: str = "gpt-4"
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 250
    LLM_TIMEOUT_SECONDS: float = 30.0

    # Auth Configuration
    JWT_SECRET: str = "your-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_DAYS: int = 7
    BCRYPT_ROUNDS: int = 12

    # Usage Configuration
    USAGE_TIMEZONE: str = "UTC"  # IANA name, decides where the daily counters roll over

    # API Configuration
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "ZedZen"

    # Frontend Configuration
    FRONTEND_URL: str = "http://localhost:3000"
    DASHBOARD_URL: Optional[str] = None
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Stripe Configuration
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_BASIC_PRICE_ID: Optional[str] = None
    STRIPE_PREMIUM_PRICE_ID: Optional[str] = None
    STRIPE_ENTERPRISE_PRICE_ID: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra env variables

    @property
    def dashboard_url(self) -> str:
        return self.DASHBOARD_URL or self.FRONTEND_URL


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
