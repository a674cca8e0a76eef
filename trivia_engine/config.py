"""
Configuration management using Pydantic Settings

Precedence for every value: explicit keyword > environment > .env file > default.
"""
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from typing import List, Optional


DEFAULT_TRIVIA_MODEL = "google/gemini-2.0-flash-001"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str = "sqlite:///./trivia.db"

    # Redis (unset or unreachable -> in-process key-value store)
    REDIS_URL: Optional[str] = None

    # Generation backend
    CHAT_PROVIDER: str = Field("openrouter", pattern="^(openrouter|gemini)$")
    OPENROUTER_API_KEY: Optional[str] = None
    OPENROUTER_URL: str = "https://openrouter.ai/api/v1/chat/completions"
    GEMINI_API_KEY: Optional[str] = None
    TRIVIA_MODEL: str = Field(
        DEFAULT_TRIVIA_MODEL,
        validation_alias=AliasChoices("TRIVIA_MODEL", "OPENROUTER_MODEL"),
    )
    BANK_MODELS: List[str] = [
        "anthropic/claude-3-haiku",
        "openai/gpt-4o-mini",
        "openrouter/auto",
    ]

    # Remote library mirror
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None

    # Application
    APP_NAME: str = "Trivia Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Generation tuning
    GENERATION_MIN_INTERVAL_SECONDS: float = 1.0
    GENERATION_MAX_ATTEMPTS: int = 3
    GENERATION_MAX_CONTENT_RETRIES: int = 2
    TRIVIA_CACHE_TTL: int = 7 * 24 * 3600  # 1 week

    # Question bank
    BANK_REFILL_SIZE: int = 6
    BANK_FAIL_THRESHOLD: int = 3
    BANK_COOLDOWN_SECONDS: float = 60.0
    HTTP_RETRY_ATTEMPTS: int = 3
    HTTP_RETRY_BASE_DELAY_SECONDS: float = 0.5

    # Batch generation pacing
    FILL_DELAY_SECONDS: float = 1.2
    PACK_DELAY_SECONDS: float = 1.1

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True
        populate_by_name = True
        extra = "ignore"

    @property
    def chat_api_key(self) -> Optional[str]:
        """Credential for the selected chat provider, stripped; None when blank"""
        key = self.GEMINI_API_KEY if self.CHAT_PROVIDER == "gemini" else self.OPENROUTER_API_KEY
        if key and key.strip():
            return key.strip()
        return None

    @property
    def mirror_enabled(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)


def get_settings(**overrides) -> Settings:
    """Build settings for the composition root; keywords win over the environment"""
    return Settings(**overrides)
