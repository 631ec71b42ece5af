from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from datetime import datetime

BASE_DIR = Path(__file__).resolve().parent.parent

PROJECT_ENV_DEV = "dev"


class Settings(BaseSettings):
    PROJECT_NAME: str = "Aura Expense API"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    PROJECT_ENV: str = "prod"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = f"sqlite+aiosqlite:///{BASE_DIR}/data/aura.db"

    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # All stored timestamps are naive datetimes in this zone
    TIMEZONE: str = "Asia/Singapore"
    # Pins "now" for demos and tests
    FROZEN_NOW: Optional[datetime] = None

    SESSION_COOKIE_NAME: str = "aura_session"
    SESSION_TTL_DAYS: int = 30
    INBOUND_EMAIL_DOMAIN: str = "inbound.aura.local"

    RESEND_API_KEY: Optional[str] = None
    RESEND_API_URL: str = "https://api.resend.com"
    RESEND_WEBHOOK_SECRET: Optional[str] = None
    HTTP_TIMEOUT_SECONDS: float = 10.0

    OPENAI_API_KEY: Optional[str] = None
    AGENT_MODEL: str = "gpt-4o-mini"
    AGENT_TEMPERATURE: float = 0.0
    AGENT_TIMEOUT_SECONDS: float = 25.0
    AGENT_MAX_RETRIES: int = 2

    MEM0_API_KEY: Optional[str] = None
    MEM0_API_URL: str = "https://api.mem0.ai"
    MEMORY_TOP_K: int = 5

    # Web lookup for vendors the agent is unsure about; off without a key
    BRAVE_SEARCH_API_KEY: Optional[str] = None
    BRAVE_SEARCH_API_URL: str = "https://api.search.brave.com"
    SEARCH_RESULT_COUNT: int = 3

    BUDGET_WARNING_RATIO: float = 0.8
    BUDGET_OVER_RATIO: float = 1.0

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @property
    def is_dev(self) -> bool:
        return self.PROJECT_ENV == PROJECT_ENV_DEV


settings = Settings()
