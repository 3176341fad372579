# medicare/config.py
import os
from pydantic_settings import BaseSettings
from pydantic import Field
from pydantic_settings import SettingsConfigDict
from typing import Optional, List
from functools import lru_cache
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore", populate_by_name=True)

    # Application Settings
    APP_NAME: str = "Medicare API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = int(os.environ.get("PORT", 8000))

    # Database Settings
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "sqlite:///./medicare.db")

    # Security Settings
    SECRET_KEY: str = Field(default="change-me-in-prod", alias="JWT_SECRET_KEY")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 30

    # CORS Settings
    ALLOWED_ORIGINS: str = os.environ.get("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173")

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 100
    RATE_LIMIT_WINDOW_SEC: int = 60
    REDIS_URL: Optional[str] = os.environ.get("REDIS_URL", None)

    # Middleware settings
    GZIP_MIN_SIZE: int = 500

    # Reminder sweep
    REMINDERS_ENABLED: bool = True

    # Booking and chat rules
    SLOT_START_HOUR: int = 9
    SLOT_END_HOUR: int = 17
    REASON_MIN_LENGTH: int = 10
    NOTES_MAX_LENGTH: int = 500
    MESSAGE_MAX_LENGTH: int = 1000

    # Helper methods for list envs
    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

    @property
    def secret_key_configured(self) -> bool:
        return bool(self.SECRET_KEY and self.SECRET_KEY != "change-me-in-prod")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings: Settings = get_settings()
