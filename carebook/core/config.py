# carebook/core/config.py
import os
from pydantic_settings import BaseSettings
from pydantic import Field
from pydantic_settings import SettingsConfigDict
from typing import List
from functools import lru_cache

DEFAULT_TIME_SLOTS = [
    "09:00 AM", "09:30 AM", "10:00 AM", "10:30 AM", "11:00 AM", "11:30 AM",
    "02:00 PM", "02:30 PM", "03:00 PM", "03:30 PM", "04:00 PM", "04:30 PM",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra='forbid')

    # Application Settings
    APP_NAME: str = "CareBook API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = int(os.environ.get("PORT", 8000))

    # Document store: "http" (json-server style API), "sql" or "memory"
    STORE_BACKEND: str = "http"
    API_BASE_URL: str = "http://localhost:3001"
    HTTP_TIMEOUT_SECONDS: float = 10.0
    DATABASE_URL: str = "sqlite:///./carebook.db"

    # Security Settings
    SECRET_KEY: str = Field(default="change-me-in-prod", alias="JWT_SECRET_KEY")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # CORS Settings
    ALLOWED_ORIGINS: str = "*"

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Scheduling
    PATIENT_BOOKING_WINDOW_DAYS: int = 14
    DOCTOR_BOOKING_WINDOW_DAYS: int = 6
    DOCTOR_BOOKING_STATUS: str = "pending"
    TIME_SLOTS: List[str] = DEFAULT_TIME_SLOTS
    ENFORCE_SLOT_CONFLICTS: bool = True
    MAX_TOKEN_ATTEMPTS: int = 5

    # Prescriptions on appointments that are not completed yet are rejected
    # when set, otherwise accepted with a warning
    PRESCRIPTION_REQUIRES_COMPLETED: bool = False

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


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings: Settings = get_settings()
