import logging
from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Service
    service_name: str = "crop-health"
    server_port: int = 8086
    model_version: str = "4.2.0"

    # Record store
    database_url: str = "sqlite:///./agroguard.db"

    # Cloud vision (Gemini REST)
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_api_url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    remote_timeout_seconds: float = 30.0
    remote_temperature: float = 0.1

    # Local inference
    feature_grid_size: int = 128

    # Offline sync
    offline_mode: bool = False
    max_sync_attempts: int = 3
    sync_cooldown_seconds: float = 3.0
    auto_sync_enabled: bool = True
    auto_sync_interval_minutes: int = 15

    @field_validator(
        "server_port", "feature_grid_size", "max_sync_attempts", "auto_sync_interval_minutes",
        mode="before",
    )
    @classmethod
    def empty_str_to_default(cls, v: Any, info: Any) -> Any:
        if isinstance(v, str) and v.strip() == "":
            defaults = {
                "server_port": 8086,
                "feature_grid_size": 128,
                "max_sync_attempts": 3,
                "auto_sync_interval_minutes": 15,
            }
            return defaults.get(info.field_name, 0)
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def has_remote_credentials(self) -> bool:
        return bool(self.gemini_api_key.strip())

    @property
    def generate_content_url(self) -> str:
        return f"{self.gemini_api_url.rstrip('/')}/{self.gemini_model}:generateContent"


@lru_cache
def get_settings() -> Settings:
    return Settings()
