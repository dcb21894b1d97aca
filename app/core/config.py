"""
Configuration settings for the application.
"""
import os
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings with default values.
    Values can be overridden by environment variables.
    """
    # API settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Tea Refill Dispatch"

    # CORS settings
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # MongoDB settings
    MONGODB_URL: str = os.environ.get("MONGODB_URL", "mongodb://localhost:27017")
    MONGODB_DB: str = os.environ.get("MONGODB_DB", "tea_refill_dispatch")

    # Logging settings
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    # Dispatch policy
    TIMEZONE: str = "Asia/Kolkata"
    CANISTER_THRESHOLD: int = 20
    BLOCK_WINDOW_MINUTES: int = 60
    CLOSING_WINDOW_MINUTES: int = 120
    REASSIGN_RADII_KM: List[float] = [2, 3, 4, 5]
    AGENT_SEARCH_RADII_KM: List[float] = [3, 5]

    # Push gateway
    PUSH_GATEWAY_URL: Optional[str] = None
    PUSH_GATEWAY_KEY: Optional[str] = None
    PUSH_TIMEOUT_SECONDS: float = 5.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Create settings instance
settings = Settings()


# Print configuration summary at startup
def print_config_info():
    """Print configuration information at startup."""
    print(f"API Version: {settings.API_V1_STR}")
    print(f"Project Name: {settings.PROJECT_NAME}")
    print(f"MongoDB URL: {settings.MONGODB_URL}")
    print(f"MongoDB Database: {settings.MONGODB_DB}")
    print(f"Timezone: {settings.TIMEZONE}")
    print(f"Push Gateway: {settings.PUSH_GATEWAY_URL or 'disabled'}")
    print(f"Log Level: {settings.LOG_LEVEL}")
