"""
Application Configuration - Environment Variables & Settings
"""
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field
from functools import lru_cache


class Settings(BaseSettings):
    """
    Booking engine settings loaded from environment variables
    """
    # Application
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # Remote booking API - empty base URL selects the in-memory mock backend
    BOOKING_API_BASE_URL: str = Field(default="")
    BOOKING_API_TIMEOUT: float = Field(default=30.0)  # seconds
    BOOKING_API_MAX_RETRIES: int = Field(default=3)

    # Display
    CURRENCY: str = Field(default="IDR")

    # Prefilled into freshly generated passenger slots
    DEFAULT_NATIONALITY: str = Field(default="Indonesia")

    @computed_field
    @property
    def USE_MOCK_BACKEND(self) -> bool:
        """Serve canned upstream payloads when no API is configured"""
        return not self.BOOKING_API_BASE_URL.strip()

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance
    """
    return Settings()


# Global settings instance
settings = get_settings()
