"""
Application settings.
Loaded from environment variables (and .env).
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Settings loaded from .env"""

    # App
    APP_NAME: str = "Audience CRM"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # Supabase (document store)
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""

    # Anthropic (segment rule generation, campaign insights)
    ANTHROPIC_API_KEY: str = ""
    LLM_MODEL: str = "claude-3-5-haiku-20241022"
    LLM_MAX_TOKENS: int = 1024

    # Public base URL of this service; vendor and callback URLs derive from it
    APP_BASE_URL: str = "http://localhost:8000"
    VENDOR_API_URL: str = ""  # Empty = built-in stub vendor
    DELIVERY_CALLBACK_URL: str = ""  # Empty = built-in receipt webhook

    # Stub vendor behaviour
    VENDOR_SUCCESS_RATE: float = 0.9
    VENDOR_MIN_DELAY_SECONDS: float = 1.0
    VENDOR_MAX_DELAY_SECONDS: float = 2.0
    VENDOR_FAILURE_REASON: str = "Simulated delivery failure by vendor"

    # Audience rules
    MAX_RULE_DEPTH: int = 32
    AUDIENCE_PAGE_SIZE: int = 1000

    # CORS - allowed origins (comma separated)
    CORS_ORIGINS: str = "*"  # "*" only for development

    @property
    def vendor_api_url(self) -> str:
        """URL the dispatcher posts outbound messages to."""
        if self.VENDOR_API_URL:
            return self.VENDOR_API_URL
        return f"{self.APP_BASE_URL.rstrip('/')}/dummy-vendor/send"

    @property
    def delivery_callback_url(self) -> str:
        """URL the vendor calls back with delivery receipts."""
        if self.DELIVERY_CALLBACK_URL:
            return self.DELIVERY_CALLBACK_URL
        return f"{self.APP_BASE_URL.rstrip('/')}/webhooks/delivery-receipts"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Returns the list of allowed CORS origins.

        Must be configured explicitly in production.
        """
        if self.CORS_ORIGINS == "*":
            if self.is_production:
                import logging
                logging.warning(
                    "CORS_ORIGINS='*' in production. "
                    "Configure explicit origins."
                )
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Returns the cached settings instance."""
    return Settings()


settings = get_settings()
