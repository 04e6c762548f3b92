"""Application configuration"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Supabase (settings storage + admin auth)
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_anon_key: str = ""

    # Liaison SpectrumEMP API
    vendor_api_url: str = "https://www.spectrumemp.com/api/"
    # "spectrum" talks to the real API, "fixture" serves the bundled sample JSON
    vendor_backend: str = "spectrum"
    # Only used by the fixture backend: success | failure | duplicate
    vendor_fixture_outcome: str = "success"

    # Settings store
    settings_backend: str = "supabase"
    options_name: str = "bu_liaison_inquiry_options"
    options_table: str = "plugin_options"

    # Form nonce
    nonce_secret: str = "change-me"
    nonce_lifetime: int = 86400

    # Requirements cache
    requirements_cache_ttl: int = 900
    cache_prune_minutes: int = 5

    # Application
    environment: str = "development"
    cors_origins: list[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
