"""Configuration settings for the region router."""

from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Deployment
    deployment_region: str = Field(
        default="CN",
        description="Deployment region: 'INTL' for international, anything else means CN",
    )
    environment: str = Field(
        default="development",
        description="Environment: 'development' or 'production'",
    )

    # Geo detection
    geo_timeout_ms: int = Field(
        default=5000, description="Per-attempt timeout for lookup services in ms"
    )
    geo_cache_ttl_seconds: int = Field(
        default=3600, description="TTL for resolved IPs in seconds"
    )
    geo_cache_max_entries: Optional[int] = Field(
        default=None,
        description="Max cached IPs (LRU eviction); None keeps every IP until overwritten",
    )
    geo_primary_url: str = Field(
        default="https://ipapi.co/{ip}/json/",
        description="Primary IP lookup service URL template",
    )
    geo_secondary_url: str = Field(
        default="http://ip-api.com/json/{ip}",
        description="Secondary IP lookup service URL template",
    )
    geo_tertiary_url: str = Field(
        default="https://ipinfo.io/{ip}/json",
        description="Tertiary IP lookup service URL template",
    )

    # Supabase (international deployment)
    supabase_url: Optional[str] = Field(default=None, description="Supabase project URL")
    supabase_anon_key: Optional[str] = Field(
        default=None, description="Supabase anon/public key"
    )

    # CloudBase (China deployment)
    cloudbase_env_id: Optional[str] = Field(
        default=None, description="Tencent CloudBase environment ID"
    )
    cloudbase_secret_id: Optional[str] = Field(
        default=None, description="Tencent CloudBase secret ID"
    )
    cloudbase_secret_key: Optional[str] = Field(
        default=None, description="Tencent CloudBase secret key"
    )

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
