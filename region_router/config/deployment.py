"""Deployment region profiles and environment validation.

The deployment region describes how this service itself is deployed. It is
fixed per process and unrelated to the region detected for a visitor.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from region_router.config.settings import Settings
from region_router.geo.models import DatabaseBackend


class DeploymentRegion(str, Enum):
    """Process-level deployment choice."""

    CN = "CN"  # Tencent Cloud / CloudBase
    INTL = "INTL"  # Vercel / Supabase


class DeploymentProfile(BaseModel):
    """Providers and features available in a deployment."""

    model_config = ConfigDict(frozen=True)

    region: DeploymentRegion
    auth_methods: tuple[str, ...]
    database_backend: DatabaseBackend
    payment_providers: tuple[str, ...]


DEPLOYMENT_PROFILES: dict[DeploymentRegion, DeploymentProfile] = {
    DeploymentRegion.CN: DeploymentProfile(
        region=DeploymentRegion.CN,
        auth_methods=("email", "wechat"),
        database_backend=DatabaseBackend.CLOUDBASE,
        payment_providers=("wechat", "alipay"),
    ),
    DeploymentRegion.INTL: DeploymentProfile(
        region=DeploymentRegion.INTL,
        auth_methods=("email", "google", "github"),
        database_backend=DatabaseBackend.SUPABASE,
        payment_providers=("stripe", "paypal"),
    ),
}


def parse_deployment_region(value: str | DeploymentRegion | None) -> DeploymentRegion:
    """Parse a configured deployment region; anything but INTL means CN."""
    if isinstance(value, DeploymentRegion):
        return value
    if value and value.strip().upper() == DeploymentRegion.INTL.value:
        return DeploymentRegion.INTL
    return DeploymentRegion.CN


def deployment_profile(region: DeploymentRegion) -> DeploymentProfile:
    """Get the provider profile for a deployment region."""
    return DEPLOYMENT_PROFILES[region]


# Settings each deployment needs before its adapters can be built
REQUIRED_SETTINGS: dict[DeploymentRegion, dict[str, tuple[str, ...]]] = {
    DeploymentRegion.CN: {
        "auth": ("cloudbase_env_id",),
        "database": ("cloudbase_env_id", "cloudbase_secret_id", "cloudbase_secret_key"),
    },
    DeploymentRegion.INTL: {
        "auth": ("supabase_url", "supabase_anon_key"),
        "database": ("supabase_url", "supabase_anon_key"),
    },
}


def missing_settings(settings: Settings, region: DeploymentRegion, kind: str) -> list[str]:
    """List required settings that are unset for one adapter kind."""
    return [
        name
        for name in REQUIRED_SETTINGS[region][kind]
        if not getattr(settings, name, None)
    ]


def validate_environment(settings: Settings, region: DeploymentRegion) -> list[str]:
    """Check that every adapter of a deployment can be configured.

    Returns:
        Human-readable error messages; empty when the environment is complete
    """
    errors: list[str] = []
    seen: set[str] = set()
    for kind in REQUIRED_SETTINGS[region]:
        for name in missing_settings(settings, region, kind):
            if name not in seen:
                seen.add(name)
                errors.append(f"{name.upper()} is required for the {region.value} deployment")
    return errors
