"""Value types for region detection results."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Region(str, Enum):
    """Coarse visitor region driving every capability decision."""

    CHINA = "china"
    USA = "usa"
    EUROPE = "europe"
    INDIA = "india"
    SINGAPORE = "singapore"
    OTHER = "other"


class DatabaseBackend(str, Enum):
    """Database backend serving a region."""

    CLOUDBASE = "cloudbase"  # document store
    SUPABASE = "supabase"  # relational with managed auth


class DeploymentTarget(str, Enum):
    """Hosting target, paired 1:1 with the database backend."""

    TENCENT = "tencent"
    VERCEL = "vercel"


class CapabilityDescriptor(BaseModel):
    """Resolved capability bundle for a visitor.

    Everything except ``country_code`` is derived from ``region``.
    """

    model_config = ConfigDict(frozen=True)

    region: Region
    country_code: str = ""
    currency: str
    payment_methods: tuple[str, ...]
    auth_methods: tuple[str, ...]
    database_backend: DatabaseBackend
    deployment_target: DeploymentTarget
    regulated_privacy: bool
    language: str
