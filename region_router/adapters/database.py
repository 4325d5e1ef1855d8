"""Database connectors: CloudBase for China, Supabase internationally."""

from typing import Any

import structlog

from region_router.adapters.base import DatabaseAdapter
from region_router.config.deployment import DeploymentRegion
from region_router.config.settings import Settings
from region_router.geo.models import DatabaseBackend

logger = structlog.get_logger()


def _redact(secret: str) -> str:
    return secret[:4] + "****" if len(secret) > 8 else "****"


class CloudBaseConnector(DatabaseAdapter):
    """Tencent CloudBase document database."""

    deployment_region = DeploymentRegion.CN
    backend = DatabaseBackend.CLOUDBASE
    provider = "cloudbase"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.env_id = settings.cloudbase_env_id
        self._secret_id = settings.cloudbase_secret_id
        logger.info("database_adapter_initialized", backend=self.backend.value, env_id=self.env_id)

    def connection_info(self) -> dict[str, Any]:
        return {
            "backend": self.backend.value,
            "env_id": self.env_id,
            "secret_id": _redact(self._secret_id),
        }


class SupabaseConnector(DatabaseAdapter):
    """Supabase Postgres through its REST endpoint."""

    deployment_region = DeploymentRegion.INTL
    backend = DatabaseBackend.SUPABASE
    provider = "supabase"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.url = settings.supabase_url.rstrip("/")
        self._anon_key = settings.supabase_anon_key
        logger.info("database_adapter_initialized", backend=self.backend.value, url=self.url)

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1"

    def connection_info(self) -> dict[str, Any]:
        return {
            "backend": self.backend.value,
            "rest_url": self.rest_url,
            "anon_key": _redact(self._anon_key),
        }
