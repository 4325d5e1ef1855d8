"""Auth adapters: CloudBase for China, Supabase Auth internationally."""

from typing import Any

import structlog

from region_router.adapters.base import AuthAdapter
from region_router.config.deployment import DeploymentRegion
from region_router.config.settings import Settings

logger = structlog.get_logger()


class CloudBaseAuthAdapter(AuthAdapter):
    """Tencent CloudBase auth with WeChat login."""

    deployment_region = DeploymentRegion.CN
    provider = "cloudbase"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.env_id = settings.cloudbase_env_id
        logger.info("auth_adapter_initialized", provider=self.provider, env_id=self.env_id)

    def client_config(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "env_id": self.env_id,
            "methods": list(self.supported_methods),
        }


class SupabaseAuthAdapter(AuthAdapter):
    """Supabase Auth with Google/GitHub OAuth."""

    deployment_region = DeploymentRegion.INTL
    provider = "supabase"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.url = settings.supabase_url.rstrip("/")
        self.anon_key = settings.supabase_anon_key
        logger.info("auth_adapter_initialized", provider=self.provider, url=self.url)

    def client_config(self) -> dict[str, Any]:
        # Supabase anon keys are meant to be shipped to browsers
        return {
            "provider": self.provider,
            "url": self.url,
            "anon_key": self.anon_key,
            "methods": list(self.supported_methods),
        }
