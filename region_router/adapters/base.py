"""Adapter interfaces for deployment-specific auth and database providers."""

from abc import ABC, abstractmethod
from typing import Any

from region_router.config.deployment import (
    DeploymentProfile,
    DeploymentRegion,
    deployment_profile,
    missing_settings,
)
from region_router.config.settings import Settings
from region_router.errors import AdapterConstructionError
from region_router.geo.models import CapabilityDescriptor, DatabaseBackend


class DeploymentAdapter(ABC):
    """Common construction for adapters bound to a deployment region."""

    kind: str = "base"
    provider: str = "base"
    deployment_region: DeploymentRegion

    def __init__(self, settings: Settings):
        """Validate settings and bind the adapter to its deployment.

        Raises:
            AdapterConstructionError: If a required setting is unset
        """
        missing = missing_settings(settings, self.deployment_region, self.kind)
        if missing:
            raise AdapterConstructionError(self.kind, self.deployment_region.value, missing)
        self.settings = settings

    @property
    def profile(self) -> DeploymentProfile:
        return deployment_profile(self.deployment_region)

    @abstractmethod
    def is_compatible(self, descriptor: CapabilityDescriptor) -> bool:
        """Whether this adapter can serve a visitor with these capabilities."""
        pass


class AuthAdapter(DeploymentAdapter):
    """Authentication provider for a deployment."""

    kind = "auth"

    @property
    def supported_methods(self) -> tuple[str, ...]:
        return self.profile.auth_methods

    def supports(self, method: str) -> bool:
        """Check if the provider offers an auth method (email, wechat, ...)."""
        return method in self.supported_methods

    def is_compatible(self, descriptor: CapabilityDescriptor) -> bool:
        return any(self.supports(m) for m in descriptor.auth_methods)

    @abstractmethod
    def client_config(self) -> dict[str, Any]:
        """Public settings a browser SDK needs to talk to the provider."""
        pass


class DatabaseAdapter(DeploymentAdapter):
    """Database backend for a deployment."""

    kind = "database"
    backend: DatabaseBackend

    def is_compatible(self, descriptor: CapabilityDescriptor) -> bool:
        return descriptor.database_backend == self.backend

    @abstractmethod
    def connection_info(self) -> dict[str, Any]:
        """Connection details with secrets redacted."""
        pass
