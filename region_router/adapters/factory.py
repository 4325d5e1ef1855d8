"""Memoised construction of deployment adapters keyed by (kind, region)."""

import threading
from enum import Enum
from typing import Optional, Union

import structlog

from region_router.adapters.auth import CloudBaseAuthAdapter, SupabaseAuthAdapter
from region_router.adapters.base import AuthAdapter, DatabaseAdapter, DeploymentAdapter
from region_router.adapters.database import CloudBaseConnector, SupabaseConnector
from region_router.config.deployment import DeploymentRegion, parse_deployment_region
from region_router.config.settings import Settings
from region_router.logging import EventCategory, LogTimer

logger = structlog.get_logger()


class AdapterKind(str, Enum):
    """Kinds of deployment adapter."""

    AUTH = "auth"
    DATABASE = "database"


AdapterKey = tuple[AdapterKind, DeploymentRegion]

ADAPTER_REGISTRY: dict[AdapterKey, type[DeploymentAdapter]] = {
    (AdapterKind.AUTH, DeploymentRegion.CN): CloudBaseAuthAdapter,
    (AdapterKind.AUTH, DeploymentRegion.INTL): SupabaseAuthAdapter,
    (AdapterKind.DATABASE, DeploymentRegion.CN): CloudBaseConnector,
    (AdapterKind.DATABASE, DeploymentRegion.INTL): SupabaseConnector,
}

_unregistered = {(k, r) for k in AdapterKind for r in DeploymentRegion} - set(ADAPTER_REGISTRY)
if _unregistered:
    raise RuntimeError(f"ADAPTER_REGISTRY is missing entries: {sorted(_unregistered)}")


class AdapterFactory:
    """Builds each (kind, region) adapter once and hands out the same instance.

    Construction failures are raised to the caller and not remembered, so a
    fixed configuration can succeed on a later call.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._instances: dict[AdapterKey, DeploymentAdapter] = {}
        # One lock per key; the key space is closed so they can all exist up front
        self._locks: dict[AdapterKey, threading.Lock] = {
            key: threading.Lock() for key in ADAPTER_REGISTRY
        }

    @property
    def deployment_region(self) -> DeploymentRegion:
        """The region this process is deployed in, from settings."""
        return parse_deployment_region(self.settings.deployment_region)

    def get_adapter(
        self,
        kind: Union[AdapterKind, str],
        deployment_region: Union[DeploymentRegion, str],
    ) -> DeploymentAdapter:
        """Get the adapter for a kind and deployment region.

        Args:
            kind: AUTH or DATABASE
            deployment_region: CN or INTL

        Returns:
            The process-wide adapter instance for the pair

        Raises:
            AdapterConstructionError: If the adapter's settings are incomplete
            ValueError: If kind or region is not a known value
        """
        key = (AdapterKind(kind), DeploymentRegion(deployment_region))

        instance = self._instances.get(key)
        if instance is not None:
            return instance

        with self._locks[key]:
            instance = self._instances.get(key)
            if instance is None:
                adapter_class = ADAPTER_REGISTRY[key]
                with LogTimer(
                    "adapter_constructed",
                    category=EventCategory.ADAPTER,
                    kind=key[0].value,
                    region=key[1].value,
                    adapter=adapter_class.__name__,
                ):
                    instance = adapter_class(self.settings)
                self._instances[key] = instance
        return instance

    def get_auth(self, deployment_region: Optional[DeploymentRegion] = None) -> AuthAdapter:
        """Auth adapter for a region, defaulting to the configured deployment."""
        return self.get_adapter(AdapterKind.AUTH, deployment_region or self.deployment_region)

    def get_database(
        self, deployment_region: Optional[DeploymentRegion] = None
    ) -> DatabaseAdapter:
        """Database adapter for a region, defaulting to the configured deployment."""
        return self.get_adapter(
            AdapterKind.DATABASE, deployment_region or self.deployment_region
        )

    def reset(self) -> None:
        """Drop every built adapter (for testing)."""
        self._instances.clear()
