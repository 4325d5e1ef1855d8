"""Public entry point: resolve a visitor IP into capabilities."""

from typing import Optional

import structlog
from pydantic import BaseModel

from region_router.adapters.base import AuthAdapter, DatabaseAdapter
from region_router.config.deployment import DeploymentRegion
from region_router.config.settings import Settings
from region_router.geo.chain import DetectionChain, build_default_strategies, fallback_descriptor
from region_router.geo.classifier import classify
from region_router.geo.http_client import LookupHttpClient
from region_router.geo.models import CapabilityDescriptor
from region_router.geo.resolver import CacheStats, Resolver

logger = structlog.get_logger()


class CompatibilityReport(BaseModel):
    """Whether a deployment can serve a detected visitor's capabilities."""

    deployment_region: DeploymentRegion
    database_compatible: bool
    auth_compatible: bool
    auth_methods_available: tuple[str, ...]
    payment_methods_available: tuple[str, ...]

    @property
    def compatible(self) -> bool:
        return self.database_compatible and self.auth_compatible


class CapabilityRouter:
    """Resolves IPs to capability descriptors and never raises."""

    def __init__(self, resolver: Resolver):
        self.resolver = resolver

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: Optional[LookupHttpClient] = None,
    ) -> "CapabilityRouter":
        """Build a router with the standard strategy chain."""
        chain = DetectionChain(
            build_default_strategies(settings, http_client),
            default_timeout_ms=settings.geo_timeout_ms,
        )
        resolver = Resolver(
            chain,
            ttl_seconds=settings.geo_cache_ttl_seconds,
            max_entries=settings.geo_cache_max_entries,
        )
        return cls(resolver)

    async def resolve(
        self,
        ip: str,
        timeout_ms: Optional[int] = None,
        cache_ttl_seconds: Optional[int] = None,
    ) -> CapabilityDescriptor:
        """Resolve a client IP to its capability descriptor.

        Args:
            ip: Client IP address
            timeout_ms: Per-attempt lookup timeout in milliseconds
            cache_ttl_seconds: Freshness override for the cache lookup

        Returns:
            A complete descriptor; the international default if the
            pipeline itself breaks
        """
        try:
            return await self.resolver.get_or_resolve(
                ip, timeout_ms=timeout_ms, cache_ttl_seconds=cache_ttl_seconds
            )
        except Exception:
            logger.exception("capability_resolution_failed", ip=ip)
            return fallback_descriptor()

    def classify(self, country_code: str) -> CapabilityDescriptor:
        """Classify a country code without any lookup."""
        return classify(country_code)

    def clear_cache(self) -> int:
        """Drop all cached resolutions."""
        return self.resolver.clear()

    def cache_stats(self) -> CacheStats:
        """Get resolver statistics."""
        return self.resolver.stats()

    def check_compatibility(
        self,
        descriptor: CapabilityDescriptor,
        auth: AuthAdapter,
        database: DatabaseAdapter,
    ) -> CompatibilityReport:
        """Ask a deployment's adapters whether they can serve a visitor.

        Args:
            descriptor: Detected visitor capabilities
            auth: Auth adapter built for this deployment
            database: Database adapter built for this deployment

        Returns:
            CompatibilityReport with the usable auth and payment methods
        """
        payment_providers = database.profile.payment_providers
        return CompatibilityReport(
            deployment_region=database.deployment_region,
            database_compatible=database.is_compatible(descriptor),
            auth_compatible=auth.is_compatible(descriptor),
            auth_methods_available=tuple(m for m in descriptor.auth_methods if auth.supports(m)),
            payment_methods_available=tuple(
                m for m in descriptor.payment_methods if m in payment_providers
            ),
        )


async def detect_user_location(
    router: CapabilityRouter,
    ip: str,
    timeout_ms: Optional[int] = None,
) -> CapabilityDescriptor:
    """Convenience wrapper around ``CapabilityRouter.resolve``."""
    return await router.resolve(ip, timeout_ms=timeout_ms)
