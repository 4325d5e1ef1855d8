"""API routes for geolocation and capability routing."""

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel
import structlog

from region_router.adapters.factory import AdapterFactory
from region_router.errors import AdapterConstructionError
from region_router.geo.ip import get_client_ip
from region_router.geo.models import CapabilityDescriptor
from region_router.geo.resolver import CacheStats
from region_router.geo.router import CapabilityRouter, CompatibilityReport

router = APIRouter(prefix="/api/geo", tags=["geo"])
logger = structlog.get_logger()


class CountryResponse(BaseModel):
    """Response for country detection."""
    country: str
    source: str  # "header", "cloudflare", "ip"


class CompatibilityResponse(BaseModel):
    """Visitor capabilities checked against this deployment."""
    capabilities: CapabilityDescriptor
    compatibility: CompatibilityReport
    compatible: bool
    auth_config: dict[str, Any]


class CacheClearResponse(BaseModel):
    cleared: int


def get_capability_router(request: Request) -> CapabilityRouter:
    return request.app.state.capability_router


def get_adapter_factory(request: Request) -> AdapterFactory:
    return request.app.state.adapter_factory


def _client_ip(request: Request, override: Optional[str]) -> str:
    if override:
        return override
    return get_client_ip(request.headers, request.client.host if request.client else None)


@router.get("/country")
async def get_country(request: Request) -> CountryResponse:
    """Detect user's country from headers or IP address.

    Priority:
    1. X-Country header (for proxies/CDNs)
    2. CF-IPCountry header (Cloudflare)
    3. Client IP through the detection chain
    """
    country_header = request.headers.get("X-Country")
    if country_header:
        logger.info("country_detected", source="header", country=country_header)
        return CountryResponse(country=country_header.strip().upper(), source="header")

    cf_country = request.headers.get("CF-IPCountry")
    if cf_country and cf_country != "XX":  # XX means unknown
        logger.info("country_detected", source="cloudflare", country=cf_country)
        return CountryResponse(country=cf_country.strip().upper(), source="cloudflare")

    descriptor = await get_capability_router(request).resolve(_client_ip(request, None))
    return CountryResponse(country=descriptor.country_code, source="ip")


@router.get("/capabilities")
async def get_capabilities(
    request: Request,
    ip: Optional[str] = Query(default=None, description="Resolve this IP instead of the caller's"),
    timeout_ms: Optional[int] = Query(default=None, ge=1, le=60000),
) -> CapabilityDescriptor:
    """Resolve the caller (or a given IP) to its capability descriptor."""
    capability_router = get_capability_router(request)
    return await capability_router.resolve(_client_ip(request, ip), timeout_ms=timeout_ms)


@router.get("/compatibility")
async def get_compatibility(
    request: Request,
    ip: Optional[str] = Query(default=None),
) -> CompatibilityResponse:
    """Check the caller's capabilities against this deployment's adapters."""
    capability_router = get_capability_router(request)
    factory = get_adapter_factory(request)

    try:
        auth = factory.get_auth()
        database = factory.get_database()
    except AdapterConstructionError as e:
        logger.error("compatibility_adapters_unavailable", error=str(e), missing=e.missing)
        raise HTTPException(status_code=503, detail=str(e))

    descriptor = await capability_router.resolve(_client_ip(request, ip))
    report = capability_router.check_compatibility(descriptor, auth, database)
    return CompatibilityResponse(
        capabilities=descriptor,
        compatibility=report,
        compatible=report.compatible,
        auth_config=auth.client_config(),
    )


@router.get("/cache")
async def get_cache_stats(request: Request) -> CacheStats:
    """Resolver cache statistics."""
    return get_capability_router(request).cache_stats()


@router.delete("/cache")
async def clear_cache(request: Request) -> CacheClearResponse:
    """Drop every cached resolution."""
    cleared = get_capability_router(request).clear_cache()
    return CacheClearResponse(cleared=cleared)
