"""Health check covering the adapters and the detection pipeline."""

from typing import Literal, Optional

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel
import structlog

from region_router.adapters.factory import AdapterFactory
from region_router.errors import AdapterConstructionError
from region_router.geo.router import CapabilityRouter
from region_router.logging import EventCategory

router = APIRouter(tags=["health"])
logger = structlog.get_logger()

# Public resolver address used to exercise the detection pipeline
HEALTH_CHECK_IP = "8.8.8.8"


class HealthCheck(BaseModel):
    """Result of one named check."""
    name: str
    status: Literal["pass", "fail"]
    error: Optional[str] = None


class HealthReport(BaseModel):
    """Healthy only when every check passes."""
    healthy: bool
    checks: list[HealthCheck]


def _failed(name: str, error: str) -> HealthCheck:
    logger.warning("health_check_failed", category=EventCategory.ERROR.value, check=name, error=error)
    return HealthCheck(name=name, status="fail", error=error)


def check_database(factory: AdapterFactory) -> HealthCheck:
    try:
        factory.get_database().connection_info()
    except AdapterConstructionError as e:
        return _failed("database", str(e))
    return HealthCheck(name="database", status="pass")


async def check_geo_router(capability_router: CapabilityRouter) -> HealthCheck:
    descriptor = await capability_router.resolve(HEALTH_CHECK_IP)
    if not descriptor.currency:
        return _failed("geo-router", f"incomplete descriptor for {HEALTH_CHECK_IP}")
    return HealthCheck(name="geo-router", status="pass")


def check_auth(factory: AdapterFactory) -> HealthCheck:
    try:
        factory.get_auth().client_config()
    except AdapterConstructionError as e:
        return _failed("auth", str(e))
    return HealthCheck(name="auth", status="pass")


async def run_health_checks(
    capability_router: CapabilityRouter,
    factory: AdapterFactory,
) -> HealthReport:
    """Run the database, geo-router and auth checks in that order."""
    checks = [
        check_database(factory),
        await check_geo_router(capability_router),
        check_auth(factory),
    ]
    return HealthReport(healthy=all(c.status == "pass" for c in checks), checks=checks)


@router.get("/health")
async def health_check(request: Request, response: Response) -> HealthReport:
    """Health check endpoint for container orchestration.

    Responds 503 when any check fails.
    """
    report = await run_health_checks(
        request.app.state.capability_router,
        request.app.state.adapter_factory,
    )
    if not report.healthy:
        response.status_code = 503
    return report
