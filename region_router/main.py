"""Main entry point for the region router API."""

from contextlib import asynccontextmanager

from dotenv import load_dotenv
load_dotenv()  # Load .env into environment variables

import structlog
import uvicorn
from fastapi import FastAPI

from region_router.adapters.factory import AdapterFactory
from region_router.api.middleware import RequestLoggingMiddleware
from region_router.api.routes.geo import router as geo_router
from region_router.api.routes.health import router as health_router
from region_router.config.deployment import validate_environment
from region_router.config.settings import Settings, settings
from region_router.geo.router import CapabilityRouter
from region_router.logging import configure_production_logging

logger = structlog.get_logger()


def build_adapters(factory: AdapterFactory, environment: str) -> None:
    """Build the deployment's adapters up front.

    In production a missing setting is fatal; in development the adapters
    are left to fail on first use so the geo API still starts.
    """
    region = factory.deployment_region
    errors = validate_environment(factory.settings, region)
    if errors:
        logger.error("environment_validation_failed", deployment_region=region.value, errors=errors)
        if environment != "production":
            return

    auth = factory.get_auth()
    database = factory.get_database()
    logger.info(
        "adapters_ready",
        deployment_region=region.value,
        auth_provider=auth.provider,
        database=database.connection_info(),
    )


def create_app(app_settings: Settings = settings) -> FastAPI:
    """Create the FastAPI app with its router and adapter factory."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_production_logging()
        app.state.capability_router = CapabilityRouter.from_settings(app_settings)
        app.state.adapter_factory = AdapterFactory(app_settings)
        build_adapters(app.state.adapter_factory, app_settings.environment)
        logger.info(
            "region_router_started",
            deployment_region=app.state.adapter_factory.deployment_region.value,
        )
        yield

    app = FastAPI(title="Region Router API", lifespan=lifespan)
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(geo_router)
    app.include_router(health_router)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
