"""Ordered detection chain with per-strategy failure containment."""

import time
from typing import Optional, Sequence

import structlog

from region_router.config.settings import Settings
from region_router.errors import DetectionError
from region_router.geo.classifier import classify
from region_router.geo.http_client import LookupHttpClient
from region_router.geo.ip import sanitize_ip
from region_router.geo.models import CapabilityDescriptor
from region_router.geo.strategies import (
    PUBLIC_IP_COUNTRY,
    DetectionStrategy,
    IpApiComStrategy,
    IpapiStrategy,
    IpinfoStrategy,
    LocalHeuristicStrategy,
)
from region_router.logging import log_detection_attempt, log_detection_fallback

logger = structlog.get_logger()

DEFAULT_TIMEOUT_MS = 5000


def fallback_descriptor() -> CapabilityDescriptor:
    """International default used when nothing could classify a visitor.

    Never the China profile: that one is only chosen by the private-IP
    heuristic.
    """
    return classify(PUBLIC_IP_COUNTRY)


def build_default_strategies(
    settings: Settings,
    http_client: Optional[LookupHttpClient] = None,
) -> list[DetectionStrategy]:
    """Build the standard five-step chain from settings."""
    http_client = http_client or LookupHttpClient()
    return [
        LocalHeuristicStrategy(name="local-shortcut", shortcut_only=True),
        IpapiStrategy(settings.geo_primary_url, http_client),
        IpApiComStrategy(settings.geo_secondary_url, http_client),
        IpinfoStrategy(settings.geo_tertiary_url, http_client),
        LocalHeuristicStrategy(name="local-fallback"),
    ]


class DetectionChain:
    """Runs strategies in order and commits to the first country code."""

    def __init__(
        self,
        strategies: Sequence[DetectionStrategy],
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ):
        """Initialize the chain.

        Args:
            strategies: Strategies in priority order
            default_timeout_ms: Per-attempt timeout when the caller gives none
        """
        self.strategies = list(strategies)
        self.default_timeout_ms = default_timeout_ms

    async def resolve(self, ip: str, timeout_ms: Optional[int] = None) -> CapabilityDescriptor:
        """Resolve an IP to a capability descriptor.

        Never raises. Each strategy's failure is logged and the next one is
        tried; if all fail the international fallback is returned.

        Args:
            ip: Client IP (sanitised here)
            timeout_ms: Per-attempt timeout override in milliseconds

        Returns:
            CapabilityDescriptor for the first country code found
        """
        ip = sanitize_ip(ip)
        if timeout_ms is None:
            timeout_ms = self.default_timeout_ms
        errors: list[str] = []

        for strategy in self.strategies:
            if not strategy.applies_to(ip):
                continue

            start = time.perf_counter()
            try:
                country = await strategy.lookup(ip, timeout_ms)
            except DetectionError as e:
                errors.append(str(e))
                log_detection_attempt(
                    strategy=strategy.name,
                    ip=ip,
                    success=False,
                    duration_ms=(time.perf_counter() - start) * 1000,
                    error=e.reason,
                    retryable=e.retryable,
                )
                continue
            except Exception as e:
                # Bugs in one strategy are logged and skipped
                errors.append(f"{strategy.name}: {e!r}")
                logger.exception("detection_strategy_crashed", strategy=strategy.name, ip=ip)
                continue

            log_detection_attempt(
                strategy=strategy.name,
                ip=ip,
                success=True,
                duration_ms=(time.perf_counter() - start) * 1000,
                country=country,
            )
            return classify(country)

        log_detection_fallback(ip=ip, errors=errors)
        return fallback_descriptor()
