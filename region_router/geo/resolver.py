"""Per-IP resolution cache with in-flight request coalescing."""

import asyncio
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from pydantic import BaseModel

from region_router.geo.chain import DetectionChain
from region_router.geo.ip import sanitize_ip
from region_router.geo.models import CapabilityDescriptor
from region_router.logging import log_cache_operation

logger = structlog.get_logger()

DEFAULT_CACHE_TTL_SECONDS = 3600


class CacheEntry(BaseModel):
    """A resolved descriptor and when it was resolved."""

    descriptor: CapabilityDescriptor
    resolved_at: datetime


class CacheEntryInfo(BaseModel):
    """Introspection view of one cache entry."""

    ip: str
    region: str
    country_code: str
    resolved_at: datetime


class CacheStats(BaseModel):
    """Resolver statistics."""

    hits: int = 0
    misses: int = 0
    coalesced: int = 0
    chain_executions: int = 0
    size: int = 0
    in_flight: int = 0
    entries: list[CacheEntryInfo] = []

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate percentage."""
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0


class Resolver:
    """Caches descriptors per IP and runs at most one chain per IP at a time.

    Per-IP states: absent, in-flight, cached (fresh or stale). A stale entry
    is treated as absent but stays in place until a new resolution
    overwrites it. Results are cached whether they came from a lookup
    service or from the chain's fallback, so a persistently failing IP is
    retried only after the TTL.

    The in-flight check and insert happen with no ``await`` between them,
    which makes them atomic on the event loop.
    """

    def __init__(
        self,
        chain: DetectionChain,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        max_entries: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the resolver.

        Args:
            chain: Detection chain run on cache misses
            ttl_seconds: Freshness window for cached results
            max_entries: LRU bound on cached IPs; None means unbounded
            clock: Source of the current time (injectable for tests)
        """
        self.chain = chain
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._cache: OrderedDict[str, CacheEntry] = OrderedDict()
        self._in_flight: dict[str, asyncio.Task] = {}
        self._stats = CacheStats()

    async def get_or_resolve(
        self,
        ip: str,
        timeout_ms: Optional[int] = None,
        cache_ttl_seconds: Optional[int] = None,
    ) -> CapabilityDescriptor:
        """Return the cached descriptor for an IP or resolve it.

        Args:
            ip: Client IP
            timeout_ms: Per-attempt timeout passed to the chain
            cache_ttl_seconds: Freshness override for this lookup

        Returns:
            CapabilityDescriptor for the IP
        """
        ip = sanitize_ip(ip)
        ttl = cache_ttl_seconds if cache_ttl_seconds is not None else self.ttl_seconds

        entry = self._cache.get(ip)
        if entry is not None and self._clock() - entry.resolved_at < timedelta(seconds=ttl):
            self._cache.move_to_end(ip)
            self._stats.hits += 1
            log_cache_operation("hit", ip=ip, hit_rate=self._stats.hit_rate)
            return entry.descriptor

        task = self._in_flight.get(ip)
        if task is not None:
            self._stats.coalesced += 1
            log_cache_operation("join", ip=ip)
        else:
            self._stats.misses += 1
            log_cache_operation("miss", ip=ip, hit_rate=self._stats.hit_rate)
            task = asyncio.ensure_future(self._resolve_and_store(ip, timeout_ms))
            self._in_flight[ip] = task

        # Shielded so a cancelled caller doesn't cancel the shared resolution
        return await asyncio.shield(task)

    async def _resolve_and_store(self, ip: str, timeout_ms: Optional[int]) -> CapabilityDescriptor:
        self._stats.chain_executions += 1
        try:
            descriptor = await self.chain.resolve(ip, timeout_ms)
            self._store(ip, descriptor)
            return descriptor
        finally:
            self._in_flight.pop(ip, None)

    def _store(self, ip: str, descriptor: CapabilityDescriptor) -> None:
        self._cache[ip] = CacheEntry(descriptor=descriptor, resolved_at=self._clock())
        self._cache.move_to_end(ip)

        if self.max_entries is not None:
            while len(self._cache) > self.max_entries:
                evicted, _ = self._cache.popitem(last=False)
                logger.debug("cache_evicted", ip=evicted)

        log_cache_operation("store", ip=ip)

    def clear(self) -> int:
        """Drop every cached entry. In-flight resolutions are left running.

        Returns:
            Number of entries removed
        """
        count = len(self._cache)
        self._cache.clear()
        log_cache_operation("clear")
        logger.info("cache_cleared", count=count)
        return count

    def stats(self) -> CacheStats:
        """Get a snapshot of resolver statistics and cache entries."""
        stats = self._stats.model_copy()
        stats.size = len(self._cache)
        stats.in_flight = len(self._in_flight)
        stats.entries = [
            CacheEntryInfo(
                ip=ip,
                region=entry.descriptor.region.value,
                country_code=entry.descriptor.country_code,
                resolved_at=entry.resolved_at,
            )
            for ip, entry in self._cache.items()
        ]
        return stats

    def is_in_flight(self, ip: str) -> bool:
        """Whether a resolution is currently running for the IP."""
        return sanitize_ip(ip) in self._in_flight
