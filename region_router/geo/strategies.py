"""Detection strategies: each turns a client IP into a country code."""

import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from region_router.errors import DetectionError
from region_router.geo.http_client import LookupHttpClient
from region_router.geo.ip import is_private_ip, needs_local_detection, sanitize_ip

PRIVATE_IP_COUNTRY = "CN"  # in-house/dev traffic is served by the China stack
PUBLIC_IP_COUNTRY = "US"

_COUNTRY_CODE_RE = re.compile(r"^[A-Za-z]{2}$")


def local_country_for_ip(ip: str) -> str:
    """Pick one of the two hardcoded defaults without any network call."""
    return PRIVATE_IP_COUNTRY if is_private_ip(ip) else PUBLIC_IP_COUNTRY


class DetectionStrategy(ABC):
    """Abstract base class for a single way of resolving an IP."""

    name: str = "base"

    def applies_to(self, ip: str) -> bool:
        """Whether this strategy should be attempted for the IP."""
        return True

    @abstractmethod
    async def lookup(self, ip: str, timeout_ms: int) -> str:
        """Resolve an IP to an ISO 3166-1 alpha-2 country code.

        Args:
            ip: Sanitised client IP
            timeout_ms: Budget for any network call in milliseconds

        Returns:
            Upper-case two-letter country code

        Raises:
            DetectionError: If this strategy cannot produce a country code
        """
        pass


class LocalHeuristicStrategy(DetectionStrategy):
    """Private-range heuristic; never touches the network and never fails.

    With ``shortcut_only`` it only claims IPs that no lookup service could
    resolve (empty, unparsable, loopback, private).
    """

    def __init__(self, name: str = "local", shortcut_only: bool = False):
        self.name = name
        self.shortcut_only = shortcut_only

    def applies_to(self, ip: str) -> bool:
        return not self.shortcut_only or needs_local_detection(ip)

    async def lookup(self, ip: str, timeout_ms: int) -> str:
        return local_country_for_ip(ip)


class HttpLookupStrategy(DetectionStrategy):
    """Base for strategies backed by an external IP lookup service."""

    def __init__(self, url_template: str, http_client: Optional[LookupHttpClient] = None):
        """Initialize the strategy.

        Args:
            url_template: Service URL with an ``{ip}`` placeholder
            http_client: Client used for requests (a fresh one if None)
        """
        self.url_template = url_template
        self.http_client = http_client or LookupHttpClient()

    def applies_to(self, ip: str) -> bool:
        return not needs_local_detection(ip)

    def build_url(self, ip: str) -> str:
        """Build the lookup URL for an IP."""
        return self.url_template.format(ip=sanitize_ip(ip))

    async def lookup(self, ip: str, timeout_ms: int) -> str:
        data = await self.http_client.get_json(self.build_url(ip), timeout_ms, self.name)
        return self._validate_country(self.extract_country(data))

    @abstractmethod
    def extract_country(self, data: dict[str, Any]) -> Any:
        """Pull the country code out of the service's response body.

        Raises:
            DetectionError: If the body reports an error or lacks the field
        """
        pass

    def _validate_country(self, value: Any) -> str:
        if not isinstance(value, str) or not _COUNTRY_CODE_RE.match(value.strip()):
            raise DetectionError(self.name, f"invalid country code: {value!r}", retryable=False)
        return value.strip().upper()


class IpapiStrategy(HttpLookupStrategy):
    """ipapi.co: ``{"country_code": ..., "country_name": ...}`` or ``{"error": true}``."""

    name = "ipapi"

    def extract_country(self, data: dict[str, Any]) -> Any:
        if data.get("error"):
            raise DetectionError(
                self.name, f"service error: {data.get('reason') or data.get('error')}"
            )
        if not data.get("country_code") or not data.get("country_name"):
            raise DetectionError(
                self.name, "missing country_code or country_name", retryable=False
            )
        return data["country_code"]


class IpApiComStrategy(HttpLookupStrategy):
    """ip-api.com: ``{"status": "success", "countryCode": ...}``."""

    name = "ip-api"

    def extract_country(self, data: dict[str, Any]) -> Any:
        if data.get("status") == "fail":
            raise DetectionError(self.name, f"service error: {data.get('message')}")
        if not data.get("countryCode"):
            raise DetectionError(self.name, "missing countryCode", retryable=False)
        return data["countryCode"]


class IpinfoStrategy(HttpLookupStrategy):
    """ipinfo.io: ``{"ip": ..., "country": ...}``."""

    name = "ipinfo"

    def extract_country(self, data: dict[str, Any]) -> Any:
        if not data.get("country"):
            raise DetectionError(self.name, "missing country", retryable=False)
        return data["country"]
