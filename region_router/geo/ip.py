"""Client IP extraction, sanitising and range checks."""

import ipaddress
from typing import Mapping, Optional

# Proxy/CDN headers that may carry the real client IP, in priority order
CLIENT_IP_HEADERS = [
    "x-forwarded-for",
    "x-real-ip",
    "x-client-ip",
    "cf-connecting-ip",
    "x-cloudfoundry-client-ip",
    "true-client-ip",
    "x-cluster-client-ip",
]

# Ranges the local heuristic treats as in-house (development) traffic
PRIVATE_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)


def sanitize_ip(ip: Optional[str]) -> str:
    """Strip whitespace, a trailing IPv4 port and IPv6 brackets."""
    if not ip:
        return ""
    ip = ip.strip()

    # [::1]:8080 or [::1]
    if ip.startswith("["):
        end = ip.find("]")
        return ip[1:end].strip() if end > 0 else ip[1:].strip()

    # 1.2.3.4:8080 (a bare IPv6 address has more than one colon)
    if ip.count(":") == 1:
        ip = ip.split(":")[0]

    return ip.strip()


def parse_ip(ip: Optional[str]) -> Optional[ipaddress.IPv4Address | ipaddress.IPv6Address]:
    """Parse an IP string, returning None if it is not a valid address."""
    try:
        return ipaddress.ip_address(sanitize_ip(ip))
    except ValueError:
        return None


def is_valid_ip(ip: Optional[str]) -> bool:
    """Check if a string is a valid IPv4 or IPv6 address."""
    return parse_ip(ip) is not None


def is_private_ip(ip: Optional[str]) -> bool:
    """Check if an address (or its IPv4-mapped form) is in 10/8, 172.16/12 or 192.168/16."""
    address = parse_ip(ip)
    if address is not None and address.version == 6 and address.ipv4_mapped:
        address = address.ipv4_mapped
    if address is None or address.version != 4:
        return False
    return any(address in network for network in PRIVATE_NETWORKS)


def is_loopback_ip(ip: Optional[str]) -> bool:
    """Check if an address is loopback (127.0.0.0/8 or ::1)."""
    address = parse_ip(ip)
    return address is not None and address.is_loopback


def needs_local_detection(ip: Optional[str]) -> bool:
    """True when a lookup service can't say anything useful about the IP.

    Covers empty input, unparsable strings, loopback and private ranges.
    """
    address = parse_ip(ip)
    if address is None:
        return True
    return address.is_loopback or is_private_ip(str(address))


def get_client_ip(headers: Mapping[str, str], remote_address: Optional[str] = None) -> str:
    """Get the real client IP, honouring proxy and CDN headers.

    Args:
        headers: Request headers (lookups are lower-case)
        remote_address: Socket peer address used when no header matches

    Returns:
        Sanitised client IP, or an empty string if none is known
    """
    lowered = {k.lower(): v for k, v in headers.items()}
    for header in CLIENT_IP_HEADERS:
        value = lowered.get(header)
        if not value:
            continue
        # X-Forwarded-For may list several hops; the first is the client
        first = sanitize_ip(value.split(",")[0])
        if first and is_valid_ip(first):
            return first

    return sanitize_ip(remote_address)
