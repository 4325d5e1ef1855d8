"""Country code to region classification and the region capability table."""

from typing import Any, NamedTuple

from region_router.geo.models import (
    CapabilityDescriptor,
    DatabaseBackend,
    DeploymentTarget,
    Region,
)

# Single-country markets
TARGET_MARKETS: dict[str, Region] = {
    "CN": Region.CHINA,
    "US": Region.USA,
    "IN": Region.INDIA,
    "SG": Region.SINGAPORE,
}

# Countries under GDPR-style data protection law
PRIVACY_REGULATED_COUNTRIES: frozenset[str] = frozenset(
    {
        # EU members
        "AT", "BE", "BG", "HR", "CY", "CZ", "DK", "EE", "FI", "FR", "DE", "GR", "HU",
        "IE", "IT", "LV", "LT", "LU", "MT", "NL", "PL", "PT", "RO", "SK", "SI", "ES", "SE",
        # EEA, not EU
        "IS", "LI", "NO",
        # UK and Switzerland
        "GB", "CH",
    }
)

GENERIC_PAYMENT_METHODS = ("stripe", "paypal")
GENERIC_AUTH_METHODS = ("google", "github", "email")


class RegionProfile(NamedTuple):
    """Capabilities shared by every visitor of a region."""

    currency: str
    payment_methods: tuple[str, ...]
    auth_methods: tuple[str, ...]
    database_backend: DatabaseBackend
    deployment_target: DeploymentTarget
    regulated_privacy: bool
    language: str


_INTERNATIONAL = RegionProfile(
    currency="USD",
    payment_methods=GENERIC_PAYMENT_METHODS,
    auth_methods=GENERIC_AUTH_METHODS,
    database_backend=DatabaseBackend.SUPABASE,
    deployment_target=DeploymentTarget.VERCEL,
    regulated_privacy=False,
    language="en",
)

REGION_PROFILES: dict[Region, RegionProfile] = {
    Region.CHINA: RegionProfile(
        currency="CNY",
        payment_methods=("wechat", "alipay"),
        auth_methods=("wechat", "email"),
        database_backend=DatabaseBackend.CLOUDBASE,
        deployment_target=DeploymentTarget.TENCENT,
        regulated_privacy=False,
        language="zh",
    ),
    Region.USA: _INTERNATIONAL,
    # Payments disabled and email-only auth under GDPR
    Region.EUROPE: RegionProfile(
        currency="EUR",
        payment_methods=(),
        auth_methods=("email",),
        database_backend=DatabaseBackend.SUPABASE,
        deployment_target=DeploymentTarget.VERCEL,
        regulated_privacy=True,
        language="en",
    ),
    Region.INDIA: _INTERNATIONAL,
    Region.SINGAPORE: _INTERNATIONAL,
    Region.OTHER: _INTERNATIONAL,
}

_unmapped = set(Region) - set(REGION_PROFILES)
if _unmapped:
    raise RuntimeError(
        f"REGION_PROFILES is missing regions: {sorted(r.value for r in _unmapped)}"
    )


def normalize_country_code(country_code: Any) -> str:
    """Upper-case and strip a country code; non-strings become empty."""
    if not isinstance(country_code, str):
        return ""
    return country_code.strip().upper()


def region_for_country(country_code: Any) -> Region:
    """Map a country code to its region, defaulting to OTHER."""
    code = normalize_country_code(country_code)
    if code in TARGET_MARKETS:
        return TARGET_MARKETS[code]
    if code in PRIVACY_REGULATED_COUNTRIES:
        return Region.EUROPE
    return Region.OTHER


def is_regulated_country(country_code: Any) -> bool:
    """Check whether a country falls under strict data protection law."""
    return normalize_country_code(country_code) in PRIVACY_REGULATED_COUNTRIES


def default_language(region: Region) -> str:
    """Default UI language for a region."""
    return REGION_PROFILES[region].language


def descriptor_for_region(region: Region, country_code: str = "") -> CapabilityDescriptor:
    """Build the descriptor for a region from the capability table."""
    profile = REGION_PROFILES[region]
    return CapabilityDescriptor(
        region=region,
        country_code=country_code,
        **profile._asdict(),
    )


def classify(country_code: Any) -> CapabilityDescriptor:
    """Classify a country code into a full capability descriptor.

    Total and pure: unknown, empty or malformed codes classify as
    ``Region.OTHER`` and nothing here raises.

    Args:
        country_code: ISO 3166-1 alpha-2 code, any case

    Returns:
        CapabilityDescriptor for the code's region
    """
    code = normalize_country_code(country_code)
    return descriptor_for_region(region_for_country(code), code)
