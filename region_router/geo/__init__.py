"""IP-to-region detection and capability classification."""

from .classifier import classify, is_regulated_country, region_for_country
from .models import CapabilityDescriptor, DatabaseBackend, DeploymentTarget, Region

__all__ = [
    "CapabilityDescriptor",
    "DatabaseBackend",
    "DeploymentTarget",
    "Region",
    "classify",
    "is_regulated_country",
    "region_for_country",
]
