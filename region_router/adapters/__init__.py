"""Deployment-specific auth and database adapters."""

from .base import AuthAdapter, DatabaseAdapter, DeploymentAdapter
from .factory import ADAPTER_REGISTRY, AdapterFactory, AdapterKind

__all__ = [
    "ADAPTER_REGISTRY",
    "AdapterFactory",
    "AdapterKind",
    "AuthAdapter",
    "DatabaseAdapter",
    "DeploymentAdapter",
]
