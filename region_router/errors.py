"""Exception types for region resolution and adapter construction."""

from typing import Optional


class RegionRouterError(Exception):
    """Base class for region router errors."""


class DetectionError(RegionRouterError):
    """A single detection strategy failed to produce a country code.

    Raised inside a strategy and caught by the detection chain; it never
    reaches callers of ``resolve``.
    """

    def __init__(self, strategy: str, reason: str, retryable: bool = True):
        super().__init__(f"{strategy}: {reason}")
        self.strategy = strategy
        self.reason = reason
        self.retryable = retryable


class AdapterConstructionError(RegionRouterError):
    """An auth or database adapter could not be built for a deployment region."""

    def __init__(
        self,
        kind: str,
        deployment_region: str,
        missing: Optional[list[str]] = None,
        reason: Optional[str] = None,
    ):
        self.kind = kind
        self.deployment_region = deployment_region
        self.missing = missing or []
        detail = reason or f"missing settings: {', '.join(self.missing)}"
        super().__init__(
            f"Cannot build {kind} adapter for {deployment_region} deployment ({detail})"
        )
