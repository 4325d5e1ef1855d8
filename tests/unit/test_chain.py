"""Tests for DetectionChain ordering and failure containment."""

import pytest
from unittest.mock import patch

from region_router.config.settings import Settings
from region_router.errors import DetectionError
from region_router.geo.chain import (
    DEFAULT_TIMEOUT_MS,
    DetectionChain,
    build_default_strategies,
    fallback_descriptor,
)
from region_router.geo.classifier import classify
from region_router.geo.models import Region
from region_router.geo.strategies import (
    IpApiComStrategy,
    IpapiStrategy,
    IpinfoStrategy,
    LocalHeuristicStrategy,
)


class TestChainOrder:
    """The chain commits to the first strategy that answers."""

    @pytest.mark.asyncio
    async def test_later_strategies_not_invoked_after_success(self, recording_strategy):
        first = recording_strategy("primary", error=DetectionError("primary", "HTTP 500"))
        second = recording_strategy("secondary", country="US")
        third = recording_strategy("tertiary", error=AssertionError("must not be called"))
        chain = DetectionChain([first, second, third])

        descriptor = await chain.resolve("8.8.8.8")

        assert descriptor.region == Region.USA
        assert len(first.calls) == 1
        assert len(second.calls) == 1
        assert third.calls == []

    @pytest.mark.asyncio
    async def test_first_success_wins(self, recording_strategy):
        first = recording_strategy("primary", country="DE")
        second = recording_strategy("secondary", country="US")
        chain = DetectionChain([first, second])

        descriptor = await chain.resolve("203.0.113.5")

        assert descriptor.region == Region.EUROPE
        assert second.calls == []

    @pytest.mark.asyncio
    async def test_timeout_passed_to_each_attempt(self, recording_strategy):
        first = recording_strategy("primary", error=DetectionError("primary", "timeout"))
        second = recording_strategy("secondary", country="IN")
        chain = DetectionChain([first, second])

        await chain.resolve("8.8.8.8", timeout_ms=250)

        assert first.calls == [("8.8.8.8", 250)]
        assert second.calls == [("8.8.8.8", 250)]

    @pytest.mark.asyncio
    async def test_default_timeout(self, recording_strategy):
        strategy = recording_strategy("primary", country="US")
        await DetectionChain([strategy]).resolve("8.8.8.8")
        assert strategy.calls == [("8.8.8.8", DEFAULT_TIMEOUT_MS)]

    @pytest.mark.asyncio
    async def test_explicit_zero_timeout_is_not_replaced(self, recording_strategy):
        strategy = recording_strategy("primary", country="US")
        await DetectionChain([strategy], default_timeout_ms=5000).resolve("8.8.8.8", timeout_ms=0)
        assert strategy.calls == [("8.8.8.8", 0)]

    @pytest.mark.asyncio
    async def test_ip_is_sanitized(self, recording_strategy):
        strategy = recording_strategy("primary", country="US")
        await DetectionChain([strategy]).resolve(" 8.8.8.8:443 ")
        assert strategy.calls[0][0] == "8.8.8.8"


class TestChainFailures:
    """Strategy failures stay inside the chain."""

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, recording_strategy):
        broken = recording_strategy("broken", error=KeyError("defect"))
        working = recording_strategy("working", country="SG")

        descriptor = await DetectionChain([broken, working]).resolve("8.8.8.8")

        assert descriptor.region == Region.SINGAPORE

    @pytest.mark.asyncio
    async def test_all_fail_returns_international_fallback(self, recording_strategy):
        strategies = [
            recording_strategy(name, error=DetectionError(name, "down"))
            for name in ("a", "b", "c")
        ]

        descriptor = await DetectionChain(strategies).resolve("8.8.8.8")

        assert descriptor == fallback_descriptor()
        assert descriptor.region == Region.USA
        assert descriptor.region != Region.CHINA

    @pytest.mark.asyncio
    async def test_failure_logged_with_retryable_flag(self, recording_strategy):
        transient = recording_strategy("primary", error=DetectionError("primary", "HTTP 503"))
        permanent = recording_strategy(
            "secondary", error=DetectionError("secondary", "missing country", retryable=False)
        )

        with patch("region_router.geo.chain.log_detection_attempt") as mock_log:
            await DetectionChain([transient, permanent]).resolve("8.8.8.8")

        logged = {c.kwargs["strategy"]: c.kwargs["retryable"] for c in mock_log.call_args_list}
        assert logged == {"primary": True, "secondary": False}

    @pytest.mark.asyncio
    async def test_empty_chain_returns_fallback(self):
        assert await DetectionChain([]).resolve("8.8.8.8") == fallback_descriptor()


class TestDefaultStrategies:
    """The standard five-step chain."""

    def test_order(self):
        strategies = build_default_strategies(Settings(_env_file=None))

        assert [type(s) for s in strategies] == [
            LocalHeuristicStrategy,
            IpapiStrategy,
            IpApiComStrategy,
            IpinfoStrategy,
            LocalHeuristicStrategy,
        ]
        assert strategies[0].shortcut_only
        assert not strategies[-1].shortcut_only

    def test_urls_from_settings(self):
        settings = Settings(_env_file=None, geo_primary_url="http://geo.local/{ip}")
        strategies = build_default_strategies(settings)
        assert strategies[1].build_url("8.8.8.8") == "http://geo.local/8.8.8.8"

    @pytest.mark.asyncio
    async def test_private_ip_never_hits_network(self, recording_strategy):
        """10.0.0.5 is answered by the shortcut with the private-IP default."""
        strategies = build_default_strategies(Settings(_env_file=None))
        network = recording_strategy("network", error=AssertionError("network called"))
        chain = DetectionChain([strategies[0], network, strategies[-1]])

        descriptor = await chain.resolve("10.0.0.5")

        assert descriptor == classify("CN")
        assert network.calls == []

    @pytest.mark.asyncio
    async def test_network_strategies_fall_through_to_heuristic(self, recording_strategy):
        strategies = build_default_strategies(Settings(_env_file=None))
        failing = recording_strategy("network", error=DetectionError("network", "down"))
        chain = DetectionChain([strategies[0], failing, strategies[-1]])

        descriptor = await chain.resolve("8.8.8.8")

        assert descriptor == classify("US")
        assert len(failing.calls) == 1
