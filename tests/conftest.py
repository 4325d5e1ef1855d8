"""Pytest configuration and shared fixtures."""

import asyncio
from typing import Optional

import pytest

from region_router.config.settings import Settings
from region_router.errors import DetectionError
from region_router.geo.strategies import DetectionStrategy


class RecordingStrategy(DetectionStrategy):
    """Strategy double that records every lookup it receives."""

    def __init__(
        self,
        name: str,
        country: Optional[str] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.name = name
        self.country = country
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, int]] = []

    async def lookup(self, ip: str, timeout_ms: int) -> str:
        self.calls.append((ip, timeout_ms))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.country is None:
            raise DetectionError(self.name, "no country configured")
        return self.country


@pytest.fixture
def recording_strategy():
    """Factory for RecordingStrategy instances."""
    return RecordingStrategy


@pytest.fixture
def test_settings() -> Settings:
    """Settings with every provider configured and no .env file."""
    return Settings(
        _env_file=None,
        deployment_region="CN",
        environment="development",
        supabase_url="https://example.supabase.co/",
        supabase_anon_key="anon-key-1234567890",
        cloudbase_env_id="prod-env-123",
        cloudbase_secret_id="secret-id-1234567890",
        cloudbase_secret_key="secret-key-1234567890",
    )


@pytest.fixture
def empty_settings() -> Settings:
    """Settings with no provider configured."""
    return Settings(
        _env_file=None,
        supabase_url=None,
        supabase_anon_key=None,
        cloudbase_env_id=None,
        cloudbase_secret_id=None,
        cloudbase_secret_key=None,
    )
