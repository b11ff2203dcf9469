"""
Shared fixtures for prompt-relay tests.

Factories and the fake upstream live in `tests/_relay_testkit.py`.
"""

from __future__ import annotations

import pytest

from prompt_relay.config import Settings
from prompt_relay.logging import StructuredLogger
from prompt_relay.relay import PromptRelay
from tests._relay_testkit import TEST_API_KEY, FakeUpstream

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key=TEST_API_KEY, model="gemini-test")


@pytest.fixture
def unconfigured_settings() -> Settings:
    return Settings(api_key=None, model="gemini-test")


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def logger() -> StructuredLogger:
    return StructuredLogger("prompt_relay.tests", level="DEBUG", json_output=True)


@pytest.fixture
def relay(settings: Settings, upstream: FakeUpstream, logger: StructuredLogger) -> PromptRelay:
    return PromptRelay(settings, client=upstream, logger=logger)
