"""
pytest configuration and fixtures for tracker_decoder tests.

Provides reusable fixtures for:
- Mocked LoRaCloud HTTP transport
- A frozen clock for solver clients
- Hypothesis property-based testing configuration
"""

import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

# Add project root so the package imports without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

# Configure Hypothesis profiles
from hypothesis import Phase, Verbosity, settings

# Default profile: balanced speed and coverage
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
)

# CI profile: more thorough testing
settings.register_profile(
    "ci",
    max_examples=500,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)

# Dev profile: fast iteration
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
)

# Debug profile: verbose output
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))


DEV_EUI = "927da4b72110927d"
FROZEN_NOW = datetime(2025, 7, 11, 12, 45, 0, tzinfo=timezone.utc)


class RecordingTransport:
    """
    httpx transport answering every request with a canned response.

    Usage:
        def test_send(loracloud_transport):
            loracloud_transport.reply(200, {"result": {...}})
            client = LoracloudClient("token", http_client=loracloud_transport.client())
    """

    def __init__(self):
        self.requests = []
        self.status = 200
        self.body = {"result": {}}
        self.error = None

    def reply(self, status, body):
        self.status = status
        self.body = body

    def fail(self, error):
        self.error = error

    def handler(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status, json=self.body)
        return httpx.Response(self.status, content=self.body)

    def client(self):
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    @property
    def last_json(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def loracloud_transport():
    """Provide a recording httpx transport for LoRaCloud clients."""
    return RecordingTransport()


@pytest.fixture
def frozen_now():
    """Clock callable returning a fixed instant."""
    return lambda: FROZEN_NOW


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
