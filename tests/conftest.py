"""Pytest configuration and shared fixtures for apigee-client-core tests."""

import pytest

from apigee_client.auth.credentials import CredentialBundle
from apigee_client.testing import FakeApigee


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    """Auto-cleanup: Clear Apigee environment variables before each test.

    This prevents a developer's real provider settings from leaking into
    configuration tests.
    """
    import os

    test_prefixes = ("APIGEE_", "TEST_")

    for key in list(os.environ.keys()):
        if any(key.startswith(prefix) for prefix in test_prefixes):
            monkeypatch.delenv(key, raising=False)

    yield


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_apigee():
    return FakeApigee(oauth_host="login.example.com")


@pytest.fixture
def oauth_bundle():
    return CredentialBundle(
        organization="org1",
        username="u",
        password="p",
        oauth_server="login.example.com",
        server="api.example.com",
    )
