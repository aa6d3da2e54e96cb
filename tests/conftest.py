"""Shared fixtures for the flashcard API tests."""

from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from api.src.config import Settings
from api.src.main import create_app
from api.src.models.flashcard import InferenceCall

TEST_OLLAMA_URL = "http://ollama.test:11434/api/generate"


class StubInferenceClient:
    """Records every executed call and replies with a canned body or error."""

    def __init__(self, reply: bytes = b'{"response": "X"}', error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[InferenceCall] = []

    async def execute(self, call: InferenceCall) -> bytes:
        self.calls.append(call)
        if self.error is not None:
            raise self.error
        return self.reply


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment's .env file."""
    values = {"ollama_url": TEST_OLLAMA_URL, "log_format": "text"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    """Default test settings (authenticator disabled)."""
    return make_settings()


@pytest.fixture
def stub_backend() -> StubInferenceClient:
    """Inference client stub replying {"response": "X"}."""
    return StubInferenceClient()


@pytest.fixture
def client(settings, stub_backend) -> TestClient:
    """Test client for the fully assembled app."""
    return TestClient(create_app(settings, stub_backend))


@pytest.fixture
def settings_factory():
    """Build settings with overrides."""
    return make_settings


@pytest.fixture
def stub_factory():
    """Build inference client stubs with a custom reply or error."""
    return StubInferenceClient


@pytest.fixture
def app_factory():
    """Build a test client for an assembled app from a backend and settings overrides."""

    def factory(backend, **overrides) -> TestClient:
        return TestClient(create_app(make_settings(**overrides), backend))

    return factory
