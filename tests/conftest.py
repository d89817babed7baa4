"""
Shared fixtures for LogFluent tests.
"""

import pytest
from fastapi.testclient import TestClient

from logfluent.core.llm_client import MockLLMClient, get_llm_client
from logfluent.core.log_store import get_log_store
from tests.stubs import RecordingLLM, StatusRecordingStore


@pytest.fixture
def store():
    return StatusRecordingStore()


@pytest.fixture
def recording_llm():
    return RecordingLLM()


@pytest.fixture
def api(store):
    """TestClient wired to a fresh store and the mock LLM."""
    from logfluent.main import app

    llm = MockLLMClient()
    app.dependency_overrides[get_log_store] = lambda: store
    app.dependency_overrides[get_llm_client] = lambda: llm

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
