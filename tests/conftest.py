"""
Shared test fixtures for the Sweep completion pipeline tests.

This module provides fake collaborators (tracker, API client, clock) and
pre-wired provider fixtures so each test only states what it changes.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest
from lsprotocol.types import Position

from sweep_autocomplete._constants import API_KEY_ENV_VAR
from sweep_autocomplete.config import ConfigurationGate, ConfigurationStore
from sweep_autocomplete.context import ContextAssembler
from sweep_autocomplete.document import TextDocument
from sweep_autocomplete.models import CompletionResult, ContextFile, EditDiffRecord
from sweep_autocomplete.provider import InlineEditProvider
from sweep_autocomplete.throttle import CredentialPromptThrottle

DOC_URI = "file:///workspace/app.py"
DOC_PATH = "/workspace/app.py"


@pytest.fixture(autouse=True)
def no_env_api_key(monkeypatch):
    """Keep a developer's real SWEEP_API_KEY out of every test."""
    monkeypatch.delenv(API_KEY_ENV_VAR, raising=False)


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
def store():
    """Settings store with an API key and default pipeline settings."""
    return ConfigurationStore({"sweep": {"apiKey": "test-key"}})


@pytest.fixture
def mock_tracker():
    """
    Mock DocumentTracker.

    By default the test document has original content "a" and the tracker
    holds one other buffer and one diff.
    """
    tracker = Mock()
    tracker.get_original_content = Mock(return_value="a")
    tracker.get_recent_context_files = Mock(
        return_value=[ContextFile(filepath="/workspace/util.py", content="x = 1\n", mtime=5.0)]
    )
    tracker.get_edit_diff_history = Mock(
        return_value=[EditDiffRecord(filepath=DOC_PATH, diff="@@ -1 +1 @@\n-a\n+ab\n")]
    )
    tracker.get_user_actions = Mock(return_value=[])
    return tracker


@pytest.fixture
def mock_api_client():
    """Mock SweepApiClient with a key and a fixed completion."""
    client = Mock()
    client.api_key = "test-key"
    client.get_autocomplete = AsyncMock(
        return_value=CompletionResult(completion="ab", start_index=0, end_index=2)
    )
    return client


@pytest.fixture
def mock_prompt():
    return Mock()


@pytest.fixture
def diagnostics_source():
    return Mock(return_value=[])


@pytest.fixture
def make_provider(store, mock_tracker, mock_api_client, mock_prompt, clock, diagnostics_source):
    """Factory building an InlineEditProvider from the fixtures, with overrides."""

    def _make(**overrides: Any) -> InlineEditProvider:
        tracker = overrides.get("tracker", mock_tracker)
        return InlineEditProvider(
            tracker=tracker,
            api_client=overrides.get("api_client", mock_api_client),
            config=overrides.get("config", ConfigurationGate(store)),
            throttle=overrides.get(
                "throttle", CredentialPromptThrottle(mock_prompt, clock=clock)
            ),
            assembler=overrides.get(
                "assembler", ContextAssembler(tracker, diagnostics_source)
            ),
        )

    return _make


@pytest.fixture
def document():
    """Document currently reading "ab" (tracked original is "a")."""
    return TextDocument(DOC_URI, "ab", path=DOC_PATH)


@pytest.fixture
def position():
    return Position(line=0, character=2)
