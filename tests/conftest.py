"""Shared fixtures for BugScout tests."""

import os
from typing import Optional

import pytest

from fakes import CannedClassifier, CannedSuggester, FakeEventSource, InMemoryIssueStore


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as exercising several components together"
    )


# Set test environment variables before importing modules
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test-key-12345")


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test-key-12345")
    monkeypatch.setenv("POSTHOG_API_KEY", "phx_test_key")
    monkeypatch.setenv("POSTHOG_HOST", "https://eu.posthog.com")
    monkeypatch.setenv("POSTHOG_PROJECT_ID", "12345")
    monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "test-service-key")
    monkeypatch.delenv("SLACK_WEBHOOK_URL", raising=False)
    monkeypatch.delenv("CLOUDFLARE_ACCOUNT_ID", raising=False)
    monkeypatch.delenv("CLOUDFLARE_API_TOKEN", raising=False)
    monkeypatch.delenv("DEFAULT_OWNER_ID", raising=False)
    monkeypatch.delenv("CODEBASE_MAP_PATH", raising=False)


@pytest.fixture
def pipeline_settings(mock_env_vars):
    """Settings with small, test-friendly tunables."""
    from bugscout.config import Settings

    return Settings(
        analysis_batch_size=20,
        max_concurrent_batches=1,
        analysis_timeout_seconds=5.0,
        batch_timeout_seconds=5.0,
        session_join_window_seconds=1800,
        knowledge_context_limit=25,
    )


@pytest.fixture
def make_raw_event():
    """Factory for raw PostHog event rows."""

    def _make(
        event_id: str,
        timestamp: Optional[str] = "2026-10-17T10:00:00Z",
        session_id: Optional[str] = None,
        distinct_id: Optional[str] = "user-1",
        url: Optional[str] = "https://shop.example.com/checkout",
        message: Optional[str] = None,
        **properties,
    ) -> dict:
        props = dict(properties)
        if session_id is not None:
            props["$session_id"] = session_id
        if url is not None:
            props["$current_url"] = url
        if message is not None:
            props["$exception_message"] = message
        row = {"id": event_id, "properties": props}
        if timestamp is not None:
            row["timestamp"] = timestamp
        if distinct_id is not None:
            row["distinct_id"] = distinct_id
        return row

    return _make


@pytest.fixture
def issue_store():
    """Empty in-memory issue store."""
    return InMemoryIssueStore()


@pytest.fixture
def event_source():
    """Event source with no rows; tests fill `.rows`."""
    return FakeEventSource()


@pytest.fixture
def classifier():
    return CannedClassifier()


@pytest.fixture
def suggester():
    return CannedSuggester()


@pytest.fixture
def sample_issue():
    """A persisted-looking issue."""
    from bugscout.core.issues import Issue, Severity

    return Issue(
        recording_id="s1",
        category="errors",
        issue_type="js-frontend-errors",
        title="Checkout crashes on submit",
        description="Session ID: s1. Time faced: Oct 17, 2026, 10:00 AM.\n\nTypeError on submit.",
        severity=Severity.HIGH,
        code_location="src/checkout/Form.tsx",
        start_url="https://shop.example.com/checkout",
        suggested_fix="Guard against undefined cart",
    )
