"""BugScout sync: turns PostHog error telemetry into analyzed, deduplicated issues."""

__version__ = "0.1.0"
