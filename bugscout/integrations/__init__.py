"""Integrations module for external services.

Provides:
- PostHog events API (telemetry source)
- Slack new-issue alerts
"""

from .posthog import PostHogEventSource
from .slack import SlackConfig, SlackNotifier

__all__ = [
    "PostHogEventSource",
    "SlackConfig",
    "SlackNotifier",
]
