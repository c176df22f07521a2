"""Slack new-issue alerts.

Posts a Block Kit summary of newly detected issues to an incoming webhook.
"""

import os
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

from bugscout.core.issues import Issue, Severity

logger = structlog.get_logger()

MAX_ISSUES_PER_MESSAGE = 10

SEVERITY_EMOJI = {
    Severity.CRITICAL: ":red_circle:",
    Severity.HIGH: ":large_orange_circle:",
    Severity.MEDIUM: ":large_yellow_circle:",
    Severity.LOW: ":white_circle:",
}


@dataclass
class SlackConfig:
    """Configuration for Slack alerts."""
    webhook_url: str | None = None
    timeout_seconds: float = 30.0
    retry_attempts: int = 3


class SlackNotifier:
    """Sends new-issue alerts to a Slack incoming webhook."""

    def __init__(self, config: Optional[SlackConfig] = None, webhook_url: Optional[str] = None):
        self.config = config or SlackConfig(
            webhook_url=webhook_url or os.environ.get("SLACK_WEBHOOK_URL"),
        )
        self.log = logger.bind(component="slack_notifier")

    @property
    def is_configured(self) -> bool:
        return bool(self.config.webhook_url and self.config.webhook_url.strip())

    def _truncate(self, text: Optional[str], max_length: int = 220) -> str:
        """Truncate text with ellipsis if too long."""
        if not text:
            return "n/a"
        if len(text) <= max_length:
            return text
        return text[:max_length - 3] + "..."

    def _build_new_issue_blocks(self, issues: list[Issue]) -> list[dict]:
        selected = issues[:MAX_ISSUES_PER_MESSAGE]
        title = (
            "1 new issue detected by BugScout"
            if len(issues) == 1
            else f"{len(issues)} new issues detected by BugScout"
        )
        blocks: list[dict[str, Any]] = [
            {"type": "header", "text": {"type": "plain_text", "text": title, "emoji": True}},
            {"type": "section", "text": {"type": "mrkdwn", "text": "Issue alerts from session replay analysis."}},
            {"type": "divider"},
        ]

        for issue in selected:
            emoji = SEVERITY_EMOJI.get(issue.severity, ":white_circle:")
            lines = [
                f"{emoji} *{self._truncate(issue.title, 100)}* ({issue.severity.value})",
                f"*Recording:* `{issue.recording_id}`",
                f"*Start URL:* {self._truncate(issue.start_url, 140)}",
                f"*Code location:* `{self._truncate(issue.code_location, 120)}`",
                f"*Description:* {self._truncate(issue.description, 260)}",
                f"*Suggested fix:* {self._truncate(issue.suggested_fix, 220)}",
            ]
            blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": "\n".join(lines)}})

        overflow = len(issues) - len(selected)
        if overflow > 0:
            blocks.append({
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": f"+{overflow} more issue(s) not shown"}],
            })
        return blocks

    async def send_new_issue_alert(self, issues: list[Issue]) -> bool:
        """Send an alert for the given issues. Returns True if Slack accepted it."""
        if not issues:
            return False
        if not self.is_configured:
            self.log.debug("Slack not configured, skipping alert")
            return False

        text = f"{len(issues)} new issue(s) detected by BugScout"
        async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
            return await self._send_via_webhook(client, text, self._build_new_issue_blocks(issues))

    async def _send_via_webhook(
        self,
        client: httpx.AsyncClient,
        text: str,
        blocks: list[dict],
    ) -> bool:
        """Send message via webhook URL."""
        payload: dict[str, Any] = {"text": text, "blocks": blocks}

        for attempt in range(self.config.retry_attempts):
            try:
                response = await client.post(self.config.webhook_url, json=payload)

                if response.status_code == 200:
                    self.log.info("Sent Slack new-issue alert")
                    return True

                self.log.warning(
                    "Slack webhook failed",
                    status=response.status_code,
                    response=response.text[:200],
                    attempt=attempt + 1,
                )

            except httpx.RequestError as e:
                self.log.error(
                    "Slack webhook request error",
                    error=str(e),
                    attempt=attempt + 1,
                )

        return False
