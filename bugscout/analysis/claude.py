"""
Claude-backed analysis stages.

ClaudeIssueClassifier and ClaudeFixSuggester call the Anthropic Messages API
and validate the JSON they get back through bugscout.core.issues. Transport
failures and unparseable responses raise AnalysisError so the batch
scheduler can isolate the batch; individually malformed records are dropped.
"""

import json
from pathlib import Path
from typing import Any, Optional

import structlog
from anthropic import APIError, AsyncAnthropic

from bugscout.analysis.base import FixRevision, FixSuggester, IssueClassifier
from bugscout.analysis.prompts import build_classification_prompt, build_fix_prompt
from bugscout.config import get_settings
from bugscout.core.grouper import SessionAggregate
from bugscout.core.issues import (
    ClassifiedIssue,
    KnowledgeLogEntry,
    SuggestedFix,
    parse_classified_issue,
    parse_suggested_fix,
)
from bugscout.exceptions import AnalysisError

logger = structlog.get_logger()


def load_codebase_map(path: Optional[str]) -> Optional[str]:
    """Read the optional codebase map; a missing file only disables it."""
    if not path:
        return None
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Codebase map unavailable", path=path, error=str(e))
        return None


class ClaudeAnalyzer:
    """Shared Anthropic plumbing for both stages."""

    def __init__(
        self,
        client: Optional[AsyncAnthropic] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        codebase_map: Optional[str] = None,
    ):
        self.settings = get_settings()
        if client is None:
            api_key = self.settings.anthropic_api_key
            if hasattr(api_key, "get_secret_value"):
                api_key = api_key.get_secret_value()
            client = AsyncAnthropic(
                api_key=api_key,
                timeout=self.settings.analysis_timeout_seconds,
            )
        self.client = client
        self.model = model or self.settings.analysis_model
        self.max_tokens = max_tokens or self.settings.analysis_max_tokens
        self.codebase_map = codebase_map if codebase_map is not None else load_codebase_map(
            self.settings.codebase_map_path
        )
        self.log = logger.bind(component=self.__class__.__name__)

    async def _complete(self, system: str, user: str) -> str:
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system,
                messages=[{"role": "user", "content": user}],
            )
        except APIError as e:
            raise AnalysisError(f"Anthropic request failed: {e}") from e

        if not response.content:
            raise AnalysisError("Empty response from model")
        return response.content[0].text

    def _parse_json_response(self, content: str) -> dict[str, Any]:
        """Parse JSON from a model response, handling code fences and prose."""
        text = content or ""
        if "```json" in text:
            text = text.split("```json")[1].split("```")[0]
        elif "```" in text:
            parts = text.split("```")
            if len(parts) >= 2:
                text = parts[1]

        json_start = text.find("{")
        json_end = text.rfind("}") + 1
        if json_start < 0 or json_end <= json_start:
            raise AnalysisError("No JSON object in model response")
        try:
            parsed = json.loads(text[json_start:json_end])
        except json.JSONDecodeError as e:
            self.log.warning(
                "Failed to parse JSON response",
                error=str(e),
                content_preview=content[:200] if content else None,
            )
            raise AnalysisError(f"Invalid JSON in model response: {e}") from e
        if not isinstance(parsed, dict):
            raise AnalysisError("Model response is not a JSON object")
        return parsed


class ClaudeIssueClassifier(ClaudeAnalyzer, IssueClassifier):
    """Stage 1 on Claude."""

    async def classify(self, aggregates: list[SessionAggregate]) -> list[ClassifiedIssue]:
        if not aggregates:
            return []

        system, user = build_classification_prompt(aggregates, self.codebase_map)
        parsed = self._parse_json_response(await self._complete(system, user))

        raw_issues = parsed.get("issues")
        if not isinstance(raw_issues, list):
            return []

        issues = [issue for issue in map(parse_classified_issue, raw_issues) if issue]
        dropped = len(raw_issues) - len(issues)
        self.log.info(
            "Classified aggregates",
            aggregates=len(aggregates),
            issues=len(issues),
            dropped=dropped,
        )
        return issues


class ClaudeFixSuggester(ClaudeAnalyzer, FixSuggester):
    """Stage 2 on Claude."""

    async def suggest_fixes(
        self,
        issues: list[ClassifiedIssue],
        knowledge_context: list[KnowledgeLogEntry],
        revision: Optional[FixRevision] = None,
    ) -> list[SuggestedFix]:
        if not issues:
            return []

        system, user = build_fix_prompt(
            issues,
            knowledge_context,
            self.codebase_map,
            previous_fix=revision.previous_fix if revision else None,
            instructions=revision.instructions if revision else None,
        )
        parsed = self._parse_json_response(await self._complete(system, user))

        raw_fixes = parsed.get("suggested_fixes", parsed.get("suggestedFixes"))
        if not isinstance(raw_fixes, list):
            return []

        fixes = [fix for fix in map(parse_suggested_fix, raw_fixes) if fix]
        self.log.info(
            "Suggested fixes",
            issues=len(issues),
            fixes=len(fixes),
            scored=sum(1 for f in fixes if f.agent_confidence_score is not None),
            revision=revision is not None,
        )
        return fixes
