"""System prompts and prompt builders for the analysis stages.

Usage:
    from bugscout.analysis.prompts import build_classification_prompt
    system, user = build_classification_prompt(aggregates, codebase_map)
"""

import json
from typing import Optional

from bugscout.analysis.categories import categories_summary
from bugscout.core.grouper import SessionAggregate
from bugscout.core.issues import ClassifiedIssue, KnowledgeLogEntry

MAX_EVENTS_PER_AGGREGATE = 30

# ============================================================================
# ISSUE MONITORING (CLASSIFICATION)
# ============================================================================

CLASSIFICATION_PROMPT = """# Role
You are an issue monitoring agent for a web application. You receive user
sessions that contained console errors, rage clicks (repeated clicks on the
same element, a sign of frustration) or dead clicks (clicks with no effect,
a sign of broken or unresponsive UI).

# Task
Produce at most one issue per session. Skip a session when its events show
no real problem.

{categories}

{codebase_map}

# Output
Valid JSON only, no markdown:
{{
  "issues": [
    {{
      "recording_id": "<session id exactly as given>",
      "category": "<category id>",
      "issue_type": "<issue type id>",
      "severity": "Critical" | "High" | "Medium" | "Low",
      "title": "<short user-facing title>",
      "description": "<2-3 sentences: what went wrong, how to investigate via session replay>",
      "code_location": "<likely file path>",
      "code_snippet_hint": "<optional: what to look for in that file>",
      "start_url": "<page where it happened>"
    }}
  ]
}}
Severity must be exactly one of Critical, High, Medium, Low."""

# ============================================================================
# SOLUTION (FIX SUGGESTION)
# ============================================================================

FIX_SUGGESTION_PROMPT = """# Role
You are a solution agent. You receive issues found by an issue monitoring
agent and suggest concrete fixes for each.

# Guidance
- Use the codebase map only to align file paths and component names. Do not
  invent file contents.
- suggested_fix: step-by-step, concrete and actionable.
- code_edits: optional list of {{"file", "description", "snippet"}} with
  minimal snippets.
- agent_confidence_score: number from 0 to 1. Set it high (0.8-1.0) when a
  past solution below closely matches and had a high developer rating; lower
  when you are inferring without a close match.
{knowledge}

{codebase_map}

# Output
Valid JSON only, no markdown:
{{
  "suggested_fixes": [
    {{
      "recording_id": "<id>",
      "title": "<same as input>",
      "suggested_fix": "<multiline step-by-step fix>",
      "code_location": "<same file path>",
      "code_edits": [{{"file": "<path>", "description": "<what to do>", "snippet": "<code>"}}],
      "agent_confidence_score": 0.0
    }}
  ]
}}
Include one entry per input issue."""


def _codebase_section(codebase_map: Optional[str]) -> str:
    if not codebase_map:
        return ""
    return f"# Codebase map\n{codebase_map.strip()}"


def summarize_aggregate(aggregate: SessionAggregate) -> str:
    """One summary line per aggregate."""
    counts = aggregate.counts
    parts = [f"{counts.exceptions} console error(s)"]
    if counts.rage_clicks:
        parts.append(f"{counts.rage_clicks} rage click(s)")
    if counts.dead_clicks:
        parts.append(f"{counts.dead_clicks} dead click(s)")
    if aggregate.first_url:
        parts.append(f"start URL: {aggregate.first_url}")
    parts.append(f"started: {aggregate.first_timestamp.isoformat()}")
    return f"- Session {aggregate.aggregate_id} ({aggregate.kind.value}): {', '.join(parts)}"


def build_classification_prompt(
    aggregates: list[SessionAggregate],
    codebase_map: Optional[str] = None,
) -> tuple[str, str]:
    """Return (system, user) prompts for a classification batch."""
    system = CLASSIFICATION_PROMPT.format(
        categories=categories_summary(),
        codebase_map=_codebase_section(codebase_map),
    )
    summary = "\n".join(summarize_aggregate(a) for a in aggregates)
    details = {
        a.aggregate_id: a.details()[:MAX_EVENTS_PER_AGGREGATE]
        for a in aggregates
    }
    user = (
        f"Sessions with issues:\n{summary}\n\n"
        f"Events per session (ordered by time):\n{json.dumps(details, indent=1)}"
    )
    return system, user


def format_knowledge(entries: list[KnowledgeLogEntry]) -> str:
    if not entries:
        return ""
    lines = [
        "\n# Past solutions from the knowledge base",
        "When your suggestion aligns with a past solution that had a high developer rating, "
        "set agent_confidence_score closer to 1.0.",
    ]
    for entry in entries:
        rating = entry.developer_rating if entry.developer_rating is not None else "-"
        lines.append(
            f"- title: {entry.title}\n"
            f"  description: {entry.description}\n"
            f"  severity: {entry.severity}\n"
            f"  suggested_fix: {entry.suggested_fix}\n"
            f"  developer_rating: {rating}"
        )
    return "\n".join(lines)


def format_issues(issues: list[ClassifiedIssue]) -> str:
    return "\n\n".join(
        f"- recording_id: {i.recording_id}\n"
        f"  category: {i.category} / {i.issue_type}\n"
        f"  severity: {i.severity.value}\n"
        f"  title: {i.title}\n"
        f"  description: {i.description}\n"
        f"  code_location: {i.code_location}\n"
        f"  code_snippet_hint: {i.code_snippet_hint or '(none)'}\n"
        f"  start_url: {i.start_url or '(none)'}"
        for i in issues
    )


def build_fix_prompt(
    issues: list[ClassifiedIssue],
    knowledge: list[KnowledgeLogEntry],
    codebase_map: Optional[str] = None,
    previous_fix: Optional[str] = None,
    instructions: Optional[str] = None,
) -> tuple[str, str]:
    """Return (system, user) prompts; revision mode when previous_fix and instructions are given."""
    system = FIX_SUGGESTION_PROMPT.format(
        knowledge=format_knowledge(knowledge),
        codebase_map=_codebase_section(codebase_map),
    )
    issues_block = format_issues(issues)
    if previous_fix is not None and instructions is not None and len(issues) == 1:
        user = (
            "The developer requested a revision for this issue.\n\n"
            f"Previous suggested fix:\n{previous_fix}\n\n"
            f"Developer revision instructions:\n{instructions}\n\n"
            f"Issue context:\n{issues_block}\n\n"
            "Output a revised suggested fix in the same JSON format "
            f"(suggested_fixes with one object for recording_id {issues[0].recording_id})."
        )
    else:
        user = f"Issues from the issue monitoring agent (fix each):\n\n{issues_block}"
    return system, user
