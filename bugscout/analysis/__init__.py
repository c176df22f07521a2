"""Two-stage analysis: issue classification, then fix suggestion."""

from .base import FixRevision, FixSuggester, IssueClassifier
from .claude import ClaudeFixSuggester, ClaudeIssueClassifier

__all__ = [
    "ClaudeFixSuggester",
    "ClaudeIssueClassifier",
    "FixRevision",
    "FixSuggester",
    "IssueClassifier",
]
