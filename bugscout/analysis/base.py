"""Analysis stage interfaces.

The pipeline depends only on these contracts, so the reasoning behind
classification and fix suggestion can be swapped (a Claude-backed
implementation ships in bugscout.analysis.claude; tests use canned stubs).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from bugscout.core.grouper import SessionAggregate
from bugscout.core.issues import ClassifiedIssue, KnowledgeLogEntry, SuggestedFix


@dataclass
class FixRevision:
    """Developer feedback on a previous fix, for revision mode."""
    previous_fix: str
    instructions: str


class IssueClassifier(ABC):
    """Stage 1: session aggregates to classified issues."""

    @abstractmethod
    async def classify(self, aggregates: list[SessionAggregate]) -> list[ClassifiedIssue]:
        """
        Classify a batch of aggregates.

        Returns zero or one issue per aggregate; aggregates without a
        discernible issue are omitted. Raises AnalysisError when the call
        itself fails.
        """


class FixSuggester(ABC):
    """Stage 2: classified issues to suggested fixes."""

    @abstractmethod
    async def suggest_fixes(
        self,
        issues: list[ClassifiedIssue],
        knowledge_context: list[KnowledgeLogEntry],
        revision: Optional[FixRevision] = None,
    ) -> list[SuggestedFix]:
        """
        Suggest fixes for classified issues.

        Args:
            issues: Issues to fix (exactly one in revision mode)
            knowledge_context: Recent ledger entries used to calibrate confidence
            revision: Previous fix plus developer instructions to revise it

        Raises AnalysisError when the call itself fails.
        """
