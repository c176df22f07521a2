"""Exception hierarchy for the sync pipeline."""


class BugScoutError(Exception):
    """Base class for all BugScout errors."""


class PipelineUnavailableError(BugScoutError):
    """The pipeline cannot start, e.g. no issue store is configured."""


class IssueStoreError(BugScoutError):
    """A durable store request failed."""


class IssueNotFoundError(IssueStoreError):
    """No issue exists for the requested recording ID."""

    def __init__(self, recording_id: str):
        super().__init__(f"Issue not found: {recording_id}")
        self.recording_id = recording_id


class TelemetryFetchError(BugScoutError):
    """The telemetry provider rejected or failed a query."""


class AnalysisError(BugScoutError):
    """An analysis stage call failed."""
