"""Tests for logging helpers."""

from unittest.mock import MagicMock

import pytest


class TestLogOperation:
    """Tests for log_operation."""

    def test_success_logged(self):
        from bugscout.utils.logging import log_operation

        log = MagicMock()
        bound = log.bind.return_value

        with log_operation("sync_error_events", log, owner_id="u1") as op:
            op["new_issues"] = 3

        log.bind.assert_called_once_with(operation="sync_error_events", owner_id="u1")
        message, = bound.info.call_args.args
        assert message == "sync_error_events completed"
        assert bound.info.call_args.kwargs["new_issues"] == 3
        assert bound.info.call_args.kwargs["success"] is True

    def test_failure_logged_and_raised(self):
        from bugscout.utils.logging import log_operation

        log = MagicMock()
        bound = log.bind.return_value

        with pytest.raises(RuntimeError):
            with log_operation("sync_error_events", log):
                raise RuntimeError("boom")

        assert bound.error.call_args.kwargs["error"] == "boom"

    def test_configure_logging_json(self):
        import structlog

        from bugscout.utils.logging import configure_logging

        configure_logging(level="DEBUG", json_format=True)

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        structlog.reset_defaults()
