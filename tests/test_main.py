"""Tests for the command-line entry point."""

import json
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest


class TestCli:
    """Tests for cli()."""

    def test_sync_prints_summary(self, mock_env_vars, monkeypatch, capsys):
        from bugscout.main import cli
        from bugscout.pipeline import SyncSummary

        pipeline = MagicMock()
        pipeline.run = AsyncMock(return_value=SyncSummary(new_issues=2))
        pipeline.background.drain = AsyncMock()
        pipeline.close = AsyncMock()
        monkeypatch.setattr(sys, "argv", ["bugscout", "sync"])

        with patch("bugscout.main.create_pipeline", return_value=pipeline), \
             patch("bugscout.main.configure_logging"):
            cli()

        assert json.loads(capsys.readouterr().out)["new_issues"] == 2
        pipeline.background.drain.assert_awaited_once()
        pipeline.close.assert_awaited_once()

    def test_sync_unavailable_exits(self, mock_env_vars, monkeypatch):
        from bugscout.exceptions import PipelineUnavailableError
        from bugscout.main import cli

        pipeline = MagicMock()
        pipeline.run = AsyncMock(side_effect=PipelineUnavailableError("Issue store is not configured"))
        pipeline.background.drain = AsyncMock()
        pipeline.close = AsyncMock()
        monkeypatch.setattr(sys, "argv", ["bugscout", "sync"])

        with patch("bugscout.main.create_pipeline", return_value=pipeline), \
             patch("bugscout.main.configure_logging"):
            with pytest.raises(SystemExit) as exc_info:
                cli()

        assert exc_info.value.code == 2

    def test_serve(self, mock_env_vars, monkeypatch):
        from bugscout.main import cli

        monkeypatch.setattr(sys, "argv", ["bugscout", "serve", "--port", "9000"])

        with patch("bugscout.main.serve") as serve, patch("bugscout.main.configure_logging"):
            cli()

        serve.assert_called_once_with("0.0.0.0", 9000)
