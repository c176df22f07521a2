"""Main entry point for BugScout."""

import argparse
import asyncio
import json
import sys

import structlog

from bugscout.config import get_settings
from bugscout.exceptions import PipelineUnavailableError
from bugscout.pipeline import create_pipeline
from bugscout.utils.logging import configure_logging

logger = structlog.get_logger()

DRAIN_TIMEOUT_SECONDS = 30.0


async def run_sync() -> dict:
    """Run one sync and wait for its detached side effects."""
    pipeline = create_pipeline()
    try:
        summary = await pipeline.run()
    finally:
        await pipeline.background.drain(timeout=DRAIN_TIMEOUT_SECONDS)
        await pipeline.close()
    return summary.to_dict()


def serve(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("bugscout.api.server:app", host=host, port=port)


def cli():
    """Command-line interface."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)

    parser = argparse.ArgumentParser(
        description="BugScout: turn error telemetry into issues with suggested fixes"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("sync", help="Run one error-event sync and print the summary")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=settings.server_host, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=settings.server_port, help="Bind port")

    args = parser.parse_args()

    if args.command == "serve":
        serve(args.host, args.port)
        return

    try:
        summary = asyncio.run(run_sync())
    except PipelineUnavailableError as e:
        logger.error("Sync unavailable", error=str(e))
        sys.exit(2)

    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    cli()
