"""
chatgraph command line

Run one full pipeline against the configured gateway and emit the snapshot:
  python -m chatgraph.cli run --output snapshot.json
  WAHA_URL=http://waha:3000 chatgraph run --message-limit 100
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import structlog

from chatgraph.config import PipelineOptions, get_settings
from chatgraph.connectors.waha import WahaGatewayClient
from chatgraph.ingestion.progress import ProgressUpdate
from chatgraph.kernel.errors import ChatGraphError
from chatgraph.monitoring import configure_logging
from chatgraph.pipeline import RelationshipGraphPipeline

logger = structlog.get_logger()


def _log_progress(update: ProgressUpdate) -> None:
    logger.info("Progress", current=update.current, total=update.total, message=update.message)


async def _run(args: argparse.Namespace) -> int:
    settings = get_settings()
    options = PipelineOptions.from_settings(
        settings,
        message_limit=args.message_limit,
        chat_batch_size=args.batch_size,
    )

    async with WahaGatewayClient.from_settings(settings) as gateway:
        pipeline = RelationshipGraphPipeline(gateway, options, progress=_log_progress)
        try:
            snapshot = await pipeline.run()
        except ChatGraphError as e:
            logger.error("Run failed", code=e.code, error=e.message)
            return 1

    payload = json.dumps(snapshot.to_dict(), indent=2 if args.pretty else None)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        logger.info("Snapshot written", path=args.output, nodes=snapshot.stats.total_nodes)
    else:
        sys.stdout.write(payload + "\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chatgraph", description="Relationship graph from chat history")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Fetch everything and compute one snapshot")
    run.add_argument("--output", "-o", help="Write snapshot JSON to this file instead of stdout")
    run.add_argument("--message-limit", type=int, default=None, help="Messages sampled per chat")
    run.add_argument("--batch-size", type=int, default=None, help="Chats fetched concurrently per batch")
    run.add_argument("--pretty", action="store_true", help="Indent JSON output")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(stream=sys.stderr)
    if args.command == "run":
        return asyncio.run(_run(args))
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
