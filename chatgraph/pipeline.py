"""
Relationship Graph Pipeline

Ingestion -> graph building -> name resolution -> insights, producing one
immutable `Snapshot` per run. A run either publishes a complete snapshot or
raises; partial snapshots are never produced.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any
from uuid import uuid4

import structlog
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from chatgraph.analytics import InsightEngine, Insights
from chatgraph.config import PipelineOptions
from chatgraph.connectors.base import GatewayClient
from chatgraph.enrichment import NameResolver
from chatgraph.graph import BuiltGraph, GraphBuilder, GraphPayload, PersonNode
from chatgraph.ingestion import IngestionAccumulator, IngestionOrchestrator, ProgressReporter
from chatgraph.ingestion.progress import GRAPH_BUILDING_CEILING, ProgressSink, ProgressUpdate
from chatgraph.kernel.errors import ChatGraphError, PipelineBusyError, SnapshotNotReadyError
from chatgraph.kernel.time import epoch_seconds_to_iso, utc_now
from chatgraph.monitoring import get_metrics

logger = structlog.get_logger()


class _SnapshotModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class DataLimits(_SnapshotModel):
    max_messages_per_chat: int
    fetched_count: int
    oldest_message_date: str | None = None


class Stats(_SnapshotModel):
    total_contacts: int
    total_groups: int
    total_chats: int
    total_nodes: int
    total_links: int
    total_messages: int
    avg_messages_per_chat: int
    data_limits: DataLimits


class Snapshot(_SnapshotModel):
    graph: GraphPayload
    stats: Stats
    insights: Insights

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def build_stats(
    accumulator: IngestionAccumulator,
    graph: BuiltGraph,
    options: PipelineOptions,
) -> Stats:
    total_chats = accumulator.chat_count
    return Stats(
        total_contacts=sum(1 for c in accumulator.contacts if not c.is_group),
        total_groups=len(graph.groups),
        total_chats=total_chats,
        total_nodes=len(graph.persons) + len(graph.groups),
        total_links=len(graph.links),
        total_messages=accumulator.total_messages,
        avg_messages_per_chat=round(accumulator.total_messages / total_chats) if total_chats else 0,
        data_limits=DataLimits(
            max_messages_per_chat=options.message_limit,
            fetched_count=accumulator.fetched_chats,
            oldest_message_date=epoch_seconds_to_iso(accumulator.oldest_message_ts),
        ),
    )


class RelationshipGraphPipeline:
    """
    One full recomputation of the relationship graph.

    Usage:
        pipeline = RelationshipGraphPipeline(gateway, PipelineOptions())
        snapshot = await pipeline.run()
    """

    def __init__(
        self,
        gateway: GatewayClient,
        options: PipelineOptions | None = None,
        progress: ProgressSink | None = None,
        *,
        sleep=asyncio.sleep,
    ):
        self.gateway = gateway
        self.options = options or PipelineOptions()
        self._progress_sink = progress
        self._sleep = sleep

    async def run(self, cancel_event: asyncio.Event | None = None) -> Snapshot:
        run_id = uuid4().hex[:12]
        started = time.monotonic()
        reporter = ProgressReporter(self._progress_sink)

        with structlog.contextvars.bound_contextvars(run_id=run_id):
            logger.info("Pipeline run started", message_limit=self.options.message_limit)
            try:
                snapshot = await self._run(reporter, cancel_event)
            except ChatGraphError as e:
                get_metrics().track_pipeline_run("failed", time.monotonic() - started)
                logger.error("Pipeline run failed", code=e.code, error=e.message)
                raise
            except Exception as e:
                get_metrics().track_pipeline_run("failed", time.monotonic() - started)
                logger.exception("Pipeline run crashed", error=str(e))
                raise

            duration = time.monotonic() - started
            get_metrics().track_pipeline_run("succeeded", duration)
            logger.info(
                "Pipeline run finished",
                duration_seconds=round(duration, 3),
                nodes=snapshot.stats.total_nodes,
                links=snapshot.stats.total_links,
            )
            return snapshot

    async def _run(self, reporter: ProgressReporter, cancel_event: asyncio.Event | None) -> Snapshot:
        orchestrator = IngestionOrchestrator(self.gateway, self.options, reporter, sleep=self._sleep)
        accumulator = await orchestrator.collect(cancel_event)

        await reporter.report(GRAPH_BUILDING_CEILING, "Building graph...")
        graph = GraphBuilder(self.options).build(accumulator)

        resolver = NameResolver(self.gateway, self.options)
        applied = resolver.apply_display_names(graph.persons.values(), accumulator.display_names)
        logger.debug("Display names applied", applied=applied)

        await reporter.report(95, "Resolving names...")
        await resolver.enrich(graph.persons.values())
        resolver.finalize_self(graph.persons.values())

        await reporter.report(98, "Computing insights...")
        payload = graph.to_payload()
        insights = InsightEngine(self.options).compute(
            [node for node in payload.nodes if isinstance(node, PersonNode)],
            graph.groups.values(),
            graph.memberships,
        )

        snapshot = Snapshot(
            graph=payload,
            stats=build_stats(accumulator, graph, self.options),
            insights=insights,
        )
        await reporter.report(100, "Done")
        return snapshot


class PipelineStatus(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class SnapshotStore:
    """
    Holds the latest published snapshot for the read-only surfaces.

    A failed run leaves the previously published snapshot in place.
    """

    def __init__(self):
        self._snapshot: Snapshot | None = None
        self._lock = asyncio.Lock()
        self._claimed = False
        self.status = PipelineStatus.IDLE
        self.last_error: dict[str, Any] | None = None
        self.last_progress: ProgressUpdate | None = None
        self.published_at = None

    @property
    def snapshot(self) -> Snapshot:
        if self._snapshot is None:
            raise SnapshotNotReadyError()
        return self._snapshot

    @property
    def is_running(self) -> bool:
        return self._claimed or self._lock.locked()

    def claim(self) -> None:
        """Reserve the store for a refresh that will start in the background."""
        if self.is_running:
            raise PipelineBusyError()
        self._claimed = True
        self.status = PipelineStatus.PROCESSING

    def release_claim(self) -> None:
        self._claimed = False

    def record_failure(self, error: Exception) -> None:
        self.status = PipelineStatus.ERROR
        if isinstance(error, ChatGraphError):
            self.last_error = error.to_public_dict()
        else:
            self.last_error = {"detail": str(error), "code": "pipeline.crashed"}

    def _record_progress(self, update: ProgressUpdate) -> None:
        self.last_progress = update

    async def refresh(
        self,
        gateway: GatewayClient,
        options: PipelineOptions | None = None,
        cancel_event: asyncio.Event | None = None,
        *,
        claimed: bool = False,
    ) -> Snapshot:
        """Run the pipeline and publish its snapshot. Pass `claimed` after `claim()`."""
        if self._lock.locked() or (self._claimed and not claimed):
            raise PipelineBusyError()

        async with self._lock:
            self._claimed = False
            self.status = PipelineStatus.PROCESSING
            self.last_progress = None
            pipeline = RelationshipGraphPipeline(gateway, options, progress=self._record_progress)
            try:
                snapshot = await pipeline.run(cancel_event)
            except Exception as e:
                self.record_failure(e)
                raise

            self._snapshot = snapshot
            self.published_at = utc_now()
            self.status = PipelineStatus.READY
            self.last_error = None
            return snapshot

    def status_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "progress": self.last_progress.to_dict() if self.last_progress else None,
            "error": self.last_error,
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
        }
