"""Snapshot endpoints: graph, stats, insights, status and refresh."""

import structlog
from fastapi import APIRouter, BackgroundTasks, Request

from chatgraph.config import PipelineOptions
from chatgraph.kernel.errors import ChatGraphError
from chatgraph.pipeline import SnapshotStore

router = APIRouter(prefix="/api")
logger = structlog.get_logger()


def _store(request: Request) -> SnapshotStore:
    return request.app.state.snapshot_store


@router.get("/status")
async def get_status(request: Request):
    return _store(request).status_dict()


@router.get("/graph")
async def get_graph(request: Request):
    snapshot = _store(request).snapshot
    return snapshot.graph.model_dump(mode="json", by_alias=True)


@router.get("/stats")
async def get_stats(request: Request):
    snapshot = _store(request).snapshot
    return snapshot.stats.model_dump(mode="json", by_alias=True)


@router.get("/insights")
async def get_insights(request: Request):
    snapshot = _store(request).snapshot
    return snapshot.insights.model_dump(mode="json", by_alias=True)


async def _run_refresh(request_app) -> None:
    store: SnapshotStore = request_app.state.snapshot_store
    gateway_factory = request_app.state.gateway_factory
    options: PipelineOptions = request_app.state.pipeline_options

    try:
        gateway = gateway_factory()
    except Exception as e:
        store.release_claim()
        store.record_failure(e)
        logger.exception("Gateway client could not be created", error=str(e))
        return

    try:
        await store.refresh(gateway, options, claimed=True)
    except ChatGraphError as e:
        # Already reflected in the store status; the previous snapshot stays published.
        logger.warning("Background refresh failed", code=e.code, error=e.message)
    except Exception as e:
        logger.exception("Background refresh crashed", error=str(e))
    finally:
        store.release_claim()
        close = getattr(gateway, "aclose", None)
        if close is not None:
            await close()


@router.post("/refresh", status_code=202)
async def refresh(request: Request, background_tasks: BackgroundTasks):
    """Start a full recomputation; poll `/api/status` for progress."""
    _store(request).claim()
    background_tasks.add_task(_run_refresh, request.app)
    return {"status": "accepted"}
