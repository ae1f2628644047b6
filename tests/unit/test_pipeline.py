"""
End-to-end tests for the pipeline over the in-memory gateway.
"""

import pytest
from pydantic import ValidationError

from chatgraph.config import PipelineOptions
from chatgraph.graph import LinkKind
from chatgraph.kernel.errors import GatewayError, IngestionError, PipelineBusyError, SnapshotNotReadyError
from chatgraph.pipeline import PipelineStatus, RelationshipGraphPipeline, SnapshotStore
from tests.support.fake_gateway import FakeGateway

pytestmark = pytest.mark.unit


def _nodes_by_id(snapshot):
    return {node.id: node for node in snapshot.graph.nodes}


class TestRelationshipGraphPipeline:
    """Tests for RelationshipGraphPipeline.run."""

    @pytest.mark.asyncio
    async def test_full_run(self, gateway, fast_sleep):
        progress = []
        pipeline = RelationshipGraphPipeline(gateway, PipelineOptions(), progress=progress.append, sleep=fast_sleep)

        snapshot = await pipeline.run()

        nodes = _nodes_by_id(snapshot)
        assert set(nodes) == {"201@c.us", "202@c.us", "203@c.us", "100@c.us", "204@c.us", "900@g.us", "901@g.us"}
        assert nodes["100@c.us"].name == "Me"
        assert nodes["203@c.us"].name == "Carl"
        assert nodes["204@c.us"].name == "Dana"
        assert nodes["201@c.us"].name == "Alice"
        assert nodes["201@c.us"].connection_count == 3

        kinds = [link.kind for link in snapshot.graph.links]
        assert kinds.count(LinkKind.MEMBERSHIP) == 6
        assert kinds.count(LinkKind.DIRECT) == 2
        assert kinds.count(LinkKind.CO_MEMBER) == 6

        stats = snapshot.stats
        assert stats.total_contacts == 4
        assert stats.total_groups == 2
        assert stats.total_chats == 4
        assert stats.total_nodes == 7
        assert stats.total_links == 14
        assert stats.total_messages == 44
        assert stats.avg_messages_per_chat == 11
        assert stats.data_limits.max_messages_per_chat == 50
        assert stats.data_limits.fetched_count == 4
        assert stats.data_limits.oldest_message_date == "2023-11-03T08:26:40Z"

        insights = snapshot.insights
        assert [(c.name, c.count) for c in insights.top_contacts] == [("Alice", 40), ("Carl", 2)]
        assert [(g.name, g.count) for g in insights.top_groups] == [("Family", 3), ("Climbing", 3)]
        assert [(s.name, s.connections) for s in insights.super_connectors] == [("Alice", 3)]
        assert len(insights.unexpected_bridges) == 1
        bridge = insights.unexpected_bridges[0]
        assert bridge.name == "Alice"
        assert bridge.score == pytest.approx(0.8)
        assert (bridge.group_a, bridge.group_b) == ("Family", "Climbing")

        values = [u.current for u in progress]
        assert values == sorted(values)
        assert values[-1] == 100

    @pytest.mark.asyncio
    async def test_display_name_hint_scenario(self, fast_sleep):
        gateway = FakeGateway(
            self_payload={"id": "100@c.us"},
            contacts=[{"id": "4915112345678@c.us", "name": "4915112345678", "isMyContact": False}],
            chats=[{"id": "4915112345678@c.us"}],
            messages={"4915112345678@c.us": [{"timestamp": 1, "from": "4915112345678@c.us", "notifyName": "Alex"}]},
        )

        snapshot = await RelationshipGraphPipeline(gateway, sleep=fast_sleep).run()

        assert _nodes_by_id(snapshot)["4915112345678@c.us"].name == "Alex"
        assert gateway.calls["get_contact:4915112345678@c.us"] == 0

    @pytest.mark.asyncio
    async def test_enrichment_after_filter(self, fast_sleep):
        gateway = FakeGateway(
            self_payload={"id": "100@c.us"},
            contacts=[{"id": "300@c.us", "number": "300"}],
            chats=[{"id": "301@c.us"}],
            messages={"301@c.us": [{"timestamp": 1, "from": "301@c.us"}]},
            profiles={"301@c.us": {"pushname": "Pat", "isMyContact": True}},
        )

        snapshot = await RelationshipGraphPipeline(gateway, sleep=fast_sleep).run()

        nodes = _nodes_by_id(snapshot)
        assert nodes["301@c.us"].name == "Pat"
        assert nodes["301@c.us"].is_known_contact
        assert "300@c.us" not in nodes
        assert gateway.calls["get_contact:300@c.us"] == 0

    @pytest.mark.asyncio
    async def test_unusual_timestamps_do_not_abort_the_run(self, fast_sleep):
        gateway = FakeGateway(
            self_payload={"id": "100@c.us"},
            chats=[{"id": "301@c.us"}, {"id": "302@c.us"}],
            messages={
                "301@c.us": [{"timestamp": 1_700_000_000_000, "from": "301@c.us"}],
                "302@c.us": [{"timestamp": float("inf"), "from": "302@c.us"}],
            },
        )

        snapshot = await RelationshipGraphPipeline(gateway, sleep=fast_sleep).run()

        nodes = _nodes_by_id(snapshot)
        assert nodes["301@c.us"].last_activity == 1_700_000_000_000
        assert nodes["302@c.us"].last_activity is None
        assert nodes["302@c.us"].message_count == 1
        assert snapshot.stats.total_messages == 2
        assert snapshot.stats.data_limits.oldest_message_date == "2023-11-14T22:13:20Z"

    @pytest.mark.asyncio
    async def test_fatal_failure_raises(self, gateway, fast_sleep):
        gateway.failures["list_chats"] = [GatewayError(upstream_status=500)] * 3

        with pytest.raises(IngestionError):
            await RelationshipGraphPipeline(gateway, sleep=fast_sleep).run()

    @pytest.mark.asyncio
    async def test_snapshot_is_immutable(self, gateway, fast_sleep):
        snapshot = await RelationshipGraphPipeline(gateway, sleep=fast_sleep).run()

        with pytest.raises(ValidationError):
            snapshot.stats = None
        with pytest.raises(ValidationError):
            snapshot.graph.nodes[0].name = "changed"
        with pytest.raises(ValidationError):
            snapshot.graph.links[0].weight = 999
        with pytest.raises(ValidationError):
            snapshot.insights.top_contacts[0].count = 0
        assert isinstance(snapshot.graph.nodes, tuple)
        assert _nodes_by_id(snapshot)["201@c.us"].name == "Alice"

    @pytest.mark.asyncio
    async def test_to_dict_uses_wire_names(self, gateway, fast_sleep):
        snapshot = await RelationshipGraphPipeline(gateway, sleep=fast_sleep).run()

        payload = snapshot.to_dict()

        assert set(payload) == {"graph", "stats", "insights"}
        assert "dataLimits" in payload["stats"]
        group = next(n for n in payload["graph"]["nodes"] if n["id"] == "900@g.us")
        assert group["isGroup"] is True
        person = next(n for n in payload["graph"]["nodes"] if n["id"] == "201@c.us")
        assert "isGroup" not in person
        assert person["isKnownContact"] is True
        assert payload["graph"]["links"][0]["kind"] in {"DIRECT", "MEMBERSHIP", "CO_MEMBER"}


class TestSnapshotStore:
    @pytest.mark.asyncio
    async def test_not_ready_until_first_publish(self):
        store = SnapshotStore()

        with pytest.raises(SnapshotNotReadyError):
            store.snapshot
        assert store.status == PipelineStatus.IDLE

    @pytest.mark.asyncio
    async def test_publish_on_success(self, gateway):
        store = SnapshotStore()

        snapshot = await store.refresh(gateway, PipelineOptions(retry_backoff_seconds=0))

        assert store.snapshot is snapshot
        assert store.status == PipelineStatus.READY
        assert store.status_dict()["progress"]["current"] == 100

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_snapshot(self, gateway):
        store = SnapshotStore()
        options = PipelineOptions(retry_backoff_seconds=0)
        first = await store.refresh(gateway, options)

        gateway.failures["get_self"] = [GatewayError(upstream_status=403)]
        with pytest.raises(IngestionError):
            await store.refresh(gateway, options)

        assert store.snapshot is first
        assert store.status == PipelineStatus.ERROR
        assert store.status_dict()["error"]["code"] == "ingestion.failed"

    @pytest.mark.asyncio
    async def test_concurrent_refresh_rejected(self, gateway):
        store = SnapshotStore()
        await store._lock.acquire()
        try:
            with pytest.raises(PipelineBusyError):
                await store.refresh(gateway)
        finally:
            store._lock.release()

    @pytest.mark.asyncio
    async def test_claim_blocks_other_refreshes_until_it_runs(self, gateway):
        store = SnapshotStore()
        options = PipelineOptions(retry_backoff_seconds=0)

        store.claim()

        assert store.is_running
        assert store.status == PipelineStatus.PROCESSING
        with pytest.raises(PipelineBusyError):
            store.claim()
        with pytest.raises(PipelineBusyError):
            await store.refresh(gateway, options)

        await store.refresh(gateway, options, claimed=True)

        assert not store.is_running
        assert store.status == PipelineStatus.READY
        store.claim()

    @pytest.mark.asyncio
    async def test_record_failure_for_unexpected_errors(self):
        store = SnapshotStore()

        store.record_failure(RuntimeError("no client"))

        assert store.status == PipelineStatus.ERROR
        assert store.status_dict()["error"] == {"detail": "no client", "code": "pipeline.crashed"}
