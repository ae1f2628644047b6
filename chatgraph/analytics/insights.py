"""
Insight computation.

All lists are stable-sorted descending by their key, so ties keep node
discovery order, and are capped at the configured limits.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from itertools import combinations

import structlog
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from chatgraph.config import PipelineOptions
from chatgraph.graph.types import GroupNode, PersonNode

logger = structlog.get_logger()


class _InsightModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class RankedEntry(_InsightModel):
    name: str
    count: int


class BridgePerson(_InsightModel):
    name: str
    groups: int


class LoneWolf(_InsightModel):
    name: str


class SuperConnector(_InsightModel):
    name: str
    connections: int


class UnexpectedBridge(_InsightModel):
    name: str
    score: float
    group_a: str
    group_b: str


class Insights(_InsightModel):
    top_contacts: tuple[RankedEntry, ...] = ()
    top_groups: tuple[RankedEntry, ...] = ()
    bridge_people: tuple[BridgePerson, ...] = ()
    lone_wolves: tuple[LoneWolf, ...] = ()
    super_connectors: tuple[SuperConnector, ...] = ()
    unexpected_bridges: tuple[UnexpectedBridge, ...] = ()


def jaccard_similarity(a: set[str], b: set[str]) -> float:
    """|A ∩ B| / |A ∪ B|, scanning the smaller set for the intersection."""
    if not a and not b:
        return 0.0
    small, large = (a, b) if len(a) <= len(b) else (b, a)
    intersection = sum(1 for member in small if member in large)
    union = len(a) + len(b) - intersection
    return intersection / union


class SimilarityCache:
    """Memoises group-pair similarity; (A, B) and (B, A) share one entry."""

    def __init__(self, members: Mapping[str, set[str]]):
        self._members = members
        self._cache: dict[tuple[str, str], float] = {}

    def similarity(self, group_a: str, group_b: str) -> float:
        key = (group_a, group_b) if group_a <= group_b else (group_b, group_a)
        cached = self._cache.get(key)
        if cached is None:
            cached = jaccard_similarity(
                self._members.get(key[0], set()),
                self._members.get(key[1], set()),
            )
            self._cache[key] = cached
        return cached

    def __len__(self) -> int:
        return len(self._cache)


class InsightEngine:
    def __init__(self, options: PipelineOptions | None = None):
        self.options = options or PipelineOptions()

    def compute(
        self,
        persons: Iterable[PersonNode],
        groups: Iterable[GroupNode],
        memberships: Mapping[str, list[str]],
    ) -> Insights:
        limit = self.options.insight_list_limit
        people = [p for p in persons if not p.is_self]
        group_list = list(groups)

        top_contacts = sorted(
            (p for p in people if p.message_count > 0),
            key=lambda p: p.message_count,
            reverse=True,
        )[:limit]

        top_groups = sorted(group_list, key=lambda g: g.member_count, reverse=True)[:limit]

        bridge_people = sorted(
            (p for p in people if p.group_count >= self.options.bridge_min_groups),
            key=lambda p: p.group_count,
            reverse=True,
        )[:limit]

        lone_wolves = [
            p for p in people if p.is_known_contact and p.group_count == 0 and p.message_count > 0
        ][:limit]

        super_connectors = sorted(
            (p for p in people if p.connection_count >= self.options.super_connector_min_connections),
            key=lambda p: p.connection_count,
            reverse=True,
        )[:limit]

        return Insights(
            top_contacts=tuple(RankedEntry(name=p.name, count=p.message_count) for p in top_contacts),
            top_groups=tuple(RankedEntry(name=g.name, count=g.member_count) for g in top_groups),
            bridge_people=tuple(BridgePerson(name=p.name, groups=p.group_count) for p in bridge_people),
            lone_wolves=tuple(LoneWolf(name=p.name) for p in lone_wolves),
            super_connectors=tuple(
                SuperConnector(name=p.name, connections=p.connection_count) for p in super_connectors
            ),
            unexpected_bridges=tuple(self.unexpected_bridges(people, group_list, memberships)),
        )

    def unexpected_bridges(
        self,
        persons: Iterable[PersonNode],
        groups: Iterable[GroupNode],
        memberships: Mapping[str, list[str]],
    ) -> list[UnexpectedBridge]:
        """People whose best pair of groups has little membership overlap."""
        group_names = {g.id: g.name for g in groups}

        members: dict[str, set[str]] = {}
        for person_id, group_ids in memberships.items():
            for group_id in group_ids:
                members.setdefault(group_id, set()).add(person_id)
        cache = SimilarityCache(members)

        candidates: list[tuple[float, UnexpectedBridge]] = []
        for person in persons:
            if person.is_self:
                continue
            group_ids = [g for g in dict.fromkeys(memberships.get(person.id, ())) if g in group_names]
            if len(group_ids) < 2:
                continue

            best: tuple[float, str, str] | None = None
            for group_a, group_b in combinations(group_ids, 2):
                disconnect = 1 - cache.similarity(group_a, group_b)
                if best is None or disconnect > best[0]:
                    best = (disconnect, group_a, group_b)

            if best is not None and best[0] > self.options.bridge_disconnect_threshold:
                disconnect, group_a, group_b = best
                candidates.append(
                    (
                        disconnect,
                        UnexpectedBridge(
                            name=person.name,
                            score=disconnect,
                            group_a=group_names[group_a],
                            group_b=group_names[group_b],
                        ),
                    )
                )

        candidates.sort(key=lambda item: item[0], reverse=True)
        logger.debug("Unexpected bridges evaluated", candidates=len(candidates), group_pairs=len(cache))
        return [bridge for _, bridge in candidates[: self.options.unexpected_bridge_limit]]
