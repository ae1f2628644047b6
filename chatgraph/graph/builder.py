"""
Graph Builder

Turns an ingestion accumulator into person/group nodes and DIRECT,
MEMBERSHIP and CO_MEMBER links, then drops inactive nodes.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from itertools import combinations

import structlog

from chatgraph.config import PipelineOptions
from chatgraph.identity import identity_user, is_person_identity
from chatgraph.ingestion.accumulator import IngestionAccumulator
from chatgraph.kernel.errors import IngestionError
from chatgraph.graph.types import GraphPayload, GroupNode, Link, LinkKind, PersonDraft

logger = structlog.get_logger()

SELF_SIZE_WEIGHT = 20.0


def direct_link_weight(message_count: int) -> float:
    return min(2 + message_count * 0.01, 10.0)


def person_size_weight(message_count: int) -> float:
    return min(2 + math.log(message_count + 1) * 2, 12.0)


def group_size_weight(member_count: int) -> float:
    return min(3 + member_count * 0.5, 15.0)


@dataclass
class BuiltGraph:
    """Graph state handed from the builder to the resolver and insight engine.

    `memberships` maps a person Identity to the group Identities it belongs
    to, in discovery order. Consumers treat it as read-only.
    """

    self_id: str
    persons: dict[str, PersonDraft] = field(default_factory=dict)
    groups: dict[str, GroupNode] = field(default_factory=dict)
    links: list[Link] = field(default_factory=list)
    memberships: dict[str, list[str]] = field(default_factory=dict)

    def to_payload(self) -> GraphPayload:
        """Freeze the working persons into the publishable graph."""
        return GraphPayload(
            nodes=(*(p.freeze() for p in self.persons.values()), *self.groups.values()),
            links=tuple(self.links),
        )


class GraphBuilder:
    def __init__(self, options: PipelineOptions | None = None):
        self.options = options or PipelineOptions()

    @staticmethod
    def _ensure_person(persons: dict[str, PersonDraft], identity: str) -> PersonDraft:
        node = persons.get(identity)
        if node is None:
            number = identity_user(identity)
            node = PersonDraft(id=identity, name=number, phone_number=number)
            persons[identity] = node
        return node

    def build(self, accumulator: IngestionAccumulator) -> BuiltGraph:
        if accumulator.self_record is None:
            raise IngestionError(
                message="Cannot build a graph without the account identity",
                code="ingestion.self_unavailable",
            )

        self_id = accumulator.self_record.id
        persons: dict[str, PersonDraft] = {}

        for contact in accumulator.contacts:
            if contact.is_group or contact.id in persons or not is_person_identity(contact.id):
                continue
            persons[contact.id] = PersonDraft(
                id=contact.id,
                name=contact.display_name,
                phone_number=contact.number,
                is_known_contact=contact.is_known_contact,
            )

        persons[self_id] = PersonDraft(
            id=self_id,
            name=self.options.self_label,
            phone_number=accumulator.self_record.number,
            is_known_contact=True,
            is_self=True,
            size_weight=SELF_SIZE_WEIGHT,
        )

        groups: dict[str, GroupNode] = {}
        memberships: dict[str, list[str]] = {}
        links: list[Link] = []
        pair_counts: Counter[tuple[str, str]] = Counter()
        direct_counts: dict[str, int] = {}
        direct_activity: dict[str, int | None] = {}
        skipped_large_groups = 0
        skipped_direct_chats = 0

        for sample in accumulator.chats:
            chat = sample.chat
            if chat.is_group:
                if chat.id in groups:
                    continue
                members = [p for p in chat.participants if is_person_identity(p)]
                groups[chat.id] = GroupNode(
                    id=chat.id,
                    name=chat.name or identity_user(chat.id),
                    member_count=len(members),
                    message_count=sample.message_count,
                    is_archived=chat.is_archived,
                    last_activity=sample.last_activity_ms,
                    size_weight=group_size_weight(len(members)),
                )

                for member_id in members:
                    node = self._ensure_person(persons, member_id)
                    node.group_count += 1
                    memberships.setdefault(member_id, []).append(chat.id)
                    links.append(
                        Link(source=member_id, target=chat.id, weight=1, kind=LinkKind.MEMBERSHIP)
                    )

                if len(members) > self.options.co_member_max_group_size:
                    skipped_large_groups += 1
                    continue
                for pair in combinations(sorted(members), 2):
                    pair_counts[pair] += 1
            else:
                partner_id = chat.id
                if partner_id == self_id or not is_person_identity(partner_id):
                    skipped_direct_chats += 1
                    continue
                self._ensure_person(persons, partner_id)
                direct_counts[partner_id] = direct_counts.get(partner_id, 0) + sample.message_count
                previous = direct_activity.get(partner_id)
                current = sample.last_activity_ms
                if previous is None or (current is not None and current > previous):
                    direct_activity[partner_id] = current

        for partner_id, count in direct_counts.items():
            node = persons[partner_id]
            node.message_count = count
            node.last_activity = direct_activity.get(partner_id)
            links.append(
                Link(
                    source=self_id,
                    target=partner_id,
                    weight=direct_link_weight(count),
                    kind=LinkKind.DIRECT,
                )
            )

        for node in persons.values():
            node.connection_count = node.group_count + (1 if node.message_count > 0 else 0)
            if not node.is_self:
                node.size_weight = person_size_weight(node.message_count)

        retained_persons = {
            pid: node
            for pid, node in persons.items()
            if node.is_self or node.connection_count > 0 or node.group_count > 0 or node.message_count > 0
        }
        retained_groups = {
            gid: group
            for gid, group in groups.items()
            if group.member_count > 0 or group.message_count > 0
        }
        node_ids = set(retained_persons) | set(retained_groups)

        links = [link for link in links if link.source in node_ids and link.target in node_ids]
        for (a, b), shared in pair_counts.items():
            if a in node_ids and b in node_ids:
                links.append(Link(source=a, target=b, weight=shared, kind=LinkKind.CO_MEMBER))

        logger.info(
            "Graph built",
            persons=len(retained_persons),
            dropped_persons=len(persons) - len(retained_persons),
            groups=len(retained_groups),
            links=len(links),
            co_member_pairs=len(pair_counts),
            skipped_large_groups=skipped_large_groups,
            skipped_direct_chats=skipped_direct_chats,
        )

        return BuiltGraph(
            self_id=self_id,
            persons=retained_persons,
            groups=retained_groups,
            links=links,
            memberships={pid: gids for pid, gids in memberships.items() if pid in retained_persons},
        )
