"""
Name resolution for person nodes.

Precedence, highest first:
1. the self label (always wins, applied last)
2. a real contact's own name (never touched here)
3. a name returned by an explicit profile lookup
4. the first display-name hint observed on a message from that person
5. the phone number
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any, Protocol

import structlog

from chatgraph.config import PipelineOptions
from chatgraph.connectors.base import GatewayClient
from chatgraph.connectors.http import call_with_retry
from chatgraph.graph.types import PersonDraft
from chatgraph.identity import identity_user, is_numeric_name
from chatgraph.monitoring import get_metrics

logger = structlog.get_logger()


class DisplayNameLookup(Protocol):
    def get(self, key: str, default: str | None = None) -> str | None:
        ...


def _digits(value: str | None) -> str:
    return "".join(ch for ch in (value or "") if ch.isdigit())


def _needs_name(node: PersonDraft) -> bool:
    return not node.is_self and not node.is_known_contact and is_numeric_name(node.name)


class NameResolver:
    def __init__(
        self,
        gateway: GatewayClient | None = None,
        options: PipelineOptions | None = None,
    ):
        self.gateway = gateway
        self.options = options or PipelineOptions()

    def apply_display_names(
        self,
        persons: Iterable[PersonDraft],
        display_names: DisplayNameLookup,
    ) -> int:
        """Replace numeric-only names with the first hint seen on that sender's messages."""
        applied = 0
        for node in persons:
            if not _needs_name(node):
                continue
            hint = display_names.get(node.id)
            if hint and not is_numeric_name(hint):
                node.name = hint
                applied += 1
        return applied

    async def enrich(self, persons: Iterable[PersonDraft]) -> int:
        """Look up profiles for nodes still named by number, in small concurrent batches."""
        if self.gateway is None:
            return 0

        pending = [node for node in persons if _needs_name(node)]
        if not pending:
            return 0

        resolved = 0
        size = self.options.enrichment_batch_size
        for start in range(0, len(pending), size):
            batch = pending[start : start + size]
            outcomes = await asyncio.gather(*(self._enrich_node(node) for node in batch))
            resolved += sum(1 for ok in outcomes if ok)

        logger.info("Enrichment complete", looked_up=len(pending), resolved=resolved)
        return resolved

    async def _enrich_node(self, node: PersonDraft) -> bool:
        try:
            profile = await call_with_retry(
                "get_contact",
                lambda: self.gateway.get_contact(node.id),
                max_attempts=1,
                timeout=self.options.request_timeout_seconds,
            )
        except Exception as e:
            get_metrics().track_enrichment_lookup("error")
            logger.debug("Profile lookup failed", contact_id=node.id, error=str(e))
            return False

        name = self._profile_name(profile)
        phone = node.phone_number or identity_user(node.id)
        if not name or is_numeric_name(name) or (_digits(name) and _digits(name) == _digits(phone)):
            get_metrics().track_enrichment_lookup("unresolved")
            return False

        node.name = name
        if isinstance(profile, dict) and profile.get("isMyContact"):
            node.is_known_contact = True
        get_metrics().track_enrichment_lookup("resolved")
        return True

    @staticmethod
    def _profile_name(profile: Any) -> str | None:
        if not isinstance(profile, dict):
            return None
        for key in ("name", "pushname", "pushName", "shortName"):
            value = profile.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    def finalize_self(self, persons: Iterable[PersonDraft]) -> None:
        for node in persons:
            if node.is_self:
                node.name = self.options.self_label
