"""
Ingestion Orchestrator

Collects contacts, chats and a bounded message sample per chat from the
gateway. Chats are processed in fixed-size concurrent batches; a batch fully
settles before the next one starts, which bounds in-flight gateway requests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from chatgraph.config import PipelineOptions
from chatgraph.connectors.base import GatewayClient
from chatgraph.connectors.http import call_with_retry
from chatgraph.ingestion.accumulator import IngestionAccumulator
from chatgraph.ingestion.progress import (
    DATA_COLLECTED_FLOOR,
    GRAPH_BUILDING_CEILING,
    ProgressReporter,
    interpolate,
)
from chatgraph.ingestion.records import (
    ChatRecord,
    ContactRecord,
    MessageRecord,
    SelfRecord,
    parse_records,
)
from chatgraph.kernel.errors import IngestionError, PipelineCancelledError

logger = structlog.get_logger()


def _batches(items: list, size: int) -> list[list]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class IngestionOrchestrator:
    """
    Drives the gateway fetches for one pipeline run.

    Failure policy:
    - contact list: degraded, continue with no contacts
    - chat list / self account: fatal, raises `IngestionError`
    - per-chat messages: degraded after retries, the chat counts zero messages
    """

    def __init__(
        self,
        gateway: GatewayClient,
        options: PipelineOptions | None = None,
        progress: ProgressReporter | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.gateway = gateway
        self.options = options or PipelineOptions()
        self.progress = progress or ProgressReporter()
        self._sleep = sleep

    async def _call(self, operation: str, func: Callable[[], Awaitable[Any]]) -> Any:
        return await call_with_retry(
            operation,
            func,
            max_attempts=self.options.retry_attempts,
            timeout=self.options.request_timeout_seconds,
            backoff=self.options.retry_backoff_seconds,
            sleep=self._sleep,
        )

    async def collect(self, cancel_event: asyncio.Event | None = None) -> IngestionAccumulator:
        aliases = self.options.identity_namespace_aliases
        accumulator = IngestionAccumulator()

        await self.progress.report(1, "Fetching contacts...")
        accumulator.contacts = await self._fetch_contacts()

        await self.progress.report(3, "Fetching chats...")
        try:
            raw_chats = await self._call("list_chats", self.gateway.list_chats)
            raw_self = await self._call("get_self", self.gateway.get_self)
        except Exception as e:
            logger.error("Failed to fetch chats or account", error=str(e))
            raise IngestionError(
                message=f"Could not fetch chat list or account: {e}",
                meta={"cause": type(e).__name__},
            ) from e

        self_record = SelfRecord.from_payload(raw_self, aliases) if isinstance(raw_self, dict) else None
        if self_record is None:
            raise IngestionError(
                message="Gateway returned an account without an identifier",
                code="ingestion.self_unavailable",
            )
        accumulator.self_record = self_record

        chats: list[ChatRecord] = parse_records(ChatRecord, raw_chats, aliases)
        accumulator.chat_count = len(chats)
        await self.progress.report(
            DATA_COLLECTED_FLOOR,
            f"Found {len(accumulator.contacts)} contacts and {len(chats)} chats",
        )

        await self._collect_messages(accumulator, chats, cancel_event)

        logger.info(
            "Ingestion complete",
            contacts=len(accumulator.contacts),
            chats=len(chats),
            messages=accumulator.total_messages,
            failed_chats=accumulator.failed_chats,
        )
        return accumulator

    async def _fetch_contacts(self) -> list[ContactRecord]:
        try:
            raw_contacts = await self._call("list_contacts", self.gateway.list_contacts)
        except Exception as e:
            logger.warning(
                "Contact list unavailable, continuing with chat metadata only",
                error=str(e),
            )
            return []
        return parse_records(ContactRecord, raw_contacts, self.options.identity_namespace_aliases)

    async def _fetch_chat_messages(self, chat: ChatRecord) -> list[MessageRecord] | None:
        """Returns None when every attempt failed."""
        aliases = self.options.identity_namespace_aliases
        try:
            raw_messages = await self._call(
                "list_messages",
                lambda: self.gateway.list_messages(chat.id, self.options.message_limit),
            )
        except Exception as e:
            logger.warning(
                "Message fetch failed, continuing without messages",
                chat_id=chat.id,
                error=str(e),
            )
            return None

        if not isinstance(raw_messages, list):
            return []
        return [
            MessageRecord.from_payload(payload, aliases)
            for payload in raw_messages[: self.options.message_limit]
            if isinstance(payload, dict)
        ]

    async def _collect_messages(
        self,
        accumulator: IngestionAccumulator,
        chats: list[ChatRecord],
        cancel_event: asyncio.Event | None,
    ) -> None:
        total = len(chats)
        processed = 0
        batches = _batches(chats, self.options.chat_batch_size)

        for index, batch in enumerate(batches, start=1):
            if cancel_event is not None and cancel_event.is_set():
                raise PipelineCancelledError(meta={"processed_chats": processed, "total_chats": total})

            results = await asyncio.gather(*(self._fetch_chat_messages(chat) for chat in batch))

            # Folded in batch order after the batch settles, once per chat.
            for chat, messages in zip(batch, results):
                accumulator.record_chat(chat, messages)

            processed += len(batch)
            logger.debug("Chat batch processed", batch=index, batches=len(batches), chats=len(batch))
            await self.progress.report(
                interpolate(processed, total, DATA_COLLECTED_FLOOR, GRAPH_BUILDING_CEILING),
                f"Processed {processed}/{total} chats",
            )
