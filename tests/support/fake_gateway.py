"""In-memory gateway collaborator for tests."""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Any


class FakeGateway:
    """
    Serves canned payloads. `failures` maps an operation name (or
    `list_messages:<chat_id>` / `get_contact:<id>`) to a list of exceptions
    raised on successive calls before succeeding.
    """

    def __init__(
        self,
        *,
        self_payload: dict[str, Any] | None = None,
        contacts: list[dict[str, Any]] | None = None,
        chats: list[dict[str, Any]] | None = None,
        messages: dict[str, list[dict[str, Any]]] | None = None,
        profiles: dict[str, dict[str, Any]] | None = None,
        failures: dict[str, list[BaseException]] | None = None,
        delay: float = 0.0,
    ):
        self.self_payload = self_payload or {"id": "100@c.us"}
        self.contacts = contacts or []
        self.chats = chats or []
        self.messages = messages or {}
        self.profiles = profiles or {}
        self.failures = {key: list(value) for key, value in (failures or {}).items()}
        self.delay = delay
        self.calls: Counter[str] = Counter()
        self.in_flight = 0
        self.max_in_flight = 0

    async def _enter(self, key: str, *fallback_keys: str) -> None:
        self.calls[key] += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            for candidate in (key, *fallback_keys):
                queue = self.failures.get(candidate)
                if queue:
                    raise queue.pop(0)
        finally:
            self.in_flight -= 1

    async def list_contacts(self) -> list[dict[str, Any]]:
        await self._enter("list_contacts")
        return list(self.contacts)

    async def list_chats(self) -> list[dict[str, Any]]:
        await self._enter("list_chats")
        return list(self.chats)

    async def list_messages(self, chat_id: str, limit: int) -> list[dict[str, Any]]:
        await self._enter(f"list_messages:{chat_id}", "list_messages")
        return list(self.messages.get(chat_id, []))[:limit]

    async def get_self(self) -> dict[str, Any]:
        await self._enter("get_self")
        return dict(self.self_payload)

    async def get_contact(self, contact_id: str) -> dict[str, Any] | None:
        await self._enter(f"get_contact:{contact_id}", "get_contact")
        return self.profiles.get(contact_id)
