"""Collaborator contract for the messaging gateway."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class GatewayClient(Protocol):
    """
    Read-only view of a messaging account as exposed by a gateway.

    Every method returns raw JSON-like payloads. Any call may raise, hang, or
    return partially malformed shapes; callers own timeouts and retries.
    """

    async def list_contacts(self) -> list[dict[str, Any]]:
        ...

    async def list_chats(self) -> list[dict[str, Any]]:
        ...

    async def list_messages(self, chat_id: str, limit: int) -> list[dict[str, Any]]:
        ...

    async def get_self(self) -> dict[str, Any]:
        ...

    async def get_contact(self, contact_id: str) -> dict[str, Any] | None:
        ...
