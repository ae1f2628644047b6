"""
WAHA Gateway Client

Read-only access to contacts, chats, messages and the session's own account
through a WAHA HTTP gateway. Session lifecycle (QR login, start, logout) is
handled elsewhere.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from chatgraph.config import Settings, get_settings
from chatgraph.kernel.errors import GatewayError

logger = structlog.get_logger()


class WahaGatewayClient:
    """
    `GatewayClient` implementation over the WAHA REST API.

    Usage:
        async with WahaGatewayClient.from_settings() as gateway:
            chats = await gateway.list_chats()
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        *,
        api_key: str | None = None,
        session: str = "default",
        timeout: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.session = session
        headers = {"X-Api-Key": api_key} if api_key else {}
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs) -> "WahaGatewayClient":
        settings = settings or get_settings()
        return cls(
            settings.waha_url,
            api_key=settings.waha_api_key,
            session=settings.waha_session,
            **kwargs,
        )

    async def __aenter__(self) -> "WahaGatewayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, operation: str, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            response = await self._client.get(path, params=params)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            raise GatewayError(
                message=f"Gateway unreachable: {e}",
                operation=operation,
                code="gateway.network_error",
            ) from e

        if response.status_code >= 400:
            logger.debug(
                "Gateway returned error status",
                operation=operation,
                status_code=response.status_code,
                path=path,
            )
            raise GatewayError(
                message=f"Gateway error {response.status_code} on {operation}",
                operation=operation,
                upstream_status=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(
                message=f"Gateway returned a non-JSON body on {operation}",
                operation=operation,
                upstream_status=response.status_code,
                code="gateway.malformed_response",
            ) from e

    @staticmethod
    def _as_list(payload: Any) -> list[dict[str, Any]]:
        if isinstance(payload, list):
            return [item for item in payload if isinstance(item, dict)]
        return []

    async def list_contacts(self) -> list[dict[str, Any]]:
        payload = await self._get(
            "list_contacts",
            "/api/contacts/all",
            params={"session": self.session},
        )
        return self._as_list(payload)

    async def list_chats(self) -> list[dict[str, Any]]:
        payload = await self._get("list_chats", f"/api/{self.session}/chats")
        return self._as_list(payload)

    async def list_messages(self, chat_id: str, limit: int) -> list[dict[str, Any]]:
        payload = await self._get(
            "list_messages",
            f"/api/{self.session}/chats/{quote(chat_id, safe='@.')}/messages",
            params={"limit": limit, "downloadMedia": "false"},
        )
        return self._as_list(payload)

    async def get_self(self) -> dict[str, Any]:
        payload = await self._get("get_self", f"/api/sessions/{self.session}/me")
        if not isinstance(payload, dict):
            raise GatewayError(
                message="Gateway returned no account for this session",
                operation="get_self",
                upstream_status=200,
                code="gateway.malformed_response",
            )
        return payload

    async def get_contact(self, contact_id: str) -> dict[str, Any] | None:
        payload = await self._get(
            "get_contact",
            "/api/contacts",
            params={"session": self.session, "contactId": contact_id},
        )
        return payload if isinstance(payload, dict) else None
