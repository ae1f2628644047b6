from __future__ import annotations

import re
from typing import Any


_ERROR_CODE_RE = re.compile(r"^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)*$")


class ChatGraphError(Exception):
    """Base typed error for chatgraph.

    - Stable `code` for programmatic handling across clients.
    - Human-readable `message` for UI surfaces.
    - Optional `meta` payload for debugging (safe-to-expose only).
    """

    def __init__(
        self,
        *,
        code: str,
        message: str,
        status_code: int = 500,
        meta: dict[str, Any] | None = None,
    ) -> None:
        if not _ERROR_CODE_RE.fullmatch(code):
            raise ValueError(
                "Invalid error code. Expected dot-separated lowercase tokens, "
                f"got: {code!r}"
            )
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = int(status_code)
        self.meta = dict(meta or {})

    def to_public_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "detail": self.message,
            "code": self.code,
        }
        if self.meta:
            payload["meta"] = self.meta
        return payload


class GatewayError(ChatGraphError):
    """A call to the messaging gateway failed.

    `upstream_status` is the HTTP status returned by the gateway, or None when
    the call never produced a response (timeout, connection reset).
    """

    def __init__(
        self,
        *,
        message: str = "Gateway request failed",
        operation: str | None = None,
        upstream_status: int | None = None,
        code: str = "gateway.error",
        meta: dict[str, Any] | None = None,
    ):
        meta = dict(meta or {})
        if operation:
            meta.setdefault("operation", operation)
        if upstream_status is not None:
            meta.setdefault("upstream_status", upstream_status)
        super().__init__(code=code, message=message, status_code=502, meta=meta)
        self.operation = operation
        self.upstream_status = upstream_status

    @property
    def transient(self) -> bool:
        if self.upstream_status is None:
            return True
        return self.upstream_status == 429 or self.upstream_status >= 500


class IngestionError(ChatGraphError):
    """Fatal ingestion failure; the run is aborted and nothing is published."""

    def __init__(
        self,
        *,
        message: str = "Ingestion failed",
        code: str = "ingestion.failed",
        meta: dict[str, Any] | None = None,
    ):
        super().__init__(code=code, message=message, status_code=502, meta=meta)


class PipelineCancelledError(ChatGraphError):
    def __init__(self, *, message: str = "Pipeline run cancelled", meta: dict[str, Any] | None = None):
        super().__init__(code="pipeline.cancelled", message=message, status_code=499, meta=meta)


class PipelineBusyError(ChatGraphError):
    def __init__(self, *, message: str = "A pipeline run is already in progress", meta: dict[str, Any] | None = None):
        super().__init__(code="pipeline.busy", message=message, status_code=409, meta=meta)


class SnapshotNotReadyError(ChatGraphError):
    def __init__(self, *, message: str = "Data not ready yet", meta: dict[str, Any] | None = None):
        super().__init__(code="snapshot.not_ready", message=message, status_code=503, meta=meta)
