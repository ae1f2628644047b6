"""
Ingestion boundary records.

Raw gateway payloads are parsed into these models exactly once; every id is
run through `extract_raw_id` and `normalize_identity` here so downstream code
only ever sees canonical Identity keys.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import BaseModel, Field

from chatgraph.identity import (
    extract_raw_id,
    identity_user,
    is_group_identity,
    normalize_identity,
)

logger = structlog.get_logger()

# Year 5138; anything larger is taken to be milliseconds.
MAX_EPOCH_SECONDS = 1e11


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _first_text(payload: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        text = _text(payload.get(key))
        if text:
            return text
    return None


def parse_epoch_seconds(value: Any) -> float | None:
    """Epoch seconds from a gateway timestamp, or None when it is unusable.

    Millisecond timestamps are scaled down; anything still outside
    (0, MAX_EPOCH_SECONDS] is dropped.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(seconds) or seconds <= 0:
        return None
    if seconds > MAX_EPOCH_SECONDS:
        seconds /= 1000
    if seconds > MAX_EPOCH_SECONDS:
        return None
    return seconds


def _nested(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = payload.get(key)
    return value if isinstance(value, Mapping) else {}


class ContactRecord(BaseModel):
    """An address-book entry as reported by the gateway."""

    id: str
    name: str | None = None
    push_name: str | None = None
    number: str | None = None
    is_known_contact: bool = False
    is_group: bool = False

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        aliases: Mapping[str, str] | None = None,
    ) -> "ContactRecord | None":
        identity = normalize_identity(payload.get("id"), aliases)
        if not identity:
            return None
        number = _first_text(payload, "number") or identity_user(identity)
        return cls(
            id=identity,
            name=_first_text(payload, "name", "shortName"),
            push_name=_first_text(payload, "pushname", "pushName"),
            number=number,
            is_known_contact=bool(payload.get("isMyContact", False)),
            is_group=bool(payload.get("isGroup", False)) or is_group_identity(identity),
        )

    @property
    def display_name(self) -> str:
        return self.name or self.push_name or self.number or identity_user(self.id)


class ChatRecord(BaseModel):
    """A one-to-one or group conversation."""

    id: str
    name: str | None = None
    is_group: bool = False
    is_archived: bool = False
    participants: list[str] = Field(default_factory=list)

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        aliases: Mapping[str, str] | None = None,
    ) -> "ChatRecord | None":
        identity = normalize_identity(payload.get("id"), aliases)
        if not identity:
            return None

        raw_participants = payload.get("participants")
        if not isinstance(raw_participants, list):
            raw_participants = _nested(payload, "groupMetadata").get("participants")
        if not isinstance(raw_participants, list):
            raw_participants = []

        participants: list[str] = []
        seen: set[str] = set()
        for raw in raw_participants:
            member = normalize_identity(raw, aliases)
            if member and member not in seen:
                seen.add(member)
                participants.append(member)

        is_group = bool(payload.get("isGroup", False)) or is_group_identity(identity)
        return cls(
            id=identity,
            name=_first_text(payload, "name", "formattedTitle") or _first_text(
                _nested(payload, "groupMetadata"), "subject"
            ),
            is_group=is_group,
            is_archived=bool(payload.get("archived", payload.get("isArchived", False))),
            participants=participants,
        )


class MessageRecord(BaseModel):
    """The slice of a message the graph needs: when, who, and a name hint."""

    timestamp: float | None = None
    sender: str | None = None
    from_me: bool = False
    display_name_hint: str | None = None

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        aliases: Mapping[str, str] | None = None,
    ) -> "MessageRecord":
        raw_sender = payload.get("participant") or payload.get("author")
        if not extract_raw_id(raw_sender):
            raw_sender = payload.get("from")
        sender = normalize_identity(raw_sender, aliases) or None

        data = _nested(payload, "_data")
        hint = _first_text(payload, "notifyName", "pushName", "pushname") or _first_text(
            data, "notifyName", "pushName"
        )

        return cls(
            timestamp=parse_epoch_seconds(payload.get("timestamp")),
            sender=sender,
            from_me=bool(payload.get("fromMe", False)),
            display_name_hint=hint,
        )


class SelfRecord(BaseModel):
    """The account the session is logged in as."""

    id: str
    number: str
    push_name: str | None = None

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        aliases: Mapping[str, str] | None = None,
    ) -> "SelfRecord | None":
        raw = payload.get("id") or payload.get("wid") or payload
        identity = normalize_identity(raw, aliases)
        if not identity:
            return None
        return cls(
            id=identity,
            number=identity_user(identity),
            push_name=_first_text(payload, "pushName", "pushname"),
        )


def parse_records(
    model: type[ContactRecord] | type[ChatRecord],
    payloads: Any,
    aliases: Mapping[str, str] | None = None,
) -> list:
    """Parse a list payload, skipping entries without an extractable id."""
    if not isinstance(payloads, list):
        logger.warning("Expected a list payload", record_type=model.__name__, got=type(payloads).__name__)
        return []

    records = []
    skipped = 0
    for payload in payloads:
        record = model.from_payload(payload, aliases) if isinstance(payload, Mapping) else None
        if record is None:
            skipped += 1
            continue
        records.append(record)

    if skipped:
        logger.warning("Skipped malformed records", record_type=model.__name__, skipped=skipped)
    return records
