"""
Shared accumulator for one ingestion run.

Write ownership:
- `contacts`, `self_record`, `chat_count`: set once by the orchestrator's fetch stage.
- `chats`, `total_messages`, `oldest_message_ts`, `fetched_chats`,
  `failed_chats`: only touched by `record_chat()`, once per chat after its
  batch settles.
- `display_names`: set-if-absent via `FirstWriteMap`.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from chatgraph.identity import is_numeric_name
from chatgraph.ingestion.records import ChatRecord, ContactRecord, MessageRecord, SelfRecord
from chatgraph.kernel.time import epoch_seconds_to_ms


class FirstWriteMap:
    """Mapping whose entries are immutable once set."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def set_if_absent(self, key: str, value: str) -> bool:
        if not key or not value or key in self._data:
            return False
        self._data[key] = value
        return True

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._data.get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)


@dataclass
class ChatSample:
    """A chat plus what its bounded message sample told us."""

    chat: ChatRecord
    messages_fetched: bool
    message_count: int = 0
    last_activity_ms: int | None = None


@dataclass
class IngestionAccumulator:
    self_record: SelfRecord | None = None
    contacts: list[ContactRecord] = field(default_factory=list)
    chat_count: int = 0
    chats: list[ChatSample] = field(default_factory=list)
    display_names: FirstWriteMap = field(default_factory=FirstWriteMap)
    total_messages: int = 0
    oldest_message_ts: float | None = None
    fetched_chats: int = 0
    failed_chats: int = 0

    def record_chat(
        self,
        chat: ChatRecord,
        messages: list[MessageRecord] | None,
    ) -> ChatSample:
        """Fold one chat's sample into the run totals. `messages=None` means the fetch failed."""
        fetched = messages is not None
        messages = messages or []

        timestamps = [m.timestamp for m in messages if m.timestamp is not None]
        newest = max(timestamps) if timestamps else None
        oldest = min(timestamps) if timestamps else None

        sample = ChatSample(
            chat=chat,
            messages_fetched=fetched,
            message_count=len(messages),
            last_activity_ms=epoch_seconds_to_ms(newest),
        )
        self.chats.append(sample)

        self.total_messages += len(messages)
        if oldest is not None and (self.oldest_message_ts is None or oldest < self.oldest_message_ts):
            self.oldest_message_ts = oldest
        if fetched:
            self.fetched_chats += 1
        else:
            self.failed_chats += 1

        for message in messages:
            if message.from_me or not message.sender or not message.display_name_hint:
                continue
            if is_numeric_name(message.display_name_hint):
                continue
            self.display_names.set_if_absent(message.sender, message.display_name_hint)

        return sample
