"""Graph node and link type definitions."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LinkKind(str, Enum):
    """Link kinds in the relationship graph."""

    DIRECT = "DIRECT"  # self <-> one-to-one chat partner
    MEMBERSHIP = "MEMBERSHIP"  # person -> group
    CO_MEMBER = "CO_MEMBER"  # person <-> person sharing a group


class _GraphModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class _PersonFields(BaseModel):
    id: str
    name: str
    phone_number: str | None = None
    is_known_contact: bool = False
    is_self: bool = False
    group_count: int = 0
    message_count: int = 0
    connection_count: int = 0
    last_activity: int | None = None  # epoch ms
    size_weight: float = 2.0


class PersonNode(_PersonFields):
    """A person as published in a snapshot."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class PersonDraft(_PersonFields):
    """Mutable person used while a run counts activity and resolves names."""

    def freeze(self) -> PersonNode:
        return PersonNode(**self.model_dump())


class GroupNode(_GraphModel):
    id: str
    name: str
    is_group: Literal[True] = True
    member_count: int = 0
    message_count: int = 0
    is_archived: bool = False
    last_activity: int | None = None  # epoch ms
    size_weight: float = 3.0


class Link(_GraphModel):
    source: str
    target: str
    weight: float = 1.0
    kind: LinkKind


class GraphPayload(_GraphModel):
    nodes: tuple[PersonNode | GroupNode, ...] = Field(default_factory=tuple)
    links: tuple[Link, ...] = Field(default_factory=tuple)
