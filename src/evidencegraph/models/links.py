"""
Data models for records and the links between them.

Two views of the same edge exist:

- EntityLink is the storage view. Direction (from/to) is fixed by the Kind
  Registry and carries no meaning for users.
- RecordLink is the view from one record. "this" is the record being looked
  at, "other" is the far endpoint, and ``this_record_is_to_entity`` remembers
  which raw field "this" came from so a later mutation can be rebuilt with the
  same orientation.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .kinds import EntityKind, StatusKind

UNSAVED_LINK_IDS = frozenset({"", "0"})


def _as_id(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    return value


class EntityLink(BaseModel):
    """
    One directed edge of the link graph, as stored.

    INVARIANT: a link never connects a record to itself.
    """

    id: str = Field(default="", description="Link identifier; empty or '0' when not yet persisted.")
    from_entity_id: str = Field(description="Identifier of the record in the `from` slot.")
    from_entity_kind: EntityKind = Field(description="Kind of the record in the `from` slot.")
    from_entity_label: Optional[str] = Field(default=None, description="Display label of the `from` record.")
    from_entity_locations: str = Field(
        default="",
        description="Where, within the `from` record, the relationship is evidenced.",
    )
    to_entity_id: str = Field(description="Identifier of the record in the `to` slot.")
    to_entity_kind: EntityKind = Field(description="Kind of the record in the `to` slot.")
    to_entity_label: Optional[str] = Field(default=None, description="Display label of the `to` record.")
    to_entity_locations: str = Field(
        default="",
        description="Where, within the `to` record, the relationship is evidenced.",
    )
    status: StatusKind = Field(default=StatusKind.DRAFT, description="Lifecycle status of the link.")
    created_by: Optional[str] = None
    created: Optional[datetime] = None
    updated_by: Optional[str] = None
    updated: Optional[datetime] = None

    @field_validator("id", "from_entity_id", "to_entity_id", mode="before")
    @classmethod
    def _normalize_ids(cls, value: Any) -> Any:
        return _as_id(value)

    @field_validator("from_entity_locations", "to_entity_locations", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @model_validator(mode="after")
    def _reject_self_link(self) -> "EntityLink":
        if self.from_entity_kind == self.to_entity_kind and self.from_entity_id == self.to_entity_id:
            raise ValueError(
                f"link {self.id or '<new>'} connects {self.from_entity_kind.value} "
                f"#{self.from_entity_id} to itself"
            )
        return self

    @property
    def is_persisted(self) -> bool:
        return self.id not in UNSAVED_LINK_IDS

    @property
    def is_deleted(self) -> bool:
        return self.status == StatusKind.DELETED


class LinkableRecord(BaseModel):
    """
    A tracked record together with its raw link collections.

    ``from_entity_links`` holds links where this record is the `from`
    endpoint, ``to_entity_links`` those where it is the `to` endpoint; both are
    already materialized by the store.
    """

    kind: EntityKind
    id: str
    label: Optional[str] = None
    status: StatusKind = StatusKind.DRAFT
    field_values: dict[str, Any] = Field(default_factory=dict)
    from_entity_links: list[EntityLink] = Field(default_factory=list)
    to_entity_links: list[EntityLink] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> Any:
        return _as_id(value)

    @property
    def display_label(self) -> str:
        return self.label or f"{self.kind.value} #{self.id}"


class RecordLink(BaseModel):
    """A stored link renormalized to the perspective of one record."""

    id: str
    this_record_id: str
    other_record_kind: EntityKind
    other_record_id: str
    other_record_label: str = ""
    this_locations: str = ""
    other_locations: str = ""
    this_record_is_to_entity: bool = False
    status: StatusKind = StatusKind.DRAFT
    created_by: Optional[str] = None
    created: Optional[datetime] = None
    updated_by: Optional[str] = None
    updated: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.status == StatusKind.DELETED

    def label_for(self, record_kind: EntityKind) -> str:
        return (
            f"RecordLink #{self.id} ({EntityKind(record_kind).value} #{self.this_record_id} <-> "
            f"{self.other_record_kind.value} #{self.other_record_id})"
        )


class LinkInput(BaseModel):
    """Direction-correct mutation payload sent to a link store."""

    id: Optional[str] = None
    from_entity_id: str
    from_entity_locations: str = ""
    to_entity_id: str
    to_entity_locations: str = ""


class LinkCollections(BaseModel):
    """A record's raw links as returned by a link store, split by which slot the record holds."""

    from_entity_links: list[EntityLink] = Field(default_factory=list)
    to_entity_links: list[EntityLink] = Field(default_factory=list)
