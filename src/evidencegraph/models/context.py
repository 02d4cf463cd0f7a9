"""
Master context and query filter models.

MasterContext is an immutable snapshot. Consumers receive a value and derive
their filters from it; changes produce a new snapshot via the ``with_*``
builders.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .kinds import EntityKind


def _as_optional_id(value: Any) -> Any:
    if value is None or value == "":
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class MasterContext(BaseModel):
    """
    The pinned master topic and/or master record of a session.

    Created empty at session start, changed only by explicit user selection,
    reset by ``cleared()``.
    """

    model_config = ConfigDict(frozen=True)

    master_topic_id: Optional[str] = None
    master_topic_recursive: bool = False
    master_record_kind: Optional[EntityKind] = None
    master_record_id: Optional[str] = None
    master_record_label: Optional[str] = None
    show_only_linked_records: bool = False

    @field_validator("master_topic_id", "master_record_id", mode="before")
    @classmethod
    def _normalize_ids(cls, value: Any) -> Any:
        return _as_optional_id(value)

    def with_master_topic(self, topic_id: Optional[str], recursive: Optional[bool] = None) -> "MasterContext":
        changes: dict[str, Any] = {"master_topic_id": _as_optional_id(topic_id)}
        if recursive is not None:
            changes["master_topic_recursive"] = recursive
        return self.model_copy(update=changes)

    def with_master_record(
        self,
        kind: Optional[EntityKind | str],
        record_id: Optional[str],
        label: Optional[str] = None,
    ) -> "MasterContext":
        return self.model_copy(
            update={
                "master_record_kind": EntityKind(kind) if kind else None,
                "master_record_id": _as_optional_id(record_id),
                "master_record_label": label,
            }
        )

    def with_show_only_linked_records(self, show: bool) -> "MasterContext":
        return self.model_copy(update={"show_only_linked_records": show})

    def cleared(self) -> "MasterContext":
        return MasterContext()


class LinkableEntityQueryFilter(BaseModel):
    """
    Filter fields a linkable-entity list query accepts.

    Only the fields relevant to link scoping are modelled. Serialise with
    ``model_dump(by_alias=True, exclude_none=True)`` for the transport.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    topic_id: Optional[str] = None
    recursive: Optional[bool] = None
    from_entity_kind: Optional[EntityKind] = None
    from_entity_id: Optional[str] = None
    to_entity_kind: Optional[EntityKind] = None
    to_entity_id: Optional[str] = None
    status: Optional[list[str]] = Field(default=None)
    text: Optional[str] = None

    @field_validator("topic_id", "from_entity_id", "to_entity_id", mode="before")
    @classmethod
    def _normalize_ids(cls, value: Any) -> Any:
        return _as_optional_id(value)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)
