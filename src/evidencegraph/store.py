"""
Link Store boundary.

The store is the backend of record for links. The core only relies on the
``LinkStore`` protocol; ``InMemoryLinkStore`` is a complete reference
implementation used by the CLI and the tests.

Store-side guarantees the rest of the package assumes:
- a link never joins a record to itself
- at most one non-deleted link per ordered pair of endpoints
- only supported kind pairs, stored in registry orientation
- delete is soft: the link stays readable with status Deleted

Rejections are reported as LinkStoreError with a user-facing message.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Protocol

from loguru import logger
from pydantic import ValidationError

from .audit import audit_record
from .errors import LinkStoreError, UnsupportedLinkPair
from .models.audit import EntityAudit
from .models.kinds import EntityKind, StatusKind
from .models.links import EntityLink, LinkableRecord, LinkCollections, LinkInput
from .registry import get_link_direction


class LinkStore(Protocol):
    """Operations the core consumes from the backend of record."""

    def create_link(self, link_input: LinkInput) -> EntityLink: ...

    def update_link(self, link_input: LinkInput) -> EntityLink: ...

    def delete_link(self, link_id: str) -> None: ...

    def read_links_for_record(self, kind: EntityKind, record_id: str) -> LinkCollections: ...

    def read_audit(self, kind: EntityKind, record_id: str) -> EntityAudit: ...

    def set_entity_status(self, record_id: str, status: StatusKind) -> LinkableRecord: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryLinkStore:
    """
    Dictionary-backed link store.

    Record ids are unique across kinds, as in the tracked-entity table of the
    real backend, so link inputs carry ids only.
    """

    def __init__(self, user: str = "system", clock: Callable[[], datetime] = _utcnow):
        self.user = user
        self.clock = clock
        self._records: Dict[str, LinkableRecord] = {}
        self._links: Dict[str, EntityLink] = {}
        self._next_id = 1

    # ========================================================================
    # Records
    # ========================================================================

    def add_record(self, record: LinkableRecord) -> LinkableRecord:
        if record.id in self._records:
            raise LinkStoreError(f"Record #{record.id} already exists")
        stored = record.model_copy(update={"from_entity_links": [], "to_entity_links": []})
        self._records[record.id] = stored
        return stored

    def _record(self, record_id: str) -> LinkableRecord:
        record = self._records.get(str(record_id))
        if record is None:
            raise LinkStoreError(f"Record #{record_id} not found")
        return record

    def read_record(self, kind: EntityKind, record_id: str) -> LinkableRecord:
        """Return the record with its link collections materialized."""
        record = self._record(record_id)
        if record.kind != EntityKind(kind):
            raise LinkStoreError(f"Record #{record_id} is a {record.kind.value}, not a {EntityKind(kind).value}")
        collections = self.read_links_for_record(kind, record_id)
        return record.model_copy(
            update={
                "from_entity_links": collections.from_entity_links,
                "to_entity_links": collections.to_entity_links,
            }
        )

    def set_entity_status(self, record_id: str, status: StatusKind) -> LinkableRecord:
        record = self._record(record_id)
        updated = record.model_copy(update={"status": StatusKind(status)})
        self._records[record.id] = updated
        logger.info(f"InMemoryLinkStore: {record.kind.value} #{record.id} status -> {updated.status.label}")
        return updated

    # ========================================================================
    # Links
    # ========================================================================

    def _with_labels(self, link: EntityLink) -> EntityLink:
        from_record = self._records.get(link.from_entity_id)
        to_record = self._records.get(link.to_entity_id)
        return link.model_copy(
            update={
                "from_entity_label": from_record.display_label if from_record else None,
                "to_entity_label": to_record.display_label if to_record else None,
            }
        )

    def _check_endpoints(self, link_input: LinkInput, exclude_id: Optional[str] = None) -> tuple[LinkableRecord, LinkableRecord]:
        from_record = self._record(link_input.from_entity_id)
        to_record = self._record(link_input.to_entity_id)
        if from_record.id == to_record.id:
            raise LinkStoreError(f"Cannot link record #{from_record.id} to itself")
        try:
            direction = get_link_direction(from_record.kind, to_record.kind)
        except UnsupportedLinkPair as exc:
            raise LinkStoreError(str(exc)) from exc
        if direction.from_kind != from_record.kind:
            raise LinkStoreError(
                f"{from_record.kind.value} and {to_record.kind.value} links must be stored "
                f"from {direction.from_kind.value} to {direction.to_kind.value}"
            )
        for existing in self._links.values():
            if existing.id == exclude_id or existing.is_deleted:
                continue
            if existing.from_entity_id == from_record.id and existing.to_entity_id == to_record.id:
                raise LinkStoreError(
                    f"{from_record.display_label} is already linked to {to_record.display_label} "
                    f"(link #{existing.id})"
                )
        return from_record, to_record

    def create_link(self, link_input: LinkInput) -> EntityLink:
        from_record, to_record = self._check_endpoints(link_input)
        now = self.clock()
        link = EntityLink(
            id=str(self._next_id),
            from_entity_id=from_record.id,
            from_entity_kind=from_record.kind,
            from_entity_locations=link_input.from_entity_locations,
            to_entity_id=to_record.id,
            to_entity_kind=to_record.kind,
            to_entity_locations=link_input.to_entity_locations,
            status=StatusKind.DRAFT,
            created_by=self.user,
            created=now,
        )
        self._next_id += 1
        self._links[link.id] = link
        logger.info(
            f"InMemoryLinkStore: created link #{link.id} "
            f"{from_record.kind.value} #{from_record.id} -> {to_record.kind.value} #{to_record.id}"
        )
        return self._with_labels(link)

    def _existing_link(self, link_id: Optional[str]) -> EntityLink:
        link = self._links.get(str(link_id)) if link_id else None
        if link is None:
            raise LinkStoreError(f"Link #{link_id} not found")
        if link.is_deleted:
            raise LinkStoreError(f"Link #{link_id} has been deleted")
        return link

    def update_link(self, link_input: LinkInput) -> EntityLink:
        existing = self._existing_link(link_input.id)
        from_record, to_record = self._check_endpoints(link_input, exclude_id=existing.id)
        updated = existing.model_copy(
            update={
                "from_entity_id": from_record.id,
                "from_entity_kind": from_record.kind,
                "from_entity_locations": link_input.from_entity_locations,
                "to_entity_id": to_record.id,
                "to_entity_kind": to_record.kind,
                "to_entity_locations": link_input.to_entity_locations,
                "updated_by": self.user,
                "updated": self.clock(),
            }
        )
        self._links[updated.id] = updated
        logger.info(f"InMemoryLinkStore: updated link #{updated.id}")
        return self._with_labels(updated)

    def delete_link(self, link_id: str) -> None:
        existing = self._existing_link(link_id)
        self._links[existing.id] = existing.model_copy(
            update={"status": StatusKind.DELETED, "updated_by": self.user, "updated": self.clock()}
        )
        logger.info(f"InMemoryLinkStore: deleted link #{existing.id}")

    def read_links_for_record(self, kind: EntityKind, record_id: str) -> LinkCollections:
        kind = EntityKind(kind)
        record_id = str(record_id)
        collections = LinkCollections()
        for link in self._links.values():
            if link.from_entity_kind == kind and link.from_entity_id == record_id:
                collections.from_entity_links.append(self._with_labels(link))
            elif link.to_entity_kind == kind and link.to_entity_id == record_id:
                collections.to_entity_links.append(self._with_labels(link))
        return collections

    def read_audit(self, kind: EntityKind, record_id: str) -> EntityAudit:
        return audit_record(self.read_record(kind, record_id))

    # ========================================================================
    # JSON documents
    # ========================================================================

    @classmethod
    def from_document(cls, document: Dict[str, Any], user: str = "system") -> "InMemoryLinkStore":
        """
        Build a store from ``{"records": [...], "links": [...]}``.

        Links are loaded as stored (ids, status, provenance preserved) but
        still have to satisfy the store invariants.
        """
        store = cls(user=user)
        try:
            for raw in document.get("records", []):
                store.add_record(LinkableRecord.model_validate(raw))
            for raw in document.get("links", []):
                link = EntityLink.model_validate(raw)
                if link.id in store._links:
                    raise LinkStoreError(f"Duplicate link id #{link.id}")
                if not link.is_deleted:
                    from_record, to_record = store._check_endpoints(
                        LinkInput(from_entity_id=link.from_entity_id, to_entity_id=link.to_entity_id)
                    )
                    if (from_record.kind, to_record.kind) != (link.from_entity_kind, link.to_entity_kind):
                        raise LinkStoreError(f"Link #{link.id} endpoint kinds do not match its records")
                store._links[link.id] = link
                if link.id.isdigit():
                    store._next_id = max(store._next_id, int(link.id) + 1)
        except ValidationError as exc:
            raise LinkStoreError(f"Invalid graph document: {exc}") from exc
        logger.info(f"InMemoryLinkStore: loaded {len(store._records)} records, {len(store._links)} links")
        return store

    @classmethod
    def load(cls, file_path: str, user: str = "system") -> "InMemoryLinkStore":
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"Graph file not found: {file_path}")
        with open(file_path, "r", encoding="utf-8") as f:
            try:
                document = json.load(f)
            except json.JSONDecodeError as exc:
                raise LinkStoreError(f"Graph file {file_path} is not valid JSON: {exc}") from exc
        return cls.from_document(document, user=user)

    def to_document(self) -> Dict[str, Any]:
        return {
            "records": [
                record.model_dump(mode="json", exclude={"from_entity_links", "to_entity_links"})
                for record in self._records.values()
            ],
            "links": [link.model_dump(mode="json", exclude_none=True) for link in self._links.values()],
        }

    def save(self, output_path: str) -> None:
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.to_document(), f, indent=2)
        logger.info(f"InMemoryLinkStore: saved {len(self._links)} links to {output_path}")
