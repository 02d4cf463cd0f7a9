"""
Link Lifecycle Controller - safe create/edit/relink/unlink of one record's links.

One LinkManager is one link-manager session for one record.

STATES
------

    view --link()--> create --save()/cancel()--> view
    view --edit()--> edit   --save()/cancel()--> view
    view --relink()/unlink()/publish()--> view

- A transition whose precondition does not hold is a no-op returning False.
- Mutations are a single store round-trip. The state only advances on
  success; a LinkStoreError is kept in ``error`` and the state is unchanged so
  the user can retry or cancel.
- While a mutation is pending every action is disabled; starting another one
  raises LinkOperationInProgress.
- After each successful mutation the manager refetches the record's links
  from the store. Local state is never treated as ground truth.
- Orientation of an existing link (edit, relink) is taken from the stored
  ``this_record_is_to_entity``, never re-derived, so a relink cannot reverse
  a link.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Optional

from loguru import logger

from .audit import compute_audit, publication_verdict, rules_for
from .audit.rules import AuditRules
from .errors import LinkOperationInProgress, LinkStoreError
from .master import master_link_inputs
from .models.audit import EntityAudit, PublicationVerdict
from .models.context import MasterContext
from .models.kinds import EntityKind, StatusKind
from .models.links import EntityLink, LinkableRecord, RecordLink
from .registry import build_link_input, get_link_direction
from .resolver import filter_by_other_kind, find_link, resolve_links
from .store import LinkStore

LINK_AUTHORITY = "LNK"
UPDATE_AUTHORITY = "UPD"


class LinkMode(str, Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"


class LinkManager:
    """
    State machine governing the links of one record.

    Args:
        record: The record whose links are managed ("this" record)
        store: Backend of record for links
        has_authority: Capability check, e.g. ``has_authority("LNK")``
        confirm: Asks the user a yes/no question; False aborts the action
        rules: Audit rules (defaults to the record kind's rules)
    """

    def __init__(
        self,
        record: LinkableRecord,
        store: LinkStore,
        *,
        has_authority: Callable[[str], bool],
        confirm: Callable[[str], bool],
        rules: Optional[AuditRules] = None,
    ):
        self.record = record
        self.store = store
        self.has_authority = has_authority
        self.confirm = confirm
        self.rules = rules if rules is not None else rules_for(record.kind)

        self.links: list[RecordLink] = resolve_links(record)
        self.mode = LinkMode.VIEW
        self.other_record_kind: Optional[EntityKind] = None
        self.other_record_id: Optional[str] = None
        self.other_record_label: str = ""
        self.selected_link_id: Optional[str] = None
        self.this_locations = ""
        self.other_locations = ""
        self.pending = False
        self.error: Optional[str] = None

    # ========================================================================
    # Derived state
    # ========================================================================

    @property
    def allow_linking(self) -> bool:
        return self.has_authority(LINK_AUTHORITY)

    @property
    def selected_link(self) -> Optional[RecordLink]:
        return find_link(self.links, self.selected_link_id)

    @property
    def filtered_links(self) -> list[RecordLink]:
        """Existing links to records of the currently chosen other kind."""
        return filter_by_other_kind(self.links, self.other_record_kind)

    @property
    def audit(self) -> EntityAudit:
        return compute_audit(
            self.record.field_values,
            self.links,
            self.rules,
            entity_kind=self.record.kind,
            entity_id=self.record.id,
        )

    @property
    def verdict(self) -> PublicationVerdict:
        return publication_verdict(
            self.record.status,
            self.audit,
            label=f"{self.record.kind.value} #{self.record.id}",
        )

    def is_modified(self) -> bool:
        # In create mode nothing is selected, so the baseline is empty.
        selected = self.selected_link
        return self.this_locations != (selected.this_locations if selected else "") or self.other_locations != (
            selected.other_locations if selected else ""
        )

    @property
    def can_link(self) -> bool:
        return self.allow_linking and bool(self.other_record_id) and self.mode == LinkMode.VIEW and not self.pending

    @property
    def can_edit(self) -> bool:
        return self.selected_link is not None and self.mode == LinkMode.VIEW and not self.pending

    @property
    def can_save(self) -> bool:
        if not self.allow_linking or self.pending:
            return False
        return self.mode == LinkMode.CREATE or (self.mode == LinkMode.EDIT and self.is_modified())

    @property
    def can_cancel(self) -> bool:
        return self.mode != LinkMode.VIEW and not self.pending

    @property
    def can_relink(self) -> bool:
        selected = self.selected_link
        return (
            self.allow_linking
            and selected is not None
            and bool(self.other_record_id)
            and self.other_record_id != selected.other_record_id
            and self.other_record_kind == selected.other_record_kind
            and self.mode == LinkMode.VIEW
            and not self.pending
        )

    @property
    def can_unlink(self) -> bool:
        selected = self.selected_link
        return (
            self.allow_linking
            and selected is not None
            and not selected.is_deleted
            and self.mode == LinkMode.VIEW
            and not self.pending
        )

    @property
    def can_publish(self) -> bool:
        return (
            self.has_authority(UPDATE_AUTHORITY)
            and self.record.status != StatusKind.PUBLISHED
            and self.audit.passed
            and not self.pending
        )

    # ========================================================================
    # Selection
    # ========================================================================

    def _guard(self) -> None:
        if self.pending:
            raise LinkOperationInProgress(
                f"A link operation for {self.record.kind.value} #{self.record.id} is still pending"
            )

    def select_other_kind(self, kind: Optional[EntityKind | str]) -> bool:
        self._guard()
        if self.mode != LinkMode.VIEW:
            return False
        self.other_record_kind = EntityKind(kind) if kind else None
        self.other_record_id = None
        self.other_record_label = ""
        self.select_link(None)
        return True

    def select_candidate(
        self,
        record_id: Optional[str],
        label: str = "",
        kind: Optional[EntityKind | str] = None,
    ) -> bool:
        """Choose the not-yet-linked record a new link (or a relink) would point to."""
        self._guard()
        if self.mode != LinkMode.VIEW:
            return False
        if kind:
            self.other_record_kind = EntityKind(kind)
        self.other_record_id = str(record_id) if record_id else None
        self.other_record_label = label or (
            f"{self.other_record_kind.value} #{self.other_record_id}"
            if self.other_record_kind and self.other_record_id
            else ""
        )
        return True

    def select_link(self, link_id: Optional[str]) -> bool:
        self._guard()
        if self.mode != LinkMode.VIEW:
            return False
        self.selected_link_id = link_id or None
        self._refresh_editable_fields()
        return True

    def _refresh_editable_fields(self) -> None:
        selected = self.selected_link
        self.this_locations = selected.this_locations if selected else ""
        self.other_locations = selected.other_locations if selected else ""

    # ========================================================================
    # Transitions
    # ========================================================================

    def link(self) -> bool:
        """view -> create, for the chosen candidate."""
        self._guard()
        if not self.can_link:
            logger.debug(f"LinkManager: link ignored in mode {self.mode.value}")
            return False
        # Fails before any store call when the kinds cannot be linked.
        get_link_direction(self.record.kind, self.other_record_kind)
        logger.info(f"LinkManager: linking '{self.other_record_label}'")
        self.selected_link_id = None
        self.this_locations = ""
        self.other_locations = ""
        self.mode = LinkMode.CREATE
        return True

    def link_master(self, context: MasterContext) -> bool:
        """view -> create, targeting the pinned master record; save() then persists it."""
        self._guard()
        if (
            self.mode != LinkMode.VIEW
            or not context.master_record_kind
            or not context.master_record_id
            or context.master_record_id == self.record.id
        ):
            return False
        self.other_record_kind = context.master_record_kind
        self.other_record_id = context.master_record_id
        self.other_record_label = context.master_record_label or (
            f"{context.master_record_kind.value} #{context.master_record_id}"
        )
        return self.link()

    def edit(self) -> bool:
        """view -> edit, for the selected link."""
        self._guard()
        if not self.can_edit:
            return False
        self.mode = LinkMode.EDIT
        return True

    def save(self) -> bool:
        self._guard()
        if self.mode == LinkMode.CREATE:
            return self._save_new()
        if self.mode == LinkMode.EDIT:
            return self._save_edit()
        return False

    def _save_new(self) -> bool:
        if not self.allow_linking or not self.other_record_id or self.other_record_kind is None:
            return False
        # The link itself is the persisted artifact, so even empty locations are saved.
        link_input = build_link_input(
            self.record.kind,
            self.record.id,
            self.this_locations,
            self.other_record_kind,
            self.other_record_id,
            self.other_locations,
        )
        ok, created = self._mutate("create link", self.store.create_link, link_input)
        if not ok:
            return False
        logger.info(f"LinkManager: created link #{created.id}")
        self.mode = LinkMode.VIEW
        self.other_record_id = None
        self.other_record_label = ""
        self.selected_link_id = created.id
        self.refresh()
        self._refresh_editable_fields()
        return True

    def _save_edit(self) -> bool:
        selected = self.selected_link
        if selected is None:
            self.mode = LinkMode.VIEW
            return True
        if not self.is_modified():
            # Nothing to persist.
            self.mode = LinkMode.VIEW
            return True
        if not self.allow_linking:
            return False
        link_input = build_link_input(
            self.record.kind,
            self.record.id,
            self.this_locations,
            selected.other_record_kind,
            selected.other_record_id,
            self.other_locations,
            this_is_to_entity=selected.this_record_is_to_entity,
            link_id=selected.id,
        )
        ok, _ = self._mutate("update link", self.store.update_link, link_input)
        if not ok:
            return False
        logger.info(f"LinkManager: saved locations of link #{selected.id}")
        self.mode = LinkMode.VIEW
        self.refresh()
        self._refresh_editable_fields()
        return True

    def cancel(self) -> bool:
        """create/edit -> view, discarding unsaved locations (after confirmation if modified)."""
        self._guard()
        if self.mode == LinkMode.VIEW:
            return False
        if self.is_modified():
            selected = self.selected_link
            target = (
                f"link with record '{selected.other_record_label}'"
                if self.mode == LinkMode.EDIT and selected
                else "new record link"
            )
            if not self.confirm(f"Confirm discard changes to {target}?"):
                return False
        logger.info(f"LinkManager: cancelling {self.mode.value}")
        self._refresh_editable_fields()
        self.mode = LinkMode.VIEW
        return True

    def relink(self) -> bool:
        """Point the selected link at the chosen candidate, keeping its id and orientation."""
        self._guard()
        if not self.can_relink:
            return False
        selected = self.selected_link
        question = f"Change target of link from {selected.other_record_label} to {self.other_record_label}?"
        if self.other_locations:
            question += (
                "\n\nN.B. The 'Location(s) in other record' value will be retained but may not be "
                "appropriate to the new target record. Change it if necessary."
            )
        if not self.confirm(question):
            return False
        link_input = build_link_input(
            self.record.kind,
            self.record.id,
            self.this_locations,
            selected.other_record_kind,
            self.other_record_id,
            self.other_locations,
            this_is_to_entity=selected.this_record_is_to_entity,
            link_id=selected.id,
        )
        new_target = self.other_record_label
        ok, _ = self._mutate("relink", self.store.update_link, link_input)
        if not ok:
            return False
        logger.info(f"LinkManager: changed target of link #{selected.id} to {new_target}")
        self.other_record_id = None
        self.other_record_label = ""
        self.refresh()
        self._refresh_editable_fields()
        return True

    def unlink(self) -> bool:
        self._guard()
        if not self.can_unlink:
            return False
        selected = self.selected_link
        if not self.confirm(f"Confirm delete link with record '{selected.other_record_label}'?"):
            logger.info(f"LinkManager: cancelling unlink '{selected.other_record_label}'")
            return False
        ok, _ = self._mutate("unlink", self.store.delete_link, selected.id)
        if not ok:
            return False
        logger.info(f"LinkManager: unlinked '{selected.other_record_label}'")
        self.refresh()
        self._refresh_editable_fields()
        return True

    def publish(self) -> bool:
        """Set the record's status to Published; allowed only while its audit passes."""
        self._guard()
        if not self.can_publish:
            return False
        ok, updated = self._mutate(
            "publish",
            self.store.set_entity_status,
            self.record.id,
            StatusKind.PUBLISHED,
        )
        if not ok:
            return False
        self.record = self.record.model_copy(update={"status": updated.status})
        logger.info(f"LinkManager: published {self.record.kind.value} #{self.record.id}")
        return True

    # ========================================================================
    # Store round-trips
    # ========================================================================

    def _mutate(self, description: str, operation: Callable[..., Any], *args: Any) -> tuple[bool, Any]:
        self._guard()
        self.pending = True
        self.error = None
        try:
            return True, operation(*args)
        except LinkStoreError as exc:
            self.error = str(exc)
            logger.error(f"LinkManager: {description} failed: {exc}")
            return False, None
        finally:
            self.pending = False

    def refresh(self) -> None:
        """Refetch this record's links from the store."""
        collections = self.store.read_links_for_record(self.record.kind, self.record.id)
        self.record = self.record.model_copy(
            update={
                "from_entity_links": collections.from_entity_links,
                "to_entity_links": collections.to_entity_links,
            }
        )
        self.links = resolve_links(self.record)
        if self.selected_link_id and self.selected_link is None:
            self.selected_link_id = None


def link_record_to_master(
    store: LinkStore,
    kind: EntityKind | str,
    record_id: str,
    context: MasterContext,
    **options: Any,
) -> list[EntityLink]:
    """
    Link a newly created record to the pinned master topic and/or record.

    ``options`` are passed to ``master_link_inputs`` (``link_master_topic``,
    ``this_locations_for_topic``, ``link_master_record``,
    ``this_locations_for_master``, ``other_locations_for_master``). The topic
    link is created first; a LinkStoreError stops the sequence and propagates.
    """
    created = []
    for link_input in master_link_inputs(kind, record_id, context, **options):
        link = store.create_link(link_input)
        logger.info(f"LinkManager: linked {EntityKind(kind).value} #{record_id} to master via link #{link.id}")
        created.append(link)
    return created
