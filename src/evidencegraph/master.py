"""
Master Context Propagator.

A user may pin a master topic (optionally including its sub-topics) and/or a
master record. When "show only linked records" is on, every other linkable
list must filter to records linked to the master. This module derives the
filter fragment for a list from an immutable MasterContext snapshot, so no
list needs bespoke logic and nothing reaches into shared state.

Fragment rules for a list of kind K:
- nothing unless show_only_linked_records is set and K is linkable
- master topic set  -> topic_id, recursive
- master record set, its kind != K, pair supported
                    -> the kind and id properties of the side the master occupies
- master record of kind K contributes nothing (same-kind links don't exist)
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from .errors import UnsupportedLinkPair
from .logging import get_logger
from .models.context import LinkableEntityQueryFilter, MasterContext
from .models.kinds import EntityKind, is_linkable
from .models.links import LinkInput
from .registry import build_link_input, get_link_direction, is_supported_pair

logger = get_logger(__name__)

FilterListener = Callable[[EntityKind, LinkableEntityQueryFilter], None]

_TRACKED_FIELDS = (
    "master_topic_id",
    "master_topic_recursive",
    "master_record_kind",
    "master_record_id",
    "show_only_linked_records",
)


def derive_master_filter(kind: EntityKind | str, context: MasterContext) -> LinkableEntityQueryFilter:
    """Return the filter fields a list of ``kind`` must add for ``context``."""
    if not context.show_only_linked_records or not is_linkable(kind):
        return LinkableEntityQueryFilter()
    kind = EntityKind(kind)

    fragment: dict = {}
    if context.master_topic_id:
        fragment["topic_id"] = context.master_topic_id
        fragment["recursive"] = context.master_topic_recursive

    if context.master_record_id and context.master_record_kind and context.master_record_kind != kind:
        try:
            direction = get_link_direction(kind, context.master_record_kind)
        except UnsupportedLinkPair:
            logger.debug(
                "Master record kind %s cannot filter %s lists",
                context.master_record_kind.value,
                kind.value,
            )
        else:
            fragment[direction.other_kind_property(kind)] = context.master_record_kind
            fragment[direction.other_id_property(kind)] = context.master_record_id

    return LinkableEntityQueryFilter(**fragment)


def context_from_filter(
    query_filter: LinkableEntityQueryFilter,
    current: Optional[MasterContext] = None,
) -> MasterContext:
    """
    Derive the master context implied by a list filter (e.g. one parsed from a URL).

    Inverse of ``derive_master_filter``: the topic becomes the master topic,
    a from/to id with its kind becomes the master record, and "show only
    linked records" is on when any of them is present.
    """
    context = current or MasterContext()
    if query_filter.topic_id != context.master_topic_id or bool(query_filter.recursive) != context.master_topic_recursive:
        context = context.with_master_topic(query_filter.topic_id, bool(query_filter.recursive))
    if query_filter.from_entity_kind and query_filter.from_entity_id:
        context = context.with_master_record(query_filter.from_entity_kind, query_filter.from_entity_id)
    elif query_filter.to_entity_kind and query_filter.to_entity_id:
        context = context.with_master_record(query_filter.to_entity_kind, query_filter.to_entity_id)
    show = bool(query_filter.topic_id or query_filter.from_entity_id or query_filter.to_entity_id)
    if show != context.show_only_linked_records:
        context = context.with_show_only_linked_records(show)
    return context


def master_link_inputs(
    kind: EntityKind | str,
    record_id: str,
    context: MasterContext,
    *,
    link_master_topic: bool = True,
    this_locations_for_topic: str = "",
    link_master_record: bool = True,
    this_locations_for_master: str = "",
    other_locations_for_master: str = "",
) -> List[LinkInput]:
    """
    Build the links that attach a record to the pinned master topic and/or record.

    The master topic link comes first, then the master record link. A link is
    left out when its master is not set, is the record itself, or cannot be
    linked to a record of ``kind``.
    """
    kind = EntityKind(kind)
    record_id = str(record_id)
    inputs: List[LinkInput] = []

    if link_master_topic and context.master_topic_id and context.master_topic_id != record_id:
        if is_supported_pair(kind, EntityKind.TOPIC):
            inputs.append(
                build_link_input(
                    kind,
                    record_id,
                    this_locations_for_topic,
                    EntityKind.TOPIC,
                    context.master_topic_id,
                    "",
                )
            )
        else:
            logger.debug("%s #%s cannot be linked to master topic #%s", kind.value, record_id, context.master_topic_id)

    if (
        link_master_record
        and context.master_record_kind
        and context.master_record_id
        and context.master_record_id != record_id
    ):
        if is_supported_pair(kind, context.master_record_kind):
            inputs.append(
                build_link_input(
                    kind,
                    record_id,
                    this_locations_for_master,
                    context.master_record_kind,
                    context.master_record_id,
                    other_locations_for_master,
                )
            )
        else:
            logger.debug(
                "%s #%s cannot be linked to master %s #%s",
                kind.value,
                record_id,
                context.master_record_kind.value,
                context.master_record_id,
            )

    return inputs


class MasterContextPropagator:
    """
    Holds the session's MasterContext and pushes filter fragments to lists.

    Each visible list subscribes with its kind. Whenever a tracked field of
    the context changes, every subscribed linkable list receives its freshly
    derived fragment.
    """

    def __init__(self, context: Optional[MasterContext] = None):
        self.context = context or MasterContext()
        self._listeners: Dict[EntityKind, List[FilterListener]] = {}

    def subscribe(self, kind: EntityKind | str, listener: FilterListener) -> LinkableEntityQueryFilter:
        """
        Register a visible list; returns the fragment it should apply now.

        Several lists of the same kind may subscribe; each gets every update.
        """
        kind = EntityKind(kind)
        self._listeners.setdefault(kind, []).append(listener)
        return derive_master_filter(kind, self.context)

    def unsubscribe(self, kind: EntityKind | str, listener: Optional[FilterListener] = None) -> None:
        """Remove one listener of ``kind``, or all of them when ``listener`` is None."""
        kind = EntityKind(kind)
        if listener is None:
            self._listeners.pop(kind, None)
            return
        listeners = self._listeners.get(kind, [])
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            self._listeners.pop(kind, None)

    def filter_for(self, kind: EntityKind | str) -> LinkableEntityQueryFilter:
        return derive_master_filter(kind, self.context)

    def set_context(self, context: MasterContext) -> bool:
        """Replace the snapshot; returns True if the lists were re-filtered."""
        previous, self.context = self.context, context
        changed = any(getattr(previous, name) != getattr(context, name) for name in _TRACKED_FIELDS)
        if changed:
            self._propagate()
        return changed

    def update(self, **changes: Any) -> bool:
        """
        Apply field changes to the snapshot, e.g. ``update(master_topic_id="5")``.

        Raises:
            ValueError: for an unknown field name
            ValidationError: if a value does not validate
        """
        unknown = sorted(set(changes) - set(MasterContext.model_fields))
        if unknown:
            raise ValueError(f"Unknown master context field(s): {', '.join(unknown)}")
        return self.set_context(MasterContext.model_validate({**self.context.model_dump(), **changes}))

    def set_master_topic(self, topic_id: Optional[str], recursive: Optional[bool] = None) -> bool:
        return self.set_context(self.context.with_master_topic(topic_id, recursive))

    def set_master_record(
        self,
        kind: Optional[EntityKind | str],
        record_id: Optional[str],
        label: Optional[str] = None,
    ) -> bool:
        return self.set_context(self.context.with_master_record(kind, record_id, label))

    def set_show_only_linked_records(self, show: bool) -> bool:
        return self.set_context(self.context.with_show_only_linked_records(show))

    def clear(self) -> bool:
        return self.set_context(self.context.cleared())

    def _propagate(self) -> None:
        for kind, listeners in list(self._listeners.items()):
            if not is_linkable(kind):
                continue
            fragment = derive_master_filter(kind, self.context)
            logger.debug("Master filter for %s: %s", kind.value, fragment.model_dump(exclude_none=True))
            for listener in list(listeners):
                listener(kind, fragment)
