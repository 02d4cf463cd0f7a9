"""
Kind Registry - which kinds may link, and which side is stored as `from`.

CRITICAL DESIGN PRINCIPLES
--------------------------

1. Direction is a property of the PAIR, not of the caller.

   Users think of links as undirected; storage keeps them directed. Every
   reader (Resolver, Master Context) and every writer (Lifecycle Controller)
   consults this single table, so orientation is never inferred ad hoc.

   get_link_direction(A, B) and get_link_direction(B, A) return the same
   from/to assignment.

2. The table is TOTAL over legal pairs and EMPTY elsewhere.

   Linkable kinds, in canonical order:

       Topic, Claim, Declaration, Quotation, Publication, Person

   Topics are always `from` and people always `to`, matching the links
   already held by the backend of record.

   For two distinct linkable kinds, the earlier one is `from`. Same-kind
   pairs and non-linkable kinds have no entry and raise UnsupportedLinkPair.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import Optional

from .errors import UnsupportedLinkPair
from .logging import get_logger
from .models.kinds import LINKABLE_KINDS, EntityKind
from .models.links import LinkInput

logger = get_logger(__name__)

FROM_ENTITY_ID = "from_entity_id"
TO_ENTITY_ID = "to_entity_id"
FROM_ENTITY_KIND = "from_entity_kind"
TO_ENTITY_KIND = "to_entity_kind"


@dataclass(frozen=True)
class LinkDirection:
    """Storage orientation for one unordered pair of kinds."""

    from_kind: EntityKind
    to_kind: EntityKind

    def this_is_from_when_kind_is(self, kind: EntityKind | str) -> bool:
        """True if a record of ``kind`` occupies the `from` slot of this pair."""
        kind = _coerce(kind)
        if kind == self.from_kind:
            return True
        if kind == self.to_kind:
            return False
        raise UnsupportedLinkPair(self.from_kind, kind)

    def this_id_property(self, this_kind: EntityKind | str) -> str:
        return FROM_ENTITY_ID if self.this_is_from_when_kind_is(this_kind) else TO_ENTITY_ID

    def other_id_property(self, this_kind: EntityKind | str) -> str:
        return TO_ENTITY_ID if self.this_is_from_when_kind_is(this_kind) else FROM_ENTITY_ID

    def other_kind_property(self, this_kind: EntityKind | str) -> str:
        return TO_ENTITY_KIND if self.this_is_from_when_kind_is(this_kind) else FROM_ENTITY_KIND


def _build_table() -> dict[frozenset[EntityKind], LinkDirection]:
    table = {}
    for from_kind, to_kind in combinations(LINKABLE_KINDS, 2):
        table[frozenset((from_kind, to_kind))] = LinkDirection(from_kind=from_kind, to_kind=to_kind)
    return table


LINK_DIRECTIONS: dict[frozenset[EntityKind], LinkDirection] = _build_table()


def _coerce(kind: EntityKind | str | None) -> Optional[EntityKind]:
    if kind is None:
        return None
    try:
        return EntityKind(kind)
    except ValueError:
        return None


def is_supported_pair(kind_a: EntityKind | str | None, kind_b: EntityKind | str | None) -> bool:
    a, b = _coerce(kind_a), _coerce(kind_b)
    if a is None or b is None:
        return False
    return frozenset((a, b)) in LINK_DIRECTIONS


def get_link_direction(kind_a: EntityKind | str, kind_b: EntityKind | str) -> LinkDirection:
    """
    Return the storage orientation for a pair of kinds.

    Raises:
        UnsupportedLinkPair: if either kind is not linkable or the pair has no rule.
    """
    a, b = _coerce(kind_a), _coerce(kind_b)
    direction = LINK_DIRECTIONS.get(frozenset((a, b))) if a is not None and b is not None else None
    if direction is None:
        logger.debug("No link direction rule for %s/%s", kind_a, kind_b)
        raise UnsupportedLinkPair(kind_a, kind_b)
    return direction


def build_link_input(
    this_kind: EntityKind | str,
    this_id: str,
    this_locations: str,
    other_kind: EntityKind | str,
    other_id: str,
    other_locations: str,
    *,
    this_is_to_entity: Optional[bool] = None,
    link_id: Optional[str] = None,
) -> LinkInput:
    """
    Build a direction-correct mutation payload.

    For a new link the orientation comes from the table. For an existing link
    (edit/relink) pass the stored ``this_is_to_entity`` so the orientation is
    kept as persisted instead of being re-derived.
    """
    if this_is_to_entity is None:
        direction = get_link_direction(this_kind, other_kind)
        this_is_to_entity = not direction.this_is_from_when_kind_is(this_kind)

    if this_is_to_entity:
        return LinkInput(
            id=link_id,
            from_entity_id=other_id,
            from_entity_locations=other_locations,
            to_entity_id=this_id,
            to_entity_locations=this_locations,
        )
    return LinkInput(
        id=link_id,
        from_entity_id=this_id,
        from_entity_locations=this_locations,
        to_entity_id=other_id,
        to_entity_locations=other_locations,
    )
