"""
Link Resolver - stored links seen from one record.

Maps every raw EntityLink of a record to a RecordLink in which "this" is the
record and "other" is the far endpoint, whatever the storage direction.

Anomalies (a link whose endpoints don't include the record) are dropped and
reported; they never abort resolution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .logging import get_logger
from .models.kinds import EntityKind
from .models.links import EntityLink, LinkableRecord, RecordLink

logger = get_logger(__name__)


@dataclass(frozen=True)
class LinkAnomaly:
    """A stored link that could not be placed relative to the queried record."""

    link_id: str
    record_kind: EntityKind
    record_id: str
    reason: str


@dataclass
class LinkResolution:
    links: list[RecordLink] = field(default_factory=list)
    anomalies: list[LinkAnomaly] = field(default_factory=list)


def _endpoint_label(label: Optional[str], kind: EntityKind, record_id: str) -> str:
    if label:
        return label
    logger.warning("No label for %s #%s, using fallback", kind.value, record_id)
    return f"{kind.value} #{record_id}"


def to_record_link(record_kind: EntityKind, record_id: str, link: EntityLink) -> Optional[RecordLink]:
    """
    Renormalize ``link`` to the perspective of ``(record_kind, record_id)``.

    Returns None when neither endpoint is the record.
    """
    if link.from_entity_kind == record_kind and link.from_entity_id == record_id:
        this_is_to = False
    elif link.to_entity_kind == record_kind and link.to_entity_id == record_id:
        this_is_to = True
    else:
        return None

    if this_is_to:
        other_kind, other_id, other_label = link.from_entity_kind, link.from_entity_id, link.from_entity_label
        this_locations, other_locations = link.to_entity_locations, link.from_entity_locations
    else:
        other_kind, other_id, other_label = link.to_entity_kind, link.to_entity_id, link.to_entity_label
        this_locations, other_locations = link.from_entity_locations, link.to_entity_locations

    return RecordLink(
        id=link.id,
        this_record_id=record_id,
        other_record_kind=other_kind,
        other_record_id=other_id,
        other_record_label=_endpoint_label(other_label, other_kind, other_id),
        this_locations=this_locations,
        other_locations=other_locations,
        this_record_is_to_entity=this_is_to,
        status=link.status,
        created_by=link.created_by,
        created=link.created,
        updated_by=link.updated_by,
        updated=link.updated,
    )


def resolve_links_with_anomalies(record: LinkableRecord) -> LinkResolution:
    resolution = LinkResolution()
    seen: set[str] = set()
    for link in [*record.from_entity_links, *record.to_entity_links]:
        # Unsaved links have nothing to show yet.
        if not link.is_persisted:
            continue
        if link.id in seen:
            continue
        seen.add(link.id)

        record_link = to_record_link(record.kind, record.id, link)
        if record_link is None:
            anomaly = LinkAnomaly(
                link_id=link.id,
                record_kind=record.kind,
                record_id=record.id,
                reason=(
                    f"endpoints {link.from_entity_kind.value} #{link.from_entity_id} -> "
                    f"{link.to_entity_kind.value} #{link.to_entity_id} do not include the record"
                ),
            )
            logger.warning(
                "Dropping link #%s for %s #%s: %s",
                anomaly.link_id,
                record.kind.value,
                record.id,
                anomaly.reason,
            )
            resolution.anomalies.append(anomaly)
            continue
        resolution.links.append(record_link)

    logger.debug(
        "Resolved %d links (%d anomalies) for %s #%s",
        len(resolution.links),
        len(resolution.anomalies),
        record.kind.value,
        record.id,
    )
    return resolution


def resolve_links(record: LinkableRecord) -> list[RecordLink]:
    """Resolve the record's links, dropping (and logging) anomalies."""
    return resolve_links_with_anomalies(record).links


def filter_by_other_kind(links: Iterable[RecordLink], kind: EntityKind | str | None) -> list[RecordLink]:
    if kind is None:
        return []
    kind = EntityKind(kind)
    return [link for link in links if link.other_record_kind == kind]


def find_link(links: Iterable[RecordLink], link_id: Optional[str]) -> Optional[RecordLink]:
    if not link_id:
        return None
    for link in links:
        if link.id == link_id:
            return link
    return None
