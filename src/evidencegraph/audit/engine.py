"""
Audit Engine - publish-readiness of a record.

Evaluation flow:
1. Evaluate every ungrouped field rule -> FieldAuditEntry
2. Evaluate every field group -> FieldAuditGroup (passes if ANY member passes)
3. fieldAudit.pass = all ungrouped entries AND all groups pass
4. Count non-deleted links per other-record kind
5. Evaluate every link rule -> LinkAuditEntry (actual >= min)
6. Evaluate every link group -> LinkAuditGroup (sum of actuals >= group min)
7. linkAudit.pass = all entries AND all groups pass
8. EntityAudit.pass = fieldAudit.pass AND linkAudit.pass

The engine is a pure function of its inputs: no I/O, no clock other than
what rule bounds read, safe to recompute on every render.

Severity is informational. A failing INFO rule fails the audit exactly like a
failing ERROR rule.

Publication policy lives in ``publication_verdict``: a record may be
published only while its audit passes; an already published record that
later fails is flagged for review, never unpublished here.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, Mapping, Optional

from ..logging import get_logger
from ..models.audit import (
    EntityAudit,
    FieldAudit,
    FieldAuditGroup,
    LinkAudit,
    LinkAuditEntry,
    LinkAuditGroup,
    PublicationVerdict,
)
from ..models.kinds import EntityKind, StatusKind
from ..models.links import LinkableRecord, RecordLink
from ..resolver import resolve_links
from .rules import AuditRules, FieldGroupRule, LinkGroupRule, LinkRule, rules_for

logger = get_logger(__name__)


def _audit_fields(field_values: Mapping[str, Any], rules: AuditRules) -> FieldAudit:
    entries = tuple(rule.evaluate(field_values) for rule in rules.fields)
    groups = tuple(_audit_field_group(field_values, group) for group in rules.field_groups)
    passed = all(entry.passed for entry in entries) and all(group.passed for group in groups)
    return FieldAudit(fields=entries, groups=groups, passed=passed)


def _audit_field_group(field_values: Mapping[str, Any], group: FieldGroupRule) -> FieldAuditGroup:
    entries = tuple(rule.evaluate(field_values) for rule in group.rules)
    return FieldAuditGroup(
        name=group.display_name,
        fields=entries,
        passed=any(entry.passed for entry in entries),
    )


def count_links_by_kind(links: Iterable[RecordLink]) -> Counter:
    """Number of non-deleted links per other-record kind."""
    return Counter(link.other_record_kind for link in links if not link.is_deleted)


def _audit_link(counts: Counter, rule: LinkRule) -> LinkAuditEntry:
    actual = counts.get(rule.linked_entity_kind, 0)
    return LinkAuditEntry(
        linked_entity_kind=rule.linked_entity_kind,
        min=rule.min,
        actual=actual,
        passed=actual >= rule.min,
    )


def _audit_link_group(counts: Counter, group: LinkGroupRule) -> LinkAuditGroup:
    entries = tuple(_audit_link(counts, rule) for rule in group.requirements)
    actual = sum(entry.actual for entry in entries)
    return LinkAuditGroup(
        name=group.display_name,
        min=group.min,
        actual=actual,
        links=entries,
        passed=actual >= group.min,
    )


def _audit_links(links: Iterable[RecordLink], rules: AuditRules) -> LinkAudit:
    counts = count_links_by_kind(links)
    entries = tuple(_audit_link(counts, rule) for rule in rules.links)
    groups = tuple(_audit_link_group(counts, group) for group in rules.link_groups)
    passed = all(entry.passed for entry in entries) and all(group.passed for group in groups)
    return LinkAudit(links=entries, groups=groups, passed=passed)


def compute_audit(
    field_values: Mapping[str, Any],
    links: Iterable[RecordLink],
    rules: AuditRules,
    *,
    entity_kind: Optional[EntityKind] = None,
    entity_id: Optional[str] = None,
) -> EntityAudit:
    """
    Audit a record from its field values and resolved links.

    Args:
        field_values: Field name -> value
        links: Links already resolved to the record's perspective
        rules: Rule set to apply
        entity_kind, entity_id: Echoed into the result for display

    Returns:
        EntityAudit with field/link verdicts and the combined verdict
    """
    field_audit = _audit_fields(field_values, rules)
    link_audit = _audit_links(list(links), rules)
    audit = EntityAudit(
        entity_kind=entity_kind,
        entity_id=entity_id,
        field_audit=field_audit,
        link_audit=link_audit,
        passed=field_audit.passed and link_audit.passed,
    )
    logger.debug(
        "Audit %s #%s: fields=%s links=%s",
        entity_kind.value if entity_kind else "?",
        entity_id or "?",
        field_audit.passed,
        link_audit.passed,
    )
    return audit


def audit_record(record: LinkableRecord, rules: Optional[AuditRules] = None) -> EntityAudit:
    """Resolve ``record``'s links and audit it (default rules for its kind unless given)."""
    return compute_audit(
        record.field_values,
        resolve_links(record),
        rules if rules is not None else rules_for(record.kind),
        entity_kind=record.kind,
        entity_id=record.id,
    )


def publication_verdict(
    status: StatusKind,
    audit: EntityAudit,
    *,
    label: str = "Record",
) -> PublicationVerdict:
    if status == StatusKind.PUBLISHED:
        if audit.passed:
            return PublicationVerdict(
                can_publish=False,
                needs_review=False,
                message=f"{label} is already published and still meets the minimum criteria for publication.",
            )
        return PublicationVerdict(
            can_publish=False,
            needs_review=True,
            message=(
                f"{label} is already published but no longer meets the minimum criteria for publication. "
                "Please review the field/link audit and correct any failures."
            ),
        )
    if audit.passed:
        return PublicationVerdict(
            can_publish=True,
            needs_review=False,
            message=f"{label} meets the minimum criteria for publication.",
        )
    return PublicationVerdict(
        can_publish=False,
        needs_review=False,
        message=(
            f"{label} does not yet meet the minimum criteria for publication. "
            "Please review the field/link audit and correct any failures."
        ),
    )
