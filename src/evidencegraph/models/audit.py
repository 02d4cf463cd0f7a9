"""
Public models for publish-readiness audits.

An EntityAudit is a live projection: it is recomputed whenever a record's
fields or links change and is never persisted. ``passed`` serialises as
``pass`` (use ``model_dump(by_alias=True)``).
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .kinds import EntityKind, SeverityKind


class _AuditModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class FieldAuditEntry(_AuditModel):
    """Outcome of one field rule."""

    field_name: str = Field(description="Name of the audited field.")
    severity: SeverityKind = Field(description="Presentation severity of the rule.")
    passed: bool = Field(alias="pass", description="Whether the field satisfied the rule.")
    message: str = Field(default="", description="Human-readable description of the rule.")


class FieldAuditGroup(_AuditModel):
    """Alternative field rules: the group passes iff at least one member passes."""

    name: str = Field(default="", description="Group name, for display.")
    fields: tuple[FieldAuditEntry, ...] = Field(default_factory=tuple)
    passed: bool = Field(alias="pass")


class FieldAudit(_AuditModel):
    fields: tuple[FieldAuditEntry, ...] = Field(default_factory=tuple)
    groups: tuple[FieldAuditGroup, ...] = Field(default_factory=tuple)
    passed: bool = Field(default=True, alias="pass")


class LinkAuditEntry(_AuditModel):
    """Outcome of one link-cardinality rule: ``passed`` is ``actual >= min``."""

    linked_entity_kind: EntityKind = Field(description="Kind of record that must be linked.")
    min: int = Field(ge=0, description="Minimum required number of links to that kind.")
    actual: int = Field(ge=0, description="Observed number of non-deleted links to that kind.")
    passed: bool = Field(alias="pass")


class LinkAuditGroup(_AuditModel):
    """
    Alternative link rules.

    The group passes iff the sum of member actuals reaches the group minimum.
    Members still report their own per-kind verdicts.
    """

    name: str = Field(default="")
    min: int = Field(ge=0, description="Minimum total links across all member kinds.")
    actual: int = Field(ge=0, description="Sum of member actual counts.")
    links: tuple[LinkAuditEntry, ...] = Field(default_factory=tuple)
    passed: bool = Field(alias="pass")


class LinkAudit(_AuditModel):
    links: tuple[LinkAuditEntry, ...] = Field(default_factory=tuple)
    groups: tuple[LinkAuditGroup, ...] = Field(default_factory=tuple)
    passed: bool = Field(default=True, alias="pass")

    def entry_for(self, kind: EntityKind) -> Optional[LinkAuditEntry]:
        """Return the ungrouped entry for ``kind``, if one was configured."""
        for entry in self.links:
            if entry.linked_entity_kind == kind:
                return entry
        return None


class EntityAudit(_AuditModel):
    """
    Aggregated audit for a record.

    ``passed`` is ``field_audit.passed and link_audit.passed``.
    """

    entity_kind: Optional[EntityKind] = None
    entity_id: Optional[str] = None
    field_audit: FieldAudit = Field(default_factory=FieldAudit)
    link_audit: LinkAudit = Field(default_factory=LinkAudit)
    passed: bool = Field(default=True, alias="pass")


class PublicationVerdict(_AuditModel):
    """
    What the UI may do with a record given its status and live audit.

    A published record whose audit now fails is NOT unpublished; it is
    flagged for review instead.
    """

    can_publish: bool
    needs_review: bool
    message: str
