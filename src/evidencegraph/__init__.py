"""
Public API for the evidence graph core.

Link graph resolution, publish-readiness audits, the link lifecycle state
machine and master-context filter propagation.
"""

from .audit import AuditRules, audit_record, compute_audit, publication_verdict
from .errors import (
    EvidenceGraphError,
    LinkOperationInProgress,
    LinkStoreError,
    UnsupportedLinkPair,
)
from .lifecycle import LinkManager, LinkMode, link_record_to_master
from .master import MasterContextPropagator, context_from_filter, derive_master_filter, master_link_inputs
from .models import (
    EntityAudit,
    EntityKind,
    EntityLink,
    LinkableEntityQueryFilter,
    LinkableRecord,
    MasterContext,
    RecordLink,
    StatusKind,
)
from .registry import LinkDirection, build_link_input, get_link_direction, is_supported_pair
from .resolver import filter_by_other_kind, resolve_links, resolve_links_with_anomalies
from .store import InMemoryLinkStore, LinkStore

__all__ = [
    "AuditRules",
    "audit_record",
    "compute_audit",
    "publication_verdict",
    "EvidenceGraphError",
    "LinkOperationInProgress",
    "LinkStoreError",
    "UnsupportedLinkPair",
    "LinkManager",
    "LinkMode",
    "link_record_to_master",
    "MasterContextPropagator",
    "context_from_filter",
    "derive_master_filter",
    "master_link_inputs",
    "EntityAudit",
    "EntityKind",
    "EntityLink",
    "LinkableEntityQueryFilter",
    "LinkableRecord",
    "MasterContext",
    "RecordLink",
    "StatusKind",
    "LinkDirection",
    "build_link_input",
    "get_link_direction",
    "is_supported_pair",
    "filter_by_other_kind",
    "resolve_links",
    "resolve_links_with_anomalies",
    "InMemoryLinkStore",
    "LinkStore",
]
