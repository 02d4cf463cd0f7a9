from .audit import (
    EntityAudit,
    FieldAudit,
    FieldAuditEntry,
    FieldAuditGroup,
    LinkAudit,
    LinkAuditEntry,
    LinkAuditGroup,
    PublicationVerdict,
)
from .context import (
    LinkableEntityQueryFilter,
    MasterContext,
)
from .kinds import (
    LINKABLE_KINDS,
    EntityKind,
    SeverityKind,
    StatusKind,
    is_linkable,
)
from .links import (
    EntityLink,
    LinkCollections,
    LinkableRecord,
    LinkInput,
    RecordLink,
)

__all__ = [
    "EntityAudit",
    "FieldAudit",
    "FieldAuditEntry",
    "FieldAuditGroup",
    "LinkAudit",
    "LinkAuditEntry",
    "LinkAuditGroup",
    "PublicationVerdict",
    "LinkableEntityQueryFilter",
    "MasterContext",
    "LINKABLE_KINDS",
    "EntityKind",
    "SeverityKind",
    "StatusKind",
    "is_linkable",
    "EntityLink",
    "LinkCollections",
    "LinkableRecord",
    "LinkInput",
    "RecordLink",
]
