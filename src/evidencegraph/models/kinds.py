"""
Record kinds, lifecycle statuses and audit severities.

Every enum here accepts both its display value and its three-letter storage
code, so payloads coming from the store ("CLA", "PUB") and from clients
("Claim", "Published") validate to the same member.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class EntityKind(str, Enum):
    """
    Kind of a tracked record.

    Only the kinds in LINKABLE_KINDS take part in the link graph; the rest
    are tracked (status, provenance, audit) but never linked.
    """

    CLAIM = "Claim"
    COMMENT = "Comment"
    DECLARATION = "Declaration"
    GROUP = "Group"
    JOURNAL = "Journal"
    PERSON = "Person"
    PUBLICATION = "Publication"
    PUBLISHER = "Publisher"
    QUOTATION = "Quotation"
    RECORD_LINK = "RecordLink"
    TOPIC = "Topic"
    USER = "User"

    @property
    def code(self) -> str:
        """Three-letter storage code (e.g. CLA for Claim)."""
        return _KIND_CODES[self]

    @property
    def is_linkable(self) -> bool:
        return self in LINKABLE_KINDS

    @classmethod
    def _missing_(cls, value: object) -> Optional["EntityKind"]:
        if not isinstance(value, str):
            return None
        key = value.strip()
        for member in cls:
            if member.code == key.upper() or member.value.lower() == key.lower():
                return member
        return None


_KIND_CODES = {
    EntityKind.CLAIM: "CLA",
    EntityKind.COMMENT: "COM",
    EntityKind.DECLARATION: "DEC",
    EntityKind.GROUP: "GRP",
    EntityKind.JOURNAL: "JOU",
    EntityKind.PERSON: "PER",
    EntityKind.PUBLICATION: "PUB",
    EntityKind.PUBLISHER: "PBR",
    EntityKind.QUOTATION: "QUO",
    EntityKind.RECORD_LINK: "LNK",
    EntityKind.TOPIC: "TOP",
    EntityKind.USER: "USR",
}

# Order matters: the Kind Registry stores the earlier kind of a pair as `from`.
LINKABLE_KINDS: tuple[EntityKind, ...] = (
    EntityKind.TOPIC,
    EntityKind.CLAIM,
    EntityKind.DECLARATION,
    EntityKind.QUOTATION,
    EntityKind.PUBLICATION,
    EntityKind.PERSON,
)


def is_linkable(kind: EntityKind | str | None) -> bool:
    """True if ``kind`` names a linkable entity kind. Unknown names are not linkable."""
    if kind is None:
        return False
    try:
        return EntityKind(kind) in LINKABLE_KINDS
    except ValueError:
        return False


class StatusKind(str, Enum):
    """Lifecycle status shared by tracked records and links."""

    DRAFT = "DRA"
    PUBLISHED = "PUB"
    SUSPENDED = "SUS"
    DELETED = "DEL"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @classmethod
    def _missing_(cls, value: object) -> Optional["StatusKind"]:
        if not isinstance(value, str):
            return None
        key = value.strip().lower()
        for member in cls:
            if member.label.lower() == key or member.value.lower() == key:
                return member
        return None


_STATUS_LABELS = {
    StatusKind.DRAFT: "Draft",
    StatusKind.PUBLISHED: "Published",
    StatusKind.SUSPENDED: "Suspended",
    StatusKind.DELETED: "Deleted",
}


class SeverityKind(str, Enum):
    """
    Severity of a field audit rule.

    Presentation only: a failing INFO rule fails the audit just like a
    failing ERROR rule does.
    """

    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"

    @property
    def modal_verb(self) -> str:
        return {"ERROR": "must", "WARNING": "should", "INFO": "could"}[self.value]
