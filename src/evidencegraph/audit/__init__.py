"""
Publish-readiness audit: rule definitions and the pure evaluation engine.
"""

from .engine import (
    audit_record,
    compute_audit,
    count_links_by_kind,
    publication_verdict,
)
from .rules import (
    DEFAULT_RULES,
    AuditRules,
    FieldGroupRule,
    FieldRule,
    LinkGroupRule,
    LinkRule,
    Maximum,
    MinLength,
    Required,
    rules_for,
)

__all__ = [
    "audit_record",
    "compute_audit",
    "count_links_by_kind",
    "publication_verdict",
    "DEFAULT_RULES",
    "AuditRules",
    "FieldGroupRule",
    "FieldRule",
    "LinkGroupRule",
    "LinkRule",
    "Maximum",
    "MinLength",
    "Required",
    "rules_for",
]
