"""
Error taxonomy for the evidence graph core.

Only genuinely exceptional conditions travel through exceptions:

- UnsupportedLinkPair: the Kind Registry has no direction rule for two kinds.
  Raised before any store call is made.
- LinkStoreError: the backing store rejected a mutation (duplicate edge,
  unknown id, concurrent delete). Message is meant to be shown verbatim.
- LinkOperationInProgress: a second mutation was started while one is pending.

Data-integrity anomalies found while resolving links are NOT errors; they are
reported as ``LinkAnomaly`` values (see resolver.py). Audit rules never raise;
they degrade to ``pass=False`` entries.
"""

from __future__ import annotations


class EvidenceGraphError(Exception):
    """Base class for all evidence graph errors."""


class UnsupportedLinkPair(EvidenceGraphError):
    """Raised when two record kinds cannot be linked."""

    def __init__(self, kind_a: object, kind_b: object):
        self.kind_a = kind_a
        self.kind_b = kind_b
        super().__init__(f"{_name(kind_a)} and {_name(kind_b)} records cannot be linked")


class LinkStoreError(EvidenceGraphError):
    """Raised by a link store when it rejects a request."""


class LinkOperationInProgress(EvidenceGraphError):
    """Raised when a link mutation is requested while another is still pending."""


def _name(kind: object) -> str:
    return getattr(kind, "value", None) or str(kind)
