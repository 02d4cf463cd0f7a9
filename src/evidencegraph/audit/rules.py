"""
Audit rule definitions.

Rules are plain data, evaluated by the engine with one fold per variant:

- Field rules: Required, MinLength, Maximum
- FieldGroupRule: "any of" over field rules
- LinkRule: minimum number of links to one kind
- LinkGroupRule: minimum total links across several kinds

A field rule never raises out of ``evaluate``: an exception raised while
testing a value turns into a failing ERROR entry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Mapping, Union

from ..logging import get_logger
from ..models.audit import FieldAuditEntry
from ..models.kinds import EntityKind, SeverityKind

logger = get_logger(__name__)

Bound = Union[Any, Callable[[], Any]]


def _resolve(bound: Bound) -> Any:
    return bound() if callable(bound) else bound


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass(frozen=True)
class FieldRule:
    """Base for rules testing a single field value."""

    field_name: str
    severity: SeverityKind = SeverityKind.ERROR

    @classmethod
    def info(cls, field_name: str, *args: Any) -> "FieldRule":
        return cls(field_name, SeverityKind.INFO, *args)

    @classmethod
    def warning(cls, field_name: str, *args: Any) -> "FieldRule":
        return cls(field_name, SeverityKind.WARNING, *args)

    @classmethod
    def error(cls, field_name: str, *args: Any) -> "FieldRule":
        return cls(field_name, SeverityKind.ERROR, *args)

    @property
    def message(self) -> str:
        raise NotImplementedError

    def test(self, value: Any) -> bool:
        raise NotImplementedError

    def evaluate(self, field_values: Mapping[str, Any]) -> FieldAuditEntry:
        try:
            passed = bool(self.test(field_values.get(self.field_name)))
        except Exception as exc:
            logger.debug("Rule on %s raised %s", self.field_name, type(exc).__name__)
            return FieldAuditEntry(
                field_name=self.field_name,
                severity=SeverityKind.ERROR,
                passed=False,
                message=f"{type(exc).__name__} during rule execution",
            )
        return FieldAuditEntry(
            field_name=self.field_name,
            severity=self.severity,
            passed=passed,
            message=self.message,
        )


@dataclass(frozen=True)
class Required(FieldRule):
    """The field must have a value (None and blank strings don't count)."""

    def test(self, value: Any) -> bool:
        return not _is_blank(value)

    @property
    def message(self) -> str:
        return f"{self.field_name} {self.severity.modal_verb} have a value"


@dataclass(frozen=True)
class MinLength(FieldRule):
    min_length: Bound = 1

    def test(self, value: Any) -> bool:
        return value is not None and len(value) >= _resolve(self.min_length)

    @property
    def message(self) -> str:
        return f"{self.field_name} {self.severity.modal_verb} have at least {_resolve(self.min_length)} characters"


def _comparable(value: Any, bound: Any) -> Any:
    """Bring ``value`` to the type of ``bound`` where that is unambiguous."""
    if isinstance(bound, date) and not isinstance(bound, datetime):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str):
            return date.fromisoformat(value[:10])
    if isinstance(bound, int) and isinstance(value, str):
        return int(value)
    return value


@dataclass(frozen=True)
class Maximum(FieldRule):
    """
    The field must not exceed a bound.

    A missing value passes: requiredness is a separate rule.
    """

    maximum: Bound = None

    def test(self, value: Any) -> bool:
        if value is None:
            return True
        bound = _resolve(self.maximum)
        return _comparable(value, bound) <= bound

    @property
    def message(self) -> str:
        return f"{self.field_name} {self.severity.modal_verb} be less than or equal to {_resolve(self.maximum)}"


@dataclass(frozen=True)
class FieldGroupRule:
    """Alternative fields: at least one member rule must pass."""

    rules: tuple[FieldRule, ...]
    name: str = ""

    @property
    def display_name(self) -> str:
        return self.name or " | ".join(rule.field_name for rule in self.rules)


@dataclass(frozen=True)
class LinkRule:
    linked_entity_kind: EntityKind
    min: int = 1

    def __post_init__(self):
        if self.min < 0:
            raise ValueError(f"Link minimum must be >= 0, got {self.min}")


@dataclass(frozen=True)
class LinkGroupRule:
    """
    Alternative link kinds.

    Passes iff the sum of links to all member kinds reaches ``min``. With the
    default ``min`` of 1 and per-kind minimums of 1 this is "link to any one
    of these kinds".
    """

    requirements: tuple[LinkRule, ...]
    min: int = 1
    name: str = ""

    def __post_init__(self):
        if self.min < 0:
            raise ValueError(f"Link group minimum must be >= 0, got {self.min}")

    @property
    def display_name(self) -> str:
        return self.name or " | ".join(rule.linked_entity_kind.value for rule in self.requirements)


@dataclass(frozen=True)
class AuditRules:
    """The complete rule set for one entity kind."""

    fields: tuple[FieldRule, ...] = ()
    field_groups: tuple[FieldGroupRule, ...] = ()
    links: tuple[LinkRule, ...] = ()
    link_groups: tuple[LinkGroupRule, ...] = ()


def _links(**mins: int) -> tuple[LinkRule, ...]:
    return tuple(LinkRule(EntityKind(code), n) for code, n in mins.items())


def _any_of(**mins: int) -> LinkGroupRule:
    return LinkGroupRule(requirements=_links(**mins))


_RATING = Required.warning("rating")

_PUBLICATION_IDS = (
    "doi", "isbn", "pmcid", "pmid", "hsid", "arxivid", "biorxivid", "medrxivid",
    "ericid", "ihepid", "oaipmhid", "halid", "zenodoid", "scopuseid", "wsan", "pinfoan",
)

DEFAULT_RULES: dict[EntityKind, AuditRules] = {
    EntityKind.CLAIM: AuditRules(
        fields=(_RATING, Maximum.error("date", date.today)),
        links=_links(TOP=1),
        link_groups=(_any_of(DEC=1, PER=1, PUB=1, QUO=1),),
    ),
    EntityKind.DECLARATION: AuditRules(
        fields=(
            _RATING,
            Required.warning("date"),
            Maximum.error("date", date.today),
            Required.warning("country"),
            Required.warning("url"),
            Required.error("signatories"),
            Required.error("signatoryCount"),
            Required.info("notes"),
        ),
        links=_links(PER=1, TOP=1),
    ),
    EntityKind.JOURNAL: AuditRules(
        fields=(
            _RATING,
            Required.warning("abbreviation"),
            Required.warning("url"),
            Required.warning("issn"),
            Required.info("notes"),
            Required.warning("publisher"),
            Required.error("peerReviewed"),
        ),
    ),
    EntityKind.PERSON: AuditRules(
        fields=(
            _RATING,
            Required.warning("qualifications"),
            Required.warning("country"),
            Required.info("notes"),
        ),
        links=_links(TOP=1),
        link_groups=(_any_of(CLA=1, DEC=1, PUB=1, QUO=1),),
    ),
    EntityKind.PUBLICATION: AuditRules(
        fields=(
            _RATING,
            Required.warning("journal"),
            Required.warning("date"),
            Maximum.error("date", date.today),
            Required.warning("year"),
            Maximum.error("year", lambda: date.today().year),
            Required.warning("keywords"),
            Required.warning("abstract"),
            Required.info("notes"),
            Required.warning("peerReviewed"),
            Required.info("accessed"),
        ),
        field_groups=(
            FieldGroupRule(rules=tuple(Required.info(name) for name in _PUBLICATION_IDS), name="identifiers"),
        ),
        links=_links(CLA=1, PER=1, TOP=1),
    ),
    EntityKind.PUBLISHER: AuditRules(
        fields=(
            _RATING,
            Required.warning("location"),
            Required.warning("country"),
            Required.warning("url"),
            Required.warning("journalCount"),
            Required.info("notes"),
        ),
    ),
    EntityKind.QUOTATION: AuditRules(
        fields=(
            _RATING,
            Required.warning("date"),
            Maximum.error("date", date.today),
            Required.warning("source"),
            Required.warning("url"),
            Required.info("notes"),
        ),
        links=_links(PER=1, TOP=1),
    ),
    EntityKind.TOPIC: AuditRules(
        fields=(_RATING, Required.warning("description")),
        link_groups=(_any_of(CLA=1, DEC=1, PER=1, PUB=1, QUO=1),),
    ),
}


def rules_for(kind: EntityKind | str) -> AuditRules:
    """Default rules for ``kind``; kinds without rules get an empty set."""
    return DEFAULT_RULES.get(EntityKind(kind), AuditRules())
