import pytest
from pydantic import ValidationError

from evidencegraph.models import (
    EntityKind,
    EntityLink,
    LinkableEntityQueryFilter,
    LinkableRecord,
    MasterContext,
    SeverityKind,
    StatusKind,
    is_linkable,
)


def test_entity_kind_accepts_codes_and_names():
    assert EntityKind("CLA") is EntityKind.CLAIM
    assert EntityKind("claim") is EntityKind.CLAIM
    assert EntityKind("RecordLink") is EntityKind.RECORD_LINK
    assert EntityKind.PUBLISHER.code == "PBR"
    with pytest.raises(ValueError):
        EntityKind("Nonsense")


def test_only_evidence_kinds_are_linkable():
    assert is_linkable("Topic") is True
    assert EntityKind.QUOTATION.is_linkable is True
    assert EntityKind.JOURNAL.is_linkable is False
    assert is_linkable("Nonsense") is False


def test_status_kind_accepts_labels():
    assert StatusKind("Published") is StatusKind.PUBLISHED
    assert StatusKind("DEL") is StatusKind.DELETED
    assert StatusKind.SUSPENDED.label == "Suspended"


def test_severity_modal_verbs():
    assert [s.modal_verb for s in (SeverityKind.ERROR, SeverityKind.WARNING, SeverityKind.INFO)] == [
        "must",
        "should",
        "could",
    ]


def test_entity_link_defaults_and_normalization():
    link = EntityLink(
        id=7,
        from_entity_kind="CLA",
        from_entity_id=10,
        to_entity_kind="Topic",
        to_entity_id=5,
        to_entity_locations=None,
    )
    assert link.id == "7"
    assert link.from_entity_id == "10"
    assert link.to_entity_locations == ""
    assert link.status == StatusKind.DRAFT
    assert link.is_persisted is True
    assert link.is_deleted is False
    assert EntityLink(from_entity_kind="Claim", from_entity_id="1", to_entity_kind="Topic", to_entity_id="2").is_persisted is False


def test_entity_link_rejects_self_link():
    with pytest.raises(ValidationError):
        EntityLink(from_entity_kind="Topic", from_entity_id="5", to_entity_kind="Topic", to_entity_id="5")


def test_linkable_record_display_label():
    assert LinkableRecord(kind="Person", id=3).display_label == "Person #3"
    assert LinkableRecord(kind="Person", id=3, label="Jane Doe").display_label == "Jane Doe"


def test_master_context_builders_return_new_snapshots():
    context = MasterContext()
    pinned = context.with_master_topic(5, recursive=True).with_master_record("PER", 7, "Jane Doe")

    assert context == MasterContext()
    assert pinned.master_topic_id == "5"
    assert pinned.master_topic_recursive is True
    assert pinned.master_record_kind is EntityKind.PERSON
    assert pinned.master_record_id == "7"
    assert pinned.with_master_topic("6").master_topic_recursive is True
    assert pinned.cleared() == MasterContext()
    with pytest.raises(ValidationError):
        pinned.master_topic_id = "9"


def test_query_filter_uses_camel_case_aliases():
    query_filter = LinkableEntityQueryFilter(topic_id=5, from_entity_id="")
    assert query_filter.topic_id == "5"
    assert query_filter.from_entity_id is None
    assert query_filter.model_dump(by_alias=True, exclude_none=True) == {"topicId": "5"}
    assert LinkableEntityQueryFilter().is_empty() is True
