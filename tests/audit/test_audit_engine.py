from evidencegraph.audit.engine import audit_record, compute_audit, publication_verdict
from evidencegraph.audit.rules import AuditRules, FieldGroupRule, LinkGroupRule, LinkRule, Required
from evidencegraph.models.kinds import EntityKind, StatusKind
from evidencegraph.models.links import EntityLink, LinkableRecord, RecordLink

TOPIC_RULES = AuditRules(
    fields=(Required.error("label"),),
    links=(LinkRule(EntityKind.CLAIM, 1),),
)


def _record_link(link_id: str, other_kind: EntityKind, status: StatusKind = StatusKind.DRAFT) -> RecordLink:
    return RecordLink(
        id=link_id,
        this_record_id="5",
        other_record_kind=other_kind,
        other_record_id=f"1{link_id}",
        status=status,
    )


def test_topic_without_links_is_not_publishable():
    audit = compute_audit({"label": "Climate"}, [], TOPIC_RULES, entity_kind=EntityKind.TOPIC, entity_id="5")

    assert audit.field_audit.passed is True
    assert audit.link_audit.passed is False
    assert audit.passed is False
    entry = audit.link_audit.entry_for(EntityKind.CLAIM)
    assert (entry.min, entry.actual, entry.passed) == (1, 0, False)
    assert publication_verdict(StatusKind.DRAFT, audit).can_publish is False


def test_topic_with_label_and_claim_link_passes():
    audit = compute_audit({"label": "Climate"}, [_record_link("1", EntityKind.CLAIM)], TOPIC_RULES)
    assert audit.passed is True
    assert publication_verdict(StatusKind.DRAFT, audit).can_publish is True


def test_every_severity_counts_towards_pass():
    rules = AuditRules(fields=(Required.info("notes"),))
    audit = compute_audit({}, [], rules)
    assert audit.field_audit.fields[0].passed is False
    assert audit.field_audit.passed is False
    assert audit.passed is False


def test_audit_is_idempotent():
    links = [_record_link("1", EntityKind.CLAIM), _record_link("2", EntityKind.PERSON)]
    fields = {"label": "Climate"}
    first = compute_audit(fields, links, TOPIC_RULES)
    second = compute_audit(fields, links, TOPIC_RULES)
    assert first == second
    assert first.model_dump() == second.model_dump()


def test_adding_a_link_increments_actual_by_one():
    rules = AuditRules(links=(LinkRule(EntityKind.CLAIM, 2),))
    links = [_record_link("1", EntityKind.CLAIM)]
    previous = compute_audit({}, links, rules).link_audit.entry_for(EntityKind.CLAIM)
    for n in range(2, 5):
        links.append(_record_link(str(n), EntityKind.CLAIM))
        current = compute_audit({}, links, rules).link_audit.entry_for(EntityKind.CLAIM)
        assert current.actual == previous.actual + 1
        assert current.passed or not previous.passed
        previous = current
    assert previous.passed is True


def test_deleted_links_are_not_counted():
    links = [_record_link("1", EntityKind.CLAIM, StatusKind.DELETED)]
    audit = compute_audit({"label": "x"}, links, TOPIC_RULES)
    assert audit.link_audit.entry_for(EntityKind.CLAIM).actual == 0
    assert audit.passed is False


def test_zero_minimum_always_passes():
    rules = AuditRules(links=(LinkRule(EntityKind.PERSON, 0),))
    assert compute_audit({}, [], rules).link_audit.passed is True


def test_field_group_passes_when_any_member_passes():
    rules = AuditRules(
        field_groups=(FieldGroupRule(rules=(Required.info("doi"), Required.info("isbn"), Required.info("pmid"))),)
    )
    audit = compute_audit({"isbn": "978-3-16-148410-0"}, [], rules)
    group = audit.field_audit.groups[0]
    assert [entry.passed for entry in group.fields] == [False, True, False]
    assert group.passed is True
    assert group.name == "doi | isbn | pmid"
    assert audit.field_audit.passed is True

    assert compute_audit({}, [], rules).field_audit.passed is False


def test_link_group_sums_member_actuals():
    rules = AuditRules(
        link_groups=(
            LinkGroupRule(
                requirements=(
                    LinkRule(EntityKind.CLAIM, 2),
                    LinkRule(EntityKind.PERSON, 2),
                    LinkRule(EntityKind.QUOTATION, 2),
                ),
                min=2,
            ),
        )
    )
    links = [_record_link("1", EntityKind.CLAIM), _record_link("2", EntityKind.PERSON)]
    group = compute_audit({}, links, rules).link_audit.groups[0]
    assert [entry.actual for entry in group.links] == [1, 1, 0]
    assert [entry.passed for entry in group.links] == [False, False, False]
    assert group.actual == 2
    assert group.passed is True


def test_link_group_with_default_minimum_is_any_of():
    rules = AuditRules(
        link_groups=(LinkGroupRule(requirements=(LinkRule(EntityKind.CLAIM), LinkRule(EntityKind.PERSON))),)
    )
    assert compute_audit({}, [], rules).link_audit.passed is False
    assert compute_audit({}, [_record_link("1", EntityKind.PERSON)], rules).link_audit.passed is True


def test_kind_without_rules_passes():
    record = LinkableRecord(kind=EntityKind.COMMENT, id="3")
    audit = audit_record(record)
    assert audit.passed is True
    assert audit.field_audit.fields == ()
    assert audit.link_audit.links == ()


def test_audit_record_uses_default_rules_and_resolved_links():
    record = LinkableRecord(
        kind=EntityKind.TOPIC,
        id="5",
        field_values={"rating": 3, "description": "Sea level"},
        from_entity_links=[
            EntityLink(
                id="1",
                from_entity_kind=EntityKind.TOPIC,
                from_entity_id="5",
                to_entity_kind=EntityKind.CLAIM,
                to_entity_id="10",
            )
        ],
    )
    audit = audit_record(record)
    assert audit.entity_kind == EntityKind.TOPIC
    assert audit.entity_id == "5"
    assert audit.passed is True


def test_audit_serialises_pass_alias():
    payload = compute_audit({}, [], TOPIC_RULES).model_dump(by_alias=True)
    assert payload["pass"] is False
    assert payload["field_audit"]["fields"][0]["pass"] is False


def test_published_record_failing_audit_needs_review():
    failing = compute_audit({}, [], TOPIC_RULES)
    verdict = publication_verdict(StatusKind.PUBLISHED, failing, label="Topic #5")
    assert verdict.can_publish is False
    assert verdict.needs_review is True
    assert "no longer meets" in verdict.message

    passing = compute_audit({"label": "x"}, [_record_link("1", EntityKind.CLAIM)], TOPIC_RULES)
    verdict = publication_verdict(StatusKind.PUBLISHED, passing)
    assert verdict.can_publish is False
    assert verdict.needs_review is False
