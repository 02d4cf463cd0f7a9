import pytest

from evidencegraph.errors import LinkOperationInProgress, LinkStoreError, UnsupportedLinkPair
from evidencegraph.lifecycle import LinkManager, LinkMode, link_record_to_master
from evidencegraph.models.context import MasterContext
from evidencegraph.models.kinds import EntityKind, StatusKind
from evidencegraph.models.links import LinkableRecord, LinkInput
from evidencegraph.store import InMemoryLinkStore


class RecordingStore(InMemoryLinkStore):
    """In-memory store that remembers which mutations were requested."""

    def __init__(self):
        super().__init__(user="tester")
        self.calls = []

    def create_link(self, link_input):
        self.calls.append(("create", link_input))
        return super().create_link(link_input)

    def update_link(self, link_input):
        self.calls.append(("update", link_input))
        return super().update_link(link_input)

    def delete_link(self, link_id):
        self.calls.append(("delete", link_id))
        return super().delete_link(link_id)

    def set_entity_status(self, record_id, status):
        self.calls.append(("status", record_id))
        return super().set_entity_status(record_id, status)


class Confirmer:
    def __init__(self, answer=True):
        self.answer = answer
        self.questions = []

    def __call__(self, question):
        self.questions.append(question)
        return self.answer


@pytest.fixture
def store():
    store = RecordingStore()
    store.add_record(
        LinkableRecord(
            kind=EntityKind.TOPIC,
            id="5",
            label="Climate",
            field_values={"rating": 4, "description": "Climate science"},
        )
    )
    store.add_record(LinkableRecord(kind=EntityKind.TOPIC, id="6", label="Oceans"))
    store.add_record(LinkableRecord(kind=EntityKind.CLAIM, id="10", label="Sea levels are rising"))
    store.add_record(LinkableRecord(kind=EntityKind.CLAIM, id="11", label="Glaciers are retreating"))
    return store


def _manager(store, confirm=None, authorities=("LNK", "UPD")):
    return LinkManager(
        store.read_record(EntityKind.TOPIC, "5"),
        store,
        has_authority=lambda authority: authority in authorities,
        confirm=confirm or Confirmer(),
    )


def _linked_manager(store, confirm=None):
    store.create_link(LinkInput(from_entity_id="5", to_entity_id="10", to_entity_locations="p.3"))
    store.calls.clear()
    manager = _manager(store, confirm)
    manager.select_link("1")
    return manager


def test_create_link_from_the_from_side(store):
    manager = _manager(store)
    manager.select_other_kind(EntityKind.CLAIM)
    manager.select_candidate("10", "Sea levels are rising")

    assert manager.link() is True
    assert manager.mode == LinkMode.CREATE
    manager.this_locations = "intro"
    manager.other_locations = "p.3"
    assert manager.save() is True

    kind, link_input = store.calls[0]
    assert kind == "create"
    assert link_input.from_entity_id == "5"
    assert link_input.to_entity_id == "10"
    assert link_input.from_entity_locations == "intro"
    assert link_input.to_entity_locations == "p.3"

    assert manager.mode == LinkMode.VIEW
    assert manager.other_record_id is None
    assert len(manager.links) == 1
    link = manager.selected_link
    assert link.other_record_kind == EntityKind.CLAIM
    assert link.other_record_id == "10"
    assert link.this_record_is_to_entity is False
    assert (manager.this_locations, manager.other_locations) == ("intro", "p.3")


def test_create_save_persists_even_without_locations(store):
    manager = _manager(store)
    manager.select_candidate("10", kind=EntityKind.CLAIM)
    manager.link()
    assert manager.save() is True
    assert [call[0] for call in store.calls] == ["create"]


def test_transitions_without_preconditions_are_noops(store):
    manager = _manager(store)
    assert manager.save() is False
    assert manager.cancel() is False
    assert manager.edit() is False
    assert manager.relink() is False
    assert manager.unlink() is False
    assert manager.link() is False
    assert manager.mode == LinkMode.VIEW
    assert store.calls == []


def test_selection_is_locked_outside_view(store):
    manager = _manager(store)
    manager.select_candidate("10", kind=EntityKind.CLAIM)
    manager.link()
    assert manager.select_other_kind(EntityKind.PERSON) is False
    assert manager.select_link("1") is False
    assert manager.other_record_kind == EntityKind.CLAIM


def test_linking_requires_authority(store):
    manager = _manager(store, authorities=())
    manager.select_candidate("10", kind=EntityKind.CLAIM)
    assert manager.allow_linking is False
    assert manager.link() is False
    assert manager.mode == LinkMode.VIEW


def test_unsupported_pair_fails_before_store_call(store):
    manager = _manager(store)
    manager.select_candidate("6", kind=EntityKind.TOPIC)
    with pytest.raises(UnsupportedLinkPair):
        manager.link()
    assert manager.mode == LinkMode.VIEW
    assert store.calls == []


def test_edit_without_changes_makes_no_store_call(store):
    manager = _linked_manager(store)
    assert manager.edit() is True
    assert manager.mode == LinkMode.EDIT
    assert manager.can_save is False
    assert manager.save() is True
    assert manager.mode == LinkMode.VIEW
    assert store.calls == []


def test_edit_saves_locations_with_stored_orientation(store):
    manager = _linked_manager(store)
    manager.edit()
    manager.this_locations = "section 2"
    assert manager.is_modified() is True
    assert manager.save() is True

    kind, link_input = store.calls[0]
    assert kind == "update"
    assert link_input.id == "1"
    assert link_input.from_entity_id == "5"
    assert link_input.from_entity_locations == "section 2"
    assert link_input.to_entity_locations == "p.3"
    assert manager.selected_link.this_locations == "section 2"


def test_cancel_modified_edit_asks_for_confirmation(store):
    confirm = Confirmer(answer=False)
    manager = _linked_manager(store, confirm)
    manager.edit()
    manager.other_locations = "p.99"

    assert manager.cancel() is False
    assert manager.mode == LinkMode.EDIT
    assert confirm.questions == ["Confirm discard changes to link with record 'Sea levels are rising'?"]

    confirm.answer = True
    assert manager.cancel() is True
    assert manager.mode == LinkMode.VIEW
    assert manager.other_locations == "p.3"
    assert store.calls == []


def test_cancel_unmodified_create_does_not_ask(store):
    confirm = Confirmer(answer=False)
    manager = _manager(store, confirm)
    manager.select_candidate("10", kind=EntityKind.CLAIM)
    manager.link()
    assert manager.cancel() is True
    assert confirm.questions == []


def test_cancel_modified_create_names_new_link(store):
    confirm = Confirmer()
    manager = _manager(store, confirm)
    manager.select_candidate("10", kind=EntityKind.CLAIM)
    manager.link()
    manager.this_locations = "intro"
    assert manager.cancel() is True
    assert confirm.questions == ["Confirm discard changes to new record link?"]
    assert manager.this_locations == ""


def test_relink_keeps_id_and_orientation(store):
    confirm = Confirmer()
    manager = _linked_manager(store, confirm)
    manager.select_candidate("11", "Glaciers are retreating", kind=EntityKind.CLAIM)

    assert manager.can_relink is True
    assert manager.relink() is True

    kind, link_input = store.calls[0]
    assert kind == "update"
    assert link_input.id == "1"
    assert link_input.from_entity_id == "5"
    assert link_input.to_entity_id == "11"
    assert "N.B." in confirm.questions[0]

    relinked = manager.selected_link
    assert relinked.id == "1"
    assert relinked.other_record_id == "11"
    assert relinked.this_record_is_to_entity is False
    assert manager.other_record_id is None


def test_relink_needs_a_different_record_of_the_same_kind(store):
    manager = _linked_manager(store)
    manager.select_candidate("10", kind=EntityKind.CLAIM)
    assert manager.can_relink is False
    manager.select_candidate("6", kind=EntityKind.TOPIC)
    assert manager.can_relink is False


def test_declined_relink_changes_nothing(store):
    manager = _linked_manager(store, Confirmer(answer=False))
    manager.select_candidate("11", "Glaciers are retreating", kind=EntityKind.CLAIM)
    assert manager.relink() is False
    assert store.calls == []
    assert manager.selected_link.other_record_id == "10"


def test_unlink_soft_deletes_and_cannot_repeat(store):
    confirm = Confirmer()
    manager = _linked_manager(store, confirm)
    assert manager.unlink() is True
    assert confirm.questions == ["Confirm delete link with record 'Sea levels are rising'?"]
    assert store.calls == [("delete", "1")]

    assert manager.selected_link.status == StatusKind.DELETED
    assert manager.can_unlink is False
    assert manager.unlink() is False
    assert manager.audit.link_audit.passed is False


def test_store_error_leaves_state_unchanged(store):
    store.create_link(LinkInput(from_entity_id="5", to_entity_id="10"))
    manager = _manager(store)
    manager.select_candidate("10", kind=EntityKind.CLAIM)
    manager.link()
    manager.this_locations = "intro"

    assert manager.save() is False
    assert manager.mode == LinkMode.CREATE
    assert "already linked" in manager.error
    assert manager.this_locations == "intro"
    assert manager.pending is False


def test_second_mutation_while_pending_is_refused(store):
    manager = _manager(store)
    manager.select_candidate("10", kind=EntityKind.CLAIM)
    manager.link()

    original = store.create_link

    def reentrant_create(link_input):
        assert manager.pending is True
        assert manager.can_save is False
        manager.save()
        return original(link_input)

    store.create_link = reentrant_create
    with pytest.raises(LinkOperationInProgress):
        manager.save()
    assert manager.pending is False


def test_publish_requires_passing_audit_and_authority(store):
    manager = _manager(store)
    assert manager.audit.passed is False
    assert manager.can_publish is False
    assert manager.publish() is False

    manager.select_candidate("10", kind=EntityKind.CLAIM)
    manager.link()
    manager.save()
    assert manager.audit.passed is True
    assert _manager(store, authorities=("LNK",)).can_publish is False

    assert manager.can_publish is True
    assert manager.publish() is True
    assert manager.record.status == StatusKind.PUBLISHED
    assert manager.can_publish is False
    assert manager.verdict.needs_review is False


def test_filtered_links_follow_other_kind(store):
    manager = _linked_manager(store)
    manager.select_other_kind(EntityKind.CLAIM)
    assert [link.id for link in manager.filtered_links] == ["1"]
    manager.select_other_kind(EntityKind.PERSON)
    assert manager.filtered_links == []
    assert manager.selected_link is None


def test_link_master_saves_a_link_to_the_master_record(store):
    manager = LinkManager(
        store.read_record(EntityKind.CLAIM, "10"),
        store,
        has_authority=lambda authority: True,
        confirm=Confirmer(),
    )
    context = MasterContext(master_record_kind=EntityKind.TOPIC, master_record_id="5")

    assert manager.link_master(context) is True
    assert manager.mode == LinkMode.CREATE
    assert manager.other_record_label == "Topic #5"
    manager.this_locations = "para 2"
    assert manager.save() is True

    kind, link_input = store.calls[-1]
    assert kind == "create"
    assert (link_input.from_entity_id, link_input.to_entity_id) == ("5", "10")
    assert link_input.to_entity_locations == "para 2"
    assert manager.selected_link.this_record_is_to_entity is True


def test_link_master_needs_a_different_master_record(store):
    manager = _manager(store)
    assert manager.link_master(MasterContext()) is False
    assert manager.link_master(MasterContext(master_record_kind=EntityKind.TOPIC, master_record_id="5")) is False
    assert manager.mode == LinkMode.VIEW
    assert store.calls == []


def test_link_record_to_master_creates_topic_link_first(store):
    store.add_record(LinkableRecord(kind=EntityKind.PERSON, id="20", label="Jane Doe"))
    context = MasterContext(
        master_topic_id="6",
        master_record_kind=EntityKind.PERSON,
        master_record_id="20",
        master_record_label="Jane Doe",
    )

    created = link_record_to_master(store, EntityKind.CLAIM, "11", context, this_locations_for_master="quote")

    assert [c[0] for c in store.calls] == ["create", "create"]
    assert [(l.from_entity_id, l.to_entity_id) for l in created] == [("6", "11"), ("11", "20")]
    assert created[1].from_entity_locations == "quote"
    claim = store.read_links_for_record(EntityKind.CLAIM, "11")
    assert len(claim.to_entity_links) == 1
    assert len(claim.from_entity_links) == 1


def test_link_record_to_master_stops_at_store_error(store):
    store.add_record(LinkableRecord(kind=EntityKind.PERSON, id="20"))
    store.create_link(LinkInput(from_entity_id="6", to_entity_id="11"))
    context = MasterContext(master_topic_id="6", master_record_kind=EntityKind.PERSON, master_record_id="20")

    with pytest.raises(LinkStoreError, match="already linked"):
        link_record_to_master(store, EntityKind.CLAIM, "11", context)
    assert store.read_links_for_record(EntityKind.CLAIM, "11").from_entity_links == []
