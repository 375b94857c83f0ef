from __future__ import annotations

from dataclasses import replace

from chat_sync.application.dto.events import MentorshipEvent
from chat_sync.application.dto.page import MentorshipSnapshot
from chat_sync.domain.value_objects.enums import MentorshipStatus, MessageEventKind
from chat_sync.state.conversations import ConversationStore
from tests.conftest import ME, at, make_conversation, make_message


def _store(*convs):
    store = ConversationStore()
    store.load(list(convs))
    return store


def test_load_sorts_by_last_activity_desc():
    store = _store(
        make_conversation(conversation_id="old", last_message_at=at(1)),
        make_conversation(conversation_id="new", last_message_at=at(100)),
        make_conversation(conversation_id="never"),
    )
    assert [c.id for c in store.ordered()] == ["new", "old", "never"]


def test_new_remote_message_increments_unread_once():
    store = _store(make_conversation(conversation_id="c1"))
    m = make_message(message_id="m1", conversation_id="c1", created_at=at(5))

    first = store.apply_message_event(m, MessageEventKind.NEW, current_user_id=ME)
    second = store.apply_message_event(m, MessageEventKind.NEW, current_user_id=ME)

    assert first.unread_incremented is True
    assert second.unread_incremented is False
    assert store.get("c1").unread_count == 1


def test_own_message_does_not_increment_unread():
    store = _store(make_conversation(conversation_id="c1"))
    mine = make_message(conversation_id="c1", sender_id=ME, created_at=at(5))

    store.apply_message_event(mine, MessageEventKind.NEW, current_user_id=ME)

    assert store.get("c1").unread_count == 0
    assert store.get("c1").last_message_at == at(5)


def test_selected_conversation_stays_at_zero_unread():
    store = _store(make_conversation(conversation_id="c1", unread_count=3))
    store.select("c1")
    assert store.get("c1").unread_count == 0

    store.apply_message_event(
        make_message(conversation_id="c1", created_at=at(5)), MessageEventKind.NEW, current_user_id=ME,
    )
    assert store.get("c1").unread_count == 0


def test_edit_and_delete_never_change_unread():
    store = _store(make_conversation(conversation_id="c1"))
    m = make_message(message_id="m1", conversation_id="c1", created_at=at(5))

    store.apply_message_event(replace(m, is_edited=True), MessageEventKind.EDITED, current_user_id=ME)
    store.apply_message_event(replace(m, is_deleted=True), MessageEventKind.DELETED, current_user_id=ME)

    assert store.get("c1").unread_count == 0


def test_edit_before_creation_leaves_first_sighting_to_creation():
    store = _store(make_conversation(conversation_id="c1", last_message_at=at(1)))
    m = make_message(message_id="m1", conversation_id="c1", created_at=at(5))

    early = store.apply_message_event(replace(m, is_edited=True), MessageEventKind.EDITED, current_user_id=ME)
    assert early.changed is False
    assert store.has_seen("c1", "m1") is False

    applied = store.apply_message_event(m, MessageEventKind.NEW, current_user_id=ME)

    assert applied.unread_incremented is True
    assert store.get("c1").unread_count == 1
    assert store.get("c1").last_message_at == at(5)


def test_load_keeps_newer_local_activity_and_replays_missed_unread():
    store = _store(
        make_conversation(conversation_id="a", last_message_at=at(10)),
        make_conversation(conversation_id="b", last_message_at=at(1)),
    )
    mark = store.mark()
    store.apply_message_event(
        make_message(message_id="n1", conversation_id="b", created_at=at(20)),
        MessageEventKind.NEW,
        current_user_id=ME,
    )

    store.load(
        [
            make_conversation(conversation_id="a", last_message_at=at(10)),
            make_conversation(conversation_id="b", last_message_at=at(1)),
        ],
        since=mark,
    )

    assert store.get("b").unread_count == 1
    assert store.get("b").last_message.id == "n1"
    assert [c.id for c in store.ordered()] == ["b", "a"]


def test_new_message_moves_conversation_to_top():
    store = _store(
        make_conversation(conversation_id="a", last_message_at=at(10)),
        make_conversation(conversation_id="b", last_message_at=at(1)),
    )
    store.apply_message_event(
        make_message(conversation_id="b", created_at=at(20)), MessageEventKind.NEW, current_user_id=ME,
    )
    assert [c.id for c in store.ordered()] == ["b", "a"]


def test_edit_of_latest_message_refreshes_preview():
    m = make_message(message_id="m1", conversation_id="c1", content="v1", created_at=at(5))
    store = _store(make_conversation(conversation_id="c1", last_message=m, last_message_at=at(5)))

    store.apply_message_event(
        replace(m, content="v2", is_edited=True), MessageEventKind.EDITED, current_user_id=ME,
    )

    conv = store.get("c1")
    assert conv.last_message.content == "v2"
    assert conv.last_message_at == at(5)


def test_edit_of_older_message_does_not_become_last():
    latest = make_message(message_id="m2", conversation_id="c1", content="latest", created_at=at(9))
    store = _store(make_conversation(conversation_id="c1", last_message=latest, last_message_at=at(9)))

    older = make_message(message_id="m1", conversation_id="c1", content="edited", created_at=at(1))
    store.apply_message_event(older, MessageEventKind.EDITED, current_user_id=ME)

    assert store.get("c1").last_message.id == "m2"


def test_unknown_conversation_is_reported():
    store = _store()
    applied = store.apply_message_event(
        make_message(conversation_id="ghost"), MessageEventKind.NEW, current_user_id=ME,
    )
    assert applied.known is False


def test_seen_ids_are_bounded():
    store = ConversationStore(seen_ids_max=2)
    assert store.remember("c1", "a") is True
    assert store.remember("c1", "b") is True
    assert store.remember("c1", "a") is False
    store.remember("c1", "c")
    assert store.has_seen("c1", "a") is False
    assert store.has_seen("c1", "c") is True


def test_mentorship_event_matches_by_mentorship_id():
    store = _store(
        make_conversation(conversation_id="c1", mentorship_id="ms-1"),
        make_conversation(conversation_id="c2", mentorship_id="ms-2"),
    )
    touched = store.apply_mentorship_event(
        MentorshipEvent(
            mentorship_id="ms-1",
            status=MentorshipStatus.ENDED,
            end_reason="Goals met",
            ended_by=ME,
            ended_at=at(100),
        )
    )

    assert touched == ["c1"]
    conv = store.get("c1")
    assert conv.mentorship_status == MentorshipStatus.ENDED
    assert conv.mentorship_end_reason == "Goals met"
    assert store.get("c2").mentorship_status == MentorshipStatus.ACTIVE


def test_restarted_mentorship_clears_end_fields():
    store = _store(
        make_conversation(
            conversation_id="c1",
            status=MentorshipStatus.ENDED,
            mentorship_end_reason="done",
            mentorship_ended_by=ME,
        )
    )
    store.apply_mentorship_snapshot("c1", MentorshipSnapshot(status=MentorshipStatus.ACTIVE))

    conv = store.get("c1")
    assert conv.mentorship_status == MentorshipStatus.ACTIVE
    assert conv.mentorship_end_reason is None
    assert conv.mentorship_ended_by is None


def test_mark_last_message_read_updates_preview():
    m = make_message(message_id="m1", conversation_id="c1", created_at=at(5))
    store = _store(make_conversation(conversation_id="c1", last_message=m, last_message_at=at(5)))

    assert store.mark_last_message_read("c1", ["m1"], at(6)) is True
    assert store.get("c1").last_message.read_at == at(6)
    assert store.mark_last_message_read("c1", ["m1"], at(6)) is False
