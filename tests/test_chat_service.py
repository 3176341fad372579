from datetime import datetime

import pytest

from medicare.application.actors import Doctor, Patient
from medicare.application.ports.appointments_repo import CANCELLED, CONFIRMED, PENDING
from medicare.application.services.chat_service import ChatService
from medicare.exceptions import Forbidden, InvalidInput, NotFound


@pytest.fixture
def svc(conversations, appts, users, notifier):
    return ChatService(
        conversations=conversations,
        appointments=appts,
        users=users,
        notifier=notifier,
        clock=lambda: datetime(2030, 1, 1, 12, 0),
    )


@pytest.fixture
def confirmed(appts):
    return appts.add("p1", "d1", status=CONFIRMED)


def test_create_requires_confirmed_appointment(svc, appts, patient):
    appts.add("p1", "d1", status=PENDING)
    with pytest.raises(Forbidden):
        svc.get_or_create_conversation(patient, "d1")


def test_create_is_idempotent_across_sides(svc, conversations, confirmed, patient, doctor):
    first, created = svc.get_or_create_conversation(patient, "d1")
    again, created_again = svc.get_or_create_conversation(doctor, "p1")
    assert created is True
    assert created_again is False
    assert again.id == first.id
    assert len(conversations.conversations) == 1


def test_create_input_checks(svc, confirmed, patient):
    with pytest.raises(InvalidInput):
        svc.get_or_create_conversation(patient, "")
    with pytest.raises(InvalidInput):
        svc.get_or_create_conversation(patient, "p1")
    with pytest.raises(NotFound):
        svc.get_or_create_conversation(patient, "ghost")


@pytest.mark.parametrize("length", [1, 1000])
def test_message_length_bounds_accepted(svc, confirmed, patient, length):
    chat, _ = svc.get_or_create_conversation(patient, "d1")
    out = svc.append_message(patient, chat.id, "x" * length)
    assert len(out.messages) == 1


@pytest.mark.parametrize("content", ["", "   ", None, "x" * 1001])
def test_message_content_rejected(svc, conversations, notifier, confirmed, patient, content):
    chat, _ = svc.get_or_create_conversation(patient, "d1")
    with pytest.raises(InvalidInput):
        svc.append_message(patient, chat.id, content)
    assert conversations.list_messages(chat.id) == []
    assert notifier.events == []


def test_message_stored_as_sent(svc, conversations, confirmed, patient):
    chat, _ = svc.get_or_create_conversation(patient, "d1")
    svc.append_message(patient, chat.id, "  hello doctor  ")
    assert conversations.list_messages(chat.id)[0].content == "  hello doctor  "


def test_append_round_trip_and_last_message_at(svc, confirmed, patient, doctor):
    chat, _ = svc.get_or_create_conversation(patient, "d1")
    svc.append_message(patient, chat.id, "hi")
    out = svc.append_message(doctor, chat.id, "hello")
    assert [m.content for m in out.messages] == ["hi", "hello"]
    assert [m.sender_id for m in out.messages] == ["p1", "d1"]
    assert out.last_message_at == datetime(2030, 1, 1, 12, 0)
    assert [m.content for m in svc.list_messages(doctor, chat.id)] == ["hi", "hello"]


def test_append_fans_out_to_chat_room_then_personal_rooms(svc, notifier, confirmed, patient):
    chat, _ = svc.get_or_create_conversation(patient, "d1")
    svc.append_message(patient, chat.id, "hi")

    assert notifier.names() == [
        (f"chat:{chat.id}", "new_message"),
        ("user:p1", "chat_updated"),
        ("user:d1", "chat_updated"),
    ]
    _, payload = notifier.to(f"chat:{chat.id}")[0]
    assert payload["chat_id"] == chat.id
    assert payload["message"].content == "hi"
    _, snapshot = notifier.to("user:d1")[0]
    assert snapshot["chat"]["id"] == chat.id
    assert [p["id"] for p in snapshot["chat"]["participants"]] == ["p1", "d1"]
    assert len(snapshot["chat"]["messages"]) == 1


def test_revoked_confirmation_blocks_existing_conversation(svc, appts, conversations, notifier, confirmed, patient):
    chat, _ = svc.get_or_create_conversation(patient, "d1")
    appts.update(confirmed.id, {"status": CANCELLED})
    with pytest.raises(Forbidden):
        svc.append_message(patient, chat.id, "still there?")
    assert conversations.list_messages(chat.id) == []
    assert notifier.events == []


def test_outsiders_cannot_read_or_write(svc, confirmed, patient):
    chat, _ = svc.get_or_create_conversation(patient, "d1")
    outsider = Patient(id="p2")
    with pytest.raises(Forbidden):
        svc.append_message(outsider, chat.id, "hi")
    with pytest.raises(Forbidden):
        svc.list_messages(Doctor(id="d2"), chat.id)
    with pytest.raises(NotFound):
        svc.append_message(patient, "missing", "hi")


def test_list_conversations_only_includes_own(svc, appts, confirmed, patient):
    appts.add("p2", "d1", status=CONFIRMED)
    svc.get_or_create_conversation(patient, "d1")
    svc.get_or_create_conversation(Patient(id="p2"), "d1")
    assert len(svc.list_conversations(patient)) == 1
    assert len(svc.list_conversations(Doctor(id="d1"))) == 2
