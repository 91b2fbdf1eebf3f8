"""
Unit tests for the slot-filling dialogue decisions.

The resolver is pure, so these tests drive it with plain sessions and catalogs
and check the chosen action, the reply text and the resolved booking plan.
"""

import pytest

from receptionist.bot.dialog_resolver import (
    BOOKING_FAILED_REPLY,
    FALLBACK_REPLY,
    BookingPlan,
    DialogAction,
    SlotPresence,
    booking_reply,
    choose_action,
    ensure_reply,
    find_service,
    is_available,
    is_booked,
    resolve,
    service_duration,
    service_names,
    unavailable_reply,
)
from receptionist.models.business import Service
from receptionist.models.call_session import CallSession, Intent

FULL_SESSION = CallSession(
    service="30-minute intro call",
    date="2025-01-10",
    time="14:00",
    name="Sam",
    email="sam@example.com",
)


def slots(**overrides):
    values = dict(asked_services=False, service=True, date=True, time=True, name=True, contact=True)
    values.update(overrides)
    return SlotPresence(**values)


@pytest.mark.parametrize("presence, expected", [
    (slots(asked_services=True), DialogAction.LIST_SERVICES),
    (slots(asked_services=True, service=False), DialogAction.LIST_SERVICES),
    (slots(service=False), DialogAction.OFFER_SERVICES),
    (slots(service=False, date=False), DialogAction.OFFER_SERVICES),
    (slots(time=False), DialogAction.ASK_DATETIME),
    (slots(date=False, name=False), DialogAction.ASK_DATETIME),
    (slots(name=False), DialogAction.ASK_CONTACT),
    (slots(contact=False), DialogAction.ASK_CONTACT),
    (slots(), DialogAction.CHECK_AVAILABILITY),
])
def test_decision_table_priority(presence, expected):
    assert choose_action(presence) is expected


def test_slot_presence_counts_either_contact_channel():
    assert SlotPresence.of(CallSession(phone="+15550100"), None).contact
    assert SlotPresence.of(CallSession(email="a@b.c"), None).contact
    assert not SlotPresence.of(CallSession(), None).contact


def test_ask_services_lists_two_names(services):
    decision = resolve(CallSession(), Intent.ASK_SERVICES, services)

    assert decision.action is DialogAction.LIST_SERVICES
    assert decision.reply == "We offer 30-minute intro call or 60-minute 1:1 training. Which one would you like?"
    assert decision.plan is None


def test_ask_services_wins_even_when_slots_are_full(services):
    decision = resolve(FULL_SESSION, Intent.ASK_SERVICES, services)

    assert decision.action is DialogAction.LIST_SERVICES


def test_ask_services_with_empty_catalog():
    decision = resolve(CallSession(), Intent.ASK_SERVICES, [])

    assert decision.reply == "We offer appointments. What would you like to book?"


def test_missing_service_offers_choice(services):
    decision = resolve(CallSession(), Intent.BOOK, services)

    assert decision.reply == "Sure. Do you want 30-minute intro call or 60-minute 1:1 training?"


@pytest.mark.parametrize("catalog", [None, "not a list", [], [{"id": "x"}], [Service(name="  ")]])
def test_missing_service_tolerates_malformed_catalog(catalog):
    decision = resolve(CallSession(), Intent.BOOK, catalog)

    assert decision.reply == "Sure. What type of appointment would you like?"


def test_selected_service_asks_for_day_and_time(services):
    session = CallSession().merged({"service": "30-minute intro call"})

    decision = resolve(session, Intent.BOOK, services)

    assert decision.action is DialogAction.ASK_DATETIME
    assert decision.reply == "Great. What day and time works for you?"


def test_missing_contact_asks_for_name_and_contact(services):
    session = FULL_SESSION.model_copy(update={"email": None})

    decision = resolve(session, Intent.BOOK, services)

    assert decision.reply == "Perfect. What's your name, and can I get your email or phone number?"


def test_full_session_yields_booking_plan(services):
    decision = resolve(FULL_SESSION, Intent.BOOK, services, default_timezone="America/Vancouver")

    assert decision.action is DialogAction.CHECK_AVAILABILITY
    assert decision.reply is None
    assert decision.plan == BookingPlan(
        service="30-minute intro call",
        date="2025-01-10",
        time="14:00",
        name="Sam",
        email="sam@example.com",
        phone=None,
        timezone="America/Vancouver",
        duration_minutes=30,
    )
    assert decision.plan.start == "2025-01-10T14:00"
    assert decision.plan.availability_input() == {
        "date": "2025-01-10", "timezone": "America/Vancouver", "durationMinutes": 30,
    }


def test_plan_prefers_session_timezone(services):
    session = FULL_SESSION.model_copy(update={"timezone": "Europe/London"})

    plan = resolve(session, Intent.BOOK, services, default_timezone="America/Vancouver").plan

    assert plan.timezone == "Europe/London"


def test_plan_falls_back_to_hardcoded_timezone(services):
    plan = resolve(FULL_SESSION, Intent.BOOK, services).plan

    assert plan.timezone == "America/Toronto"


def test_unknown_service_uses_default_duration(services):
    session = FULL_SESSION.model_copy(update={"service": "Underwater basket weaving"})

    plan = resolve(session, Intent.BOOK, services).plan

    assert plan.duration_minutes == 30


def test_find_service_ignores_case_and_spaces(services):
    assert find_service(services, "  60-MINUTE 1:1 Training ").id == "pt_60"
    assert find_service(services, None) is None
    assert find_service(None, "anything") is None


@pytest.mark.parametrize("service, expected", [
    ({"name": "a", "duration": 45}, 45),
    ({"name": "a", "durationMinutes": 90, "duration": 45}, 90),
    ({"name": "a", "duration": "60"}, 60),
    ({"name": "a", "duration": "soon"}, 30),
    ({"name": "a", "duration": 0}, 30),
    ({"name": "a", "duration": -15}, 30),
    ({"name": "a", "duration": "nan"}, 30),
    ({"name": "a", "duration": "inf"}, 30),
    ({"name": "a"}, 30),
    (None, 30),
])
def test_service_duration(service, expected):
    assert service_duration(service) == expected


def test_service_names_limit(services):
    assert service_names(services, limit=1) == ["30-minute intro call"]
    assert service_names([{"name": "A"}, {"name": "B"}, {"name": "C"}]) == ["A", "B"]


@pytest.mark.parametrize("result, expected", [
    ({"available": True}, True),
    ({"available": False}, False),
    ({}, False),
    (None, False),
    ("yes", False),
    ([{"available": True}], False),
])
def test_is_available(result, expected):
    assert is_available(result) is expected


def test_unavailable_reply_cites_error():
    assert unavailable_reply({"available": False, "error": "Closed"}) == (
        "I'm sorry, that time slot isn't available (Closed). Would you like to try a different day or time?"
    )
    assert unavailable_reply({"available": False}) == (
        "I'm sorry, that time slot isn't available. Would you like to try a different day or time?"
    )
    assert "(Invalid response)" in unavailable_reply("garbage")


def test_booking_reply_on_success_and_failure(services):
    plan = resolve(FULL_SESSION, Intent.BOOK, services).plan

    assert booking_reply(plan, {"ok": True}) == (
        "Perfect! I've booked 30-minute intro call on 2025-01-10 at 14:00 for Sam. "
        "You'll receive a confirmation shortly."
    )
    assert booking_reply(plan, {"ok": False, "error": "taken"}) == BOOKING_FAILED_REPLY
    assert booking_reply(plan, None) == BOOKING_FAILED_REPLY
    assert is_booked({"ok": True})
    assert not is_booked("ok")


@pytest.mark.parametrize("reply", [None, "", "   "])
def test_ensure_reply_falls_back(reply):
    assert ensure_reply(reply) == FALLBACK_REPLY


def test_ensure_reply_keeps_text():
    assert ensure_reply("Hello") == "Hello"
