"""
Unit tests for the agent-chat turn pipeline.

Every collaborator of ``TurnProcessor`` is a double, so these tests check how a
turn flows through profile loading, extraction, merging, resolution, booking
and telemetry without any network access.
"""

from unittest.mock import AsyncMock, MagicMock, call

import pytest

from receptionist.handlers.agent_chat import ERROR_REPLY, TurnProcessor
from receptionist.models.agent_chat_schemas import AgentChatRequest
from receptionist.models.call_session import ExtractedFields, Intent
from receptionist.services.business_profiles import BusinessProfileError, BusinessProfileResolver
from receptionist.services.nlu import NluExtractor

FULL_SLOTS = {
    "service": "30-minute intro call",
    "date": "2025-01-10",
    "time": "14:00",
    "name": "Sam",
    "email": "sam@example.com",
}


@pytest.fixture
def profiles(profile):
    resolver = MagicMock(spec=BusinessProfileResolver)
    resolver.get = AsyncMock(return_value=profile)
    return resolver


@pytest.fixture
def nlu():
    extractor = MagicMock(spec=NluExtractor)
    extractor.extract = AsyncMock(return_value=ExtractedFields(intent=Intent.BOOK, llm_tokens=57))
    return extractor


@pytest.fixture
def processor(store, profiles, nlu, booking, telemetry):
    return TurnProcessor(store, profiles, nlu, booking, telemetry)


def turn(text="Hello", **overrides):
    body = {"businessId": "waismofit", "callId": "CA1", "text": text}
    body.update(overrides)
    return AgentChatRequest(**body)


@pytest.mark.asyncio
async def test_ask_services_lists_services(processor, nlu, telemetry):
    nlu.extract.return_value = ExtractedFields(intent=Intent.ASK_SERVICES, llm_tokens=57)

    response = await processor.handle_turn(turn("What services do you offer?"))

    assert response.ok is True
    assert response.reply == "We offer 30-minute intro call or 60-minute 1:1 training. Which one would you like?"
    assert response.replyText == response.reply
    assert response.state.step == "services"
    telemetry.transcript.assert_has_calls([
        call("CA1", "caller", "What services do you offer?", 0),
        call("CA1", "agent", response.reply, 0),
    ])
    telemetry.usage.assert_called_once_with("CA1", 57, len(response.reply))


@pytest.mark.asyncio
async def test_extraction_is_grounded_in_business(processor, nlu, profile):
    await processor.handle_turn(turn("I want a session"))

    nlu.extract.assert_awaited_once_with(
        "Wais Mo Fitness", ["30-minute intro call", "60-minute 1:1 training"], "I want a session"
    )


@pytest.mark.asyncio
async def test_selecting_service_asks_for_day_and_time(processor, nlu, store):
    nlu.extract.return_value = ExtractedFields(intent=Intent.BOOK, service="30-minute intro call")

    response = await processor.handle_turn(turn("The intro call please"))

    assert response.reply == "Great. What day and time works for you?"
    assert store.get("CA1").service == "30-minute intro call"
    assert store.get("CA1").step == "datetime"


@pytest.mark.asyncio
async def test_turn_indexes_advance_per_call(processor, telemetry):
    await processor.handle_turn(turn("one"))
    await processor.handle_turn(turn("two"))

    caller_calls = [c for c in telemetry.transcript.call_args_list if c.args[1] == "caller"]
    assert [c.args[3] for c in caller_calls] == [0, 1]


@pytest.mark.asyncio
async def test_unavailable_slot_keeps_session(processor, store, booking):
    store.merge("CA1", FULL_SLOTS)
    booking.check_availability.return_value = {"available": False, "error": "Fully booked"}

    response = await processor.handle_turn(turn("Book it"))

    assert response.reply == (
        "I'm sorry, that time slot isn't available (Fully booked). "
        "Would you like to try a different day or time?"
    )
    booking.check_availability.assert_awaited_once_with(
        date="2025-01-10", timezone="America/Toronto", duration_minutes=30
    )
    booking.book_appointment.assert_not_called()
    assert store.get("CA1").model_dump(exclude={"step"}) == {**FULL_SLOTS, "phone": None, "timezone": None}


@pytest.mark.asyncio
async def test_malformed_availability_is_unavailable(processor, store, booking):
    store.merge("CA1", FULL_SLOTS)
    booking.check_availability.return_value = ["not", "an", "object"]

    response = await processor.handle_turn(turn("Book it"))

    assert "(Invalid response)" in response.reply
    booking.book_appointment.assert_not_called()


@pytest.mark.asyncio
async def test_successful_booking_clears_session(processor, store, booking, telemetry):
    store.merge("CA1", FULL_SLOTS)

    response = await processor.handle_turn(turn("Yes, book it"))

    assert response.reply == (
        "Perfect! I've booked 30-minute intro call on 2025-01-10 at 14:00 for Sam. "
        "You'll receive a confirmation shortly."
    )
    booking.book_appointment.assert_awaited_once_with(
        start="2025-01-10T14:00", guest_name="Sam", guest_email="sam@example.com", guest_phone=None
    )
    assert store.get("CA1") is None
    assert store._locks == {}

    tool_calls = telemetry.tool.call_args_list
    assert [c.args[0] for c in tool_calls] == [
        "CA1:tool:check_availability:0",
        "CA1:tool:book_appointment:1",
    ]
    assert tool_calls[1].args[5] == {"ok": True, "bookingId": "bk_1"}


@pytest.mark.asyncio
async def test_failed_booking_keeps_slots(processor, store, booking):
    store.merge("CA1", FULL_SLOTS)
    before = store.get("CA1").model_dump(exclude={"step"})
    booking.book_appointment.return_value = {"ok": False, "error": "Slot taken"}

    response = await processor.handle_turn(turn("Yes, book it"))

    assert response.reply == (
        "I had trouble scheduling that, but I can help you try again. Would you like to try a different time?"
    )
    assert store.get("CA1").model_dump(exclude={"step"}) == before


@pytest.mark.asyncio
async def test_booking_falls_back_to_caller_phone(processor, store, booking):
    store.merge("CA1", FULL_SLOTS)

    await processor.handle_turn(turn("Book it", callerPhone="+15550100"))

    assert booking.book_appointment.await_args.kwargs["guest_phone"] == "+15550100"


@pytest.mark.asyncio
async def test_spoken_phone_wins_over_caller_id(processor, store, booking):
    store.merge("CA1", {**FULL_SLOTS, "phone": "+15550199"})

    await processor.handle_turn(turn("Book it", callerPhone="+15550100"))

    assert booking.book_appointment.await_args.kwargs["guest_phone"] == "+15550199"


@pytest.mark.asyncio
async def test_booking_raising_is_reported_as_failure(processor, store, booking):
    store.merge("CA1", FULL_SLOTS)
    booking.book_appointment.side_effect = RuntimeError("socket closed")

    response = await processor.handle_turn(turn("Book it"))

    assert "trouble scheduling" in response.reply
    assert store.get("CA1").name == "Sam"


@pytest.mark.asyncio
async def test_profile_failure_uses_generic_service(processor, profiles, nlu):
    profiles.get.side_effect = BusinessProfileError("Unknown business: nowhere")

    response = await processor.handle_turn(turn("Hi", businessId="nowhere"))

    assert response.reply == "Sure. Do you want appointment?"
    assert nlu.extract.await_args.args[1] == ["appointment"]


@pytest.mark.asyncio
async def test_nlu_failure_keeps_prior_slots(processor, store, nlu):
    store.merge("CA1", {"service": "30-minute intro call"})
    nlu.extract.side_effect = RuntimeError("model unavailable")

    response = await processor.handle_turn(turn("mumble"))

    assert response.reply == "Great. What day and time works for you?"
    assert store.get("CA1").service == "30-minute intro call"


@pytest.mark.asyncio
async def test_turn_without_call_id_leaves_no_state(processor, store, telemetry):
    response = await processor.handle_turn(turn("Hi", callId=None))

    assert response.ok is True
    assert store.entries == {}
    assert store._locks == {}
    telemetry.transcript.assert_not_called()
    telemetry.usage.assert_not_called()


@pytest.mark.asyncio
async def test_call_sid_is_accepted_as_call_id(processor, store):
    await processor.handle_turn(turn("Hi", callId=None, callSid="CA-sid"))

    assert store.get("CA-sid") is not None


def test_handle_failure_emits_error_transcript(processor, store, telemetry):
    store.next_turn_index("CA1")

    error = processor.handle_failure("CA1", RuntimeError("boom"))

    assert error.ok is False
    assert error.reply == ERROR_REPLY
    assert error.error == "boom"
    telemetry.transcript.assert_called_once_with("CA1", "agent", ERROR_REPLY, 1)


def test_handle_failure_without_call_id(processor, telemetry):
    error = processor.handle_failure(None, ValueError("bad"))

    assert error.to_dict() == {"ok": False, "error": "bad", "reply": ERROR_REPLY}
    telemetry.transcript.assert_not_called()
