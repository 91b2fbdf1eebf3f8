from receptionist.models.idempotency import TurnCounter, event_id, tool_event_id


def test_turn_counter_starts_at_zero():
    counter = TurnCounter()

    assert counter.next("CA1") == 0
    assert counter.next("CA1") == 1


def test_turn_counter_is_strictly_increasing_per_call():
    counter = TurnCounter()
    indexes = [counter.next("CA1") for _ in range(5)]

    assert indexes == sorted(set(indexes))
    assert indexes == [0, 1, 2, 3, 4]


def test_turn_counters_are_independent():
    counter = TurnCounter()
    counter.next("CA1")
    counter.next("CA1")

    assert counter.next("CA2") == 0
    assert counter.next("CA1") == 2


def test_event_id_format_and_determinism():
    assert event_id("CA1", "caller", 3) == "CA1:caller:3"
    assert event_id("CA1", "caller", 3) == event_id("CA1", "caller", 3)
    assert event_id("CA1", "caller", 3) != event_id("CA1", "agent", 3)


def test_tool_event_id_format_and_determinism():
    assert tool_event_id("CA1", "check_availability", 0) == "CA1:tool:check_availability:0"
    assert tool_event_id("CA1", "book_appointment", 1) == tool_event_id("CA1", "book_appointment", 1)
    assert tool_event_id("CA1", "book_appointment", 1) != tool_event_id("CA2", "book_appointment", 1)
