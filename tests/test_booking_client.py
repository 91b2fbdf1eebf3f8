"""
Unit tests for the scheduling API client.

The client must never raise: every failure comes back as an error-shaped
result the dialogue can read.
"""

import json

import httpx
import pytest

from receptionist.services.booking_client import BookingClient

BASE_URL = "https://booking.example.com"


def make_client(handler, agent_api_key="agent-key"):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BookingClient(BASE_URL, agent_api_key=agent_api_key, client=http)


@pytest.mark.asyncio
async def test_check_availability_request():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"available": True, "slots": ["14:00"]})

    result = await make_client(handler).check_availability("2025-01-10", "America/Toronto", 45)

    assert result == {"available": True, "slots": ["14:00"]}
    assert str(requests[0].url) == f"{BASE_URL}/api/agent/check-availability"
    assert json.loads(requests[0].content) == {
        "agentApiKey": "agent-key",
        "date": "2025-01-10",
        "timezone": "America/Toronto",
        "durationMinutes": 45,
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("duration", [None, "abc", 0, -5, float("nan"), float("inf")])
async def test_check_availability_defaults_invalid_duration(duration):
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"available": False})

    await make_client(handler).check_availability("2025-01-10", "America/Toronto", duration)

    assert bodies[0]["durationMinutes"] == 30


@pytest.mark.asyncio
async def test_check_availability_missing_fields():
    def handler(request):
        raise AssertionError("no request expected")

    result = await make_client(handler).check_availability(None, "America/Toronto", 30)

    assert result == {"available": False, "error": "Missing required availability information"}


@pytest.mark.asyncio
async def test_check_availability_without_api_key():
    def handler(request):
        raise AssertionError("no request expected")

    result = await make_client(handler, agent_api_key="").check_availability("2025-01-10", "UTC", 30)

    assert result == {"available": False, "error": "Agent API key not configured"}


@pytest.mark.asyncio
async def test_check_availability_http_error_status():
    def handler(request):
        return httpx.Response(503, text="unavailable")

    result = await make_client(handler).check_availability("2025-01-10", "UTC", 30)

    assert result == {"available": False, "error": "API error: 503"}


@pytest.mark.asyncio
async def test_check_availability_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    result = await make_client(handler).check_availability("2025-01-10", "UTC", 30)

    assert result["available"] is False
    assert result["error"]


@pytest.mark.asyncio
async def test_check_availability_invalid_json():
    def handler(request):
        return httpx.Response(200, text="<html>")

    result = await make_client(handler).check_availability("2025-01-10", "UTC", 30)

    assert result == {"available": False, "error": "Invalid JSON response"}


@pytest.mark.asyncio
async def test_book_appointment_request():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"ok": True, "bookingId": "bk_1"})

    result = await make_client(handler).book_appointment("2025-01-10T14:00", "Sam", "sam@example.com", "")

    assert result == {"ok": True, "bookingId": "bk_1"}
    assert str(requests[0].url) == f"{BASE_URL}/api/agent/book"
    assert json.loads(requests[0].content) == {
        "agentApiKey": "agent-key",
        "start": "2025-01-10T14:00",
        "guestName": "Sam",
        "guestEmail": "sam@example.com",
        "guestPhone": None,
    }


@pytest.mark.asyncio
async def test_book_appointment_error_status_marks_not_ok():
    def handler(request):
        return httpx.Response(409, json={"error": "Slot taken"})

    result = await make_client(handler).book_appointment("2025-01-10T14:00", "Sam")

    assert result == {"ok": False, "error": "Slot taken"}


@pytest.mark.asyncio
async def test_book_appointment_network_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    result = await make_client(handler).book_appointment("2025-01-10T14:00", "Sam")

    assert result["ok"] is False


@pytest.mark.asyncio
async def test_book_appointment_without_api_key():
    client = BookingClient(BASE_URL, agent_api_key="")

    assert await client.book_appointment("2025-01-10T14:00", "Sam") == {
        "ok": False, "error": "Agent API key not configured",
    }
