"""
Services module for external API integrations in the receptionist.

This module provides client implementations for the services the receptionist
depends on but does not own. Every client degrades instead of failing the call:
lookups raise a single domain error or return a fallback value, and telemetry
never raises at all.

Key components:
- booking_client: ``check_availability`` and ``book_appointment`` against the
  scheduling API.
- nlu: Structured field extraction from caller utterances.
- business_profiles: Business records merged over category templates, with a
  generic fallback profile.
- prompt: The prompt formatter (business profile -> model instructions).
- telemetry: Fire-and-forget transcript, tool and usage events with a bounded
  timeout and a single retry.

Usage examples:
```python
from receptionist.services.booking_client import BookingClient
from receptionist.services.telemetry import TelemetrySidecar

async def book():
    booking = BookingClient()
    telemetry = TelemetrySidecar("https://core.example.com")

    result = await booking.check_availability("2025-01-10", "America/Toronto", 30)
    telemetry.tool("CA123:tool:check_availability:0", "CA123", "check_availability", 0,
                   {"date": "2025-01-10"}, result)
    if result.get("available"):
        await booking.book_appointment("2025-01-10T14:00", "Sam", "sam@example.com")
```
"""

# Services module initialization
