"""
Tool calls requested by the realtime model during a phone call.

The model asks for ``check_availability`` or ``book_appointment`` through the
audio channel. ``ToolCallHandler`` parses the arguments, fills gaps from call
metadata (the caller ID stands in for a missing guest phone) and calls the
booking API. Submitting the result back to the model is the bridge's job.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from receptionist.config.constants import (
    DEFAULT_TIMEZONE,
    LOGGER_NAME,
    TOOL_BOOK_APPOINTMENT,
    TOOL_CHECK_AVAILABILITY,
)
from receptionist.models.realtime_schemas import ToolCall
from receptionist.services.booking_client import BookingClient

logger = logging.getLogger(LOGGER_NAME)

# Function definitions advertised to the model in session.update
TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": TOOL_CHECK_AVAILABILITY,
        "description": "Check whether the business has a free slot on a given day.",
        "parameters": {
            "type": "object",
            "properties": {
                "date": {"type": "string", "description": "Day in YYYY-MM-DD format"},
                "timezone": {"type": "string", "description": "IANA timezone, e.g. America/Toronto"},
                "durationMinutes": {"type": "number", "description": "Length of the appointment"},
            },
            "required": ["date"],
        },
    },
    {
        "type": "function",
        "name": TOOL_BOOK_APPOINTMENT,
        "description": "Book an appointment once the caller has confirmed the details.",
        "parameters": {
            "type": "object",
            "properties": {
                "start": {"type": "string", "description": "Start as YYYY-MM-DDTHH:mm"},
                "guestName": {"type": "string"},
                "guestEmail": {"type": "string"},
                "guestPhone": {"type": "string"},
            },
            "required": ["start", "guestName"],
        },
    },
]


class ToolCallError(Exception):
    """Raised when a tool call cannot be executed as requested."""


def parse_arguments(tool_call: ToolCall) -> Dict[str, Any]:
    """
    Decode the JSON arguments of a tool call.

    Raises:
        ToolCallError: If the arguments are not a JSON object
    """
    try:
        args = json.loads(tool_call.function.arguments or "{}")
    except json.JSONDecodeError as e:
        raise ToolCallError(f"Invalid arguments for {tool_call.function.name}: {e}") from e
    if not isinstance(args, dict):
        raise ToolCallError(f"Arguments for {tool_call.function.name} must be an object")
    return args


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class ToolCallHandler:
    """
    Executes the booking tools for one call.
    """

    def __init__(
        self,
        booking: BookingClient,
        caller_phone: Optional[str] = None,
        default_timezone: Optional[str] = None,
    ):
        """
        Args:
            booking: Client for the scheduling API
            caller_phone: Caller ID of the call, used when the guest gives no phone
            default_timezone: Business timezone used when the model passes none
        """
        self.booking = booking
        self.caller_phone = caller_phone
        self.default_timezone = default_timezone or DEFAULT_TIMEZONE

    def recognizes(self, name: str) -> bool:
        return name in (TOOL_CHECK_AVAILABILITY, TOOL_BOOK_APPOINTMENT)

    async def run(self, tool_call: ToolCall) -> Any:
        """
        Execute one tool call.

        Returns:
            The booking API result, ready to be JSON-encoded as tool output

        Raises:
            ToolCallError: If the tool is unknown or its arguments are unusable
        """
        name = tool_call.function.name
        if not self.recognizes(name):
            raise ToolCallError(f"Unknown tool: {name}")

        args = parse_arguments(tool_call)
        if name == TOOL_CHECK_AVAILABILITY:
            return await self.booking.check_availability(
                date=_text(args.get("date")),
                timezone=_text(args.get("timezone")) or self.default_timezone,
                duration_minutes=args.get("durationMinutes"),
            )

        guest_phone = _text(args.get("guestPhone")) or self.caller_phone
        logger.info(
            f"Booking appointment at {args.get('start')} "
            f"(email: {bool(args.get('guestEmail'))}, phone: {bool(guest_phone)})"
        )
        return await self.booking.book_appointment(
            start=args.get("start"),
            guest_name=args.get("guestName"),
            guest_email=args.get("guestEmail"),
            guest_phone=guest_phone,
        )
