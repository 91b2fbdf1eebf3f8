"""
Deterministic slot-filling dialogue for appointment booking.

The next step of the conversation is recomputed from scratch every turn: a
decision table over which slots are present picks the first matching action.
Nothing here performs I/O. When every slot is filled the resolver returns a
``BookingPlan`` and the caller runs ``check_availability`` and then
``book_appointment``, feeding each result back through the reply helpers below.

Every helper tolerates a malformed service catalog, an unknown service name and
tool results that are not JSON objects.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from receptionist.config.constants import (
    DEFAULT_SERVICE_DURATION_MINUTES,
    DEFAULT_TIMEZONE,
    LOGGER_NAME,
)
from receptionist.models.call_session import CallSession, Intent

logger = logging.getLogger(LOGGER_NAME)

FALLBACK_REPLY = "I had trouble processing that, but I can help you try again. What would you like to do?"
BOOKING_FAILED_REPLY = (
    "I had trouble scheduling that, but I can help you try again. Would you like to try a different time?"
)


class DialogAction(str, Enum):
    """What the receptionist does next. Values double as the session's phase tag."""
    LIST_SERVICES = "services"
    OFFER_SERVICES = "service"
    ASK_DATETIME = "datetime"
    ASK_CONTACT = "contact"
    CHECK_AVAILABILITY = "confirm"


class SlotPresence(NamedTuple):
    """Which parts of the booking are known for this turn."""
    asked_services: bool
    service: bool
    date: bool
    time: bool
    name: bool
    contact: bool

    @classmethod
    def of(cls, session: CallSession, intent: Optional[Intent]) -> "SlotPresence":
        return cls(
            asked_services=intent == Intent.ASK_SERVICES,
            service=bool(session.service),
            date=bool(session.date),
            time=bool(session.time),
            name=bool(session.name),
            contact=bool(session.email or session.phone),
        )


# First matching row wins.
DECISION_TABLE: Tuple[Tuple[Callable[[SlotPresence], bool], DialogAction], ...] = (
    (lambda slots: slots.asked_services, DialogAction.LIST_SERVICES),
    (lambda slots: not slots.service, DialogAction.OFFER_SERVICES),
    (lambda slots: not (slots.date and slots.time), DialogAction.ASK_DATETIME),
    (lambda slots: not (slots.name and slots.contact), DialogAction.ASK_CONTACT),
    (lambda slots: True, DialogAction.CHECK_AVAILABILITY),
)


def choose_action(slots: SlotPresence) -> DialogAction:
    for matches, action in DECISION_TABLE:
        if matches(slots):
            return action
    return DialogAction.CHECK_AVAILABILITY


def _field(item: Any, key: str) -> Any:
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


def service_names(services: Any, limit: int = 2) -> List[str]:
    """Names of the first ``limit`` catalog entries that have one."""
    if not isinstance(services, (list, tuple)):
        return []
    names = []
    for service in services[:limit]:
        name = _field(service, "name")
        if isinstance(name, str) and name.strip():
            names.append(name)
    return names


def find_service(services: Any, name: Optional[str]) -> Optional[Any]:
    """Catalog entry whose name matches ``name`` ignoring case and outer spaces."""
    if not isinstance(services, (list, tuple)) or not services:
        logger.warning("Service catalog is empty or invalid")
        return None
    if not isinstance(name, str) or not name.strip():
        return None
    wanted = name.strip().lower()
    for service in services:
        candidate = _field(service, "name")
        if isinstance(candidate, str) and candidate.strip().lower() == wanted:
            return service
    return None


def service_duration(service: Any) -> float:
    """
    Length of ``service`` in minutes.

    ``durationMinutes`` wins over ``duration``; a missing, non-numeric or
    non-positive value falls back to 30.
    """
    if service is None:
        return DEFAULT_SERVICE_DURATION_MINUTES
    raw = _field(service, "durationMinutes")
    if raw is None:
        raw = _field(service, "duration")
    try:
        duration = float(raw)
    except (TypeError, ValueError):
        duration = 0
    if not math.isfinite(duration) or duration <= 0:
        logger.warning(f"Invalid duration {raw!r} for service {_field(service, 'name')!r}, defaulting")
        return DEFAULT_SERVICE_DURATION_MINUTES
    return int(duration) if duration.is_integer() else duration


@dataclass
class BookingPlan:
    """Everything needed to check availability and book, resolved from the session."""
    service: str
    date: str
    time: str
    name: str
    email: Optional[str]
    phone: Optional[str]
    timezone: str
    duration_minutes: float

    @property
    def start(self) -> str:
        return f"{self.date}T{self.time}"

    def availability_input(self) -> Dict[str, Any]:
        return {"date": self.date, "timezone": self.timezone, "durationMinutes": self.duration_minutes}

    def booking_input(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "guestName": self.name,
            "guestEmail": self.email,
            "guestPhone": self.phone,
        }


@dataclass
class Decision:
    """Outcome of one resolution: a reply to speak, or a plan to execute."""
    action: DialogAction
    reply: Optional[str] = None
    plan: Optional[BookingPlan] = None


def _list_services_reply(services: Any) -> str:
    names = service_names(services)
    if names:
        return f"We offer {' or '.join(names)}. Which one would you like?"
    return "We offer appointments. What would you like to book?"


def _offer_services_reply(services: Any) -> str:
    names = service_names(services)
    if names:
        return f"Sure. Do you want {' or '.join(names)}?"
    return "Sure. What type of appointment would you like?"


def make_plan(
    session: CallSession, services: Any, default_timezone: Optional[str] = None
) -> BookingPlan:
    """Resolve duration and timezone for a fully filled session."""
    service = find_service(services, session.service)
    if service is None:
        logger.warning(f"Service {session.service!r} not found in catalog, using default duration")
    return BookingPlan(
        service=session.service,
        date=session.date,
        time=session.time,
        name=session.name,
        email=session.email,
        phone=session.phone,
        timezone=session.timezone or default_timezone or DEFAULT_TIMEZONE,
        duration_minutes=service_duration(service),
    )


def resolve(
    session: CallSession,
    intent: Optional[Intent],
    services: Any,
    default_timezone: Optional[str] = None,
) -> Decision:
    """
    Decide the next step of the booking dialogue.

    Args:
        session: Slots for the call, already merged with this turn's extraction
        intent: Intent of this turn's utterance
        services: The business's service catalog
        default_timezone: Business timezone used when the caller gave none

    Returns:
        A decision carrying either the reply text or the booking plan to run
    """
    action = choose_action(SlotPresence.of(session, intent))

    if action is DialogAction.LIST_SERVICES:
        return Decision(action, reply=_list_services_reply(services))
    if action is DialogAction.OFFER_SERVICES:
        return Decision(action, reply=_offer_services_reply(services))
    if action is DialogAction.ASK_DATETIME:
        return Decision(action, reply="Great. What day and time works for you?")
    if action is DialogAction.ASK_CONTACT:
        return Decision(action, reply="Perfect. What's your name, and can I get your email or phone number?")
    return Decision(action, plan=make_plan(session, services, default_timezone))


def is_available(result: Any) -> bool:
    """True only for a JSON object that reports ``available``."""
    return isinstance(result, dict) and bool(result.get("available"))


def unavailable_reply(result: Any) -> str:
    error = result.get("error") if isinstance(result, dict) else "Invalid response"
    detail = f" ({error})" if error else ""
    return f"I'm sorry, that time slot isn't available{detail}. Would you like to try a different day or time?"


def is_booked(result: Any) -> bool:
    return isinstance(result, dict) and bool(result.get("ok"))


def booking_reply(plan: BookingPlan, result: Any) -> str:
    """Confirmation when ``result`` reports success, an apology otherwise."""
    if not is_booked(result):
        return BOOKING_FAILED_REPLY
    return (
        f"Perfect! I've booked {plan.service or 'your appointment'} on {plan.date} at {plan.time} "
        f"for {plan.name}. You'll receive a confirmation shortly."
    )


def ensure_reply(reply: Optional[str]) -> str:
    if not reply or not reply.strip():
        logger.warning("Reply text is empty, using fallback message")
        return FALLBACK_REPLY
    return reply
