"""
Turn pipeline for the agent-chat endpoint.

This module processes one caller utterance per request: it loads the business
profile, extracts fields from the utterance, merges them into the call's
session, decides the next step and, once every slot is known, checks
availability and books. Transcript, tool and usage telemetry are emitted in the
background and never awaited before the reply is returned.

Upstream failures (profile, NLU, scheduling API) degrade to fallback values.
Anything else propagates to the endpoint, which answers with
``handle_failure``.
"""

import dataclasses
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from receptionist.bot.dialog_resolver import (
    BookingPlan,
    booking_reply,
    ensure_reply,
    is_available,
    is_booked,
    resolve,
    service_names,
    unavailable_reply,
)
from receptionist.config import settings
from receptionist.config.constants import LOGGER_NAME, TOOL_BOOK_APPOINTMENT, TOOL_CHECK_AVAILABILITY
from receptionist.models.agent_chat_schemas import AgentChatError, AgentChatRequest, AgentChatResponse
from receptionist.models.business import BusinessProfile, Service
from receptionist.models.call_session import ExtractedFields
from receptionist.models.idempotency import tool_event_id
from receptionist.models.session_store import SessionStateStore
from receptionist.services.booking_client import BookingClient
from receptionist.services.business_profiles import (
    GENERIC_SERVICE,
    BusinessProfileError,
    BusinessProfileResolver,
    fallback_profile,
)
from receptionist.services.nlu import NluExtractor
from receptionist.services.telemetry import TelemetrySidecar

logger = logging.getLogger(LOGGER_NAME)

ERROR_REPLY = "I'm having trouble accessing the scheduling system right now. Please try again later."

ROLE_CALLER = "caller"
ROLE_AGENT = "agent"


class TurnProcessor:
    """
    Runs the text-turn pipeline against injected collaborators.
    """

    def __init__(
        self,
        store: SessionStateStore,
        profiles: BusinessProfileResolver,
        nlu: NluExtractor,
        booking: BookingClient,
        telemetry: TelemetrySidecar,
    ):
        self.store = store
        self.profiles = profiles
        self.nlu = nlu
        self.booking = booking
        self.telemetry = telemetry

    async def load_profile(self, business_id: str) -> BusinessProfile:
        try:
            return await self.profiles.get(business_id)
        except BusinessProfileError as e:
            logger.error(f"Error loading business profile {business_id}: {e}")
            logger.warning("Using fallback profile with generic service")
            return fallback_profile(business_id)

    async def extract(self, profile: BusinessProfile, services: List[Service], text: str) -> ExtractedFields:
        try:
            return await self.nlu.extract(profile.name, service_names(services, limit=len(services)), text)
        except Exception as e:
            logger.error(f"Error in NLU extraction: {e}", exc_info=True)
            return ExtractedFields.empty()

    async def handle_turn(self, request: AgentChatRequest) -> AgentChatResponse:
        """
        Process one caller utterance.

        Args:
            request: The validated turn request

        Returns:
            The reply to speak and the session after this turn
        """
        call_id = request.call_id
        anonymous = call_id is None
        if anonymous:
            # No call to attach state or telemetry to: use a throwaway session
            call_id = f"anonymous-{uuid.uuid4().hex}"
            turn_index = 0
        else:
            turn_index = self.store.next_turn_index(call_id)
            self.telemetry.transcript(call_id, ROLE_CALLER, request.user_text, turn_index)

        logger.info(f"Turn {turn_index} for call {call_id} (business: {request.businessId})")

        profile = await self.load_profile(request.businessId)
        services = profile.services or [Service(**GENERIC_SERVICE)]
        extracted = await self.extract(profile, services, request.user_text)
        logger.info(f"Extracted intent: {extracted.intent.value}")

        async with self.store.lock(call_id):
            session = self.store.merge(call_id, extracted.session_fields())
            decision = resolve(session, extracted.intent, services, profile.timezone or settings.BUSINESS_TIMEZONE)
            session = self.store.merge(call_id, {"step": decision.action.value})

            reply = decision.reply
            if decision.plan is not None:
                reply, booked = await self.execute_plan(
                    None if anonymous else call_id, decision.plan, request.callerPhone
                )
                if booked:
                    self.store.clear(call_id)

            if anonymous:
                self.store.clear(call_id)

        reply = ensure_reply(reply)
        if not anonymous:
            self.telemetry.transcript(call_id, ROLE_AGENT, reply, turn_index)
            self.telemetry.usage(call_id, extracted.llm_tokens, len(reply))

        return AgentChatResponse(reply=reply, replyText=reply, state=session)

    async def execute_plan(
        self, call_id: Optional[str], plan: BookingPlan, caller_phone: Optional[str] = None
    ) -> Tuple[str, bool]:
        """
        Check availability and, only if the slot is free, book it.

        Returns:
            The reply text and whether the appointment was booked
        """
        availability_input = plan.availability_input()
        try:
            availability = await self.booking.check_availability(
                date=plan.date, timezone=plan.timezone, duration_minutes=plan.duration_minutes
            )
        except Exception as e:
            logger.error(f"Error in check_availability: {e}", exc_info=True)
            availability = {"available": False, "error": str(e) or "Check availability failed"}
        logger.info(f"check_availability result: available={is_available(availability)}")
        self._emit_tool(call_id, TOOL_CHECK_AVAILABILITY, 0, availability_input, availability)

        if not is_available(availability):
            return unavailable_reply(availability), False

        if not plan.phone and caller_phone:
            plan = dataclasses.replace(plan, phone=caller_phone)
        booking_input = plan.booking_input()
        try:
            result = await self.booking.book_appointment(
                start=plan.start,
                guest_name=plan.name,
                guest_email=plan.email,
                guest_phone=plan.phone,
            )
        except Exception as e:
            logger.error(f"Error in book_appointment: {e}", exc_info=True)
            result = {"ok": False, "error": str(e) or "Booking failed"}
        logger.info(f"book_appointment result: ok={is_booked(result)}")
        self._emit_tool(call_id, TOOL_BOOK_APPOINTMENT, 1, booking_input, result)

        return booking_reply(plan, result), is_booked(result)

    def _emit_tool(
        self, call_id: Optional[str], tool_name: str, tool_index: int, tool_input: Dict[str, Any], output: Any
    ) -> None:
        if call_id is None:
            return
        self.telemetry.tool(
            tool_event_id(call_id, tool_name, tool_index), call_id, tool_name, tool_index, tool_input, output
        )

    def handle_failure(self, call_id: Optional[str], error: Exception) -> AgentChatError:
        """
        Build the apology for an unhandled fault and emit it as a transcript.
        """
        logger.error(f"Error processing turn for call {call_id}: {error}", exc_info=error)
        if call_id:
            try:
                turn_index = self.store.next_turn_index(call_id)
                self.telemetry.transcript(call_id, ROLE_AGENT, ERROR_REPLY, turn_index)
            except Exception as e:
                logger.error(f"Error emitting error transcript: {e}")
        return AgentChatError(error=str(error) or type(error).__name__, reply=ERROR_REPLY)

    async def aclose(self) -> None:
        await self.telemetry.aclose()
        await self.booking.aclose()
        await self.nlu.aclose()
        await self.profiles.aclose()


def create_turn_processor() -> TurnProcessor:
    """Build a processor wired to the configured services."""
    return TurnProcessor(
        store=SessionStateStore(ttl_seconds=settings.SESSION_TTL_SECONDS),
        profiles=BusinessProfileResolver(settings.CORE_API_URL),
        nlu=NluExtractor(),
        booking=BookingClient(),
        telemetry=TelemetrySidecar(settings.CORE_API_URL, timeout=settings.TELEMETRY_TIMEOUT_SECONDS),
    )
