"""
Client for the external scheduling API.

Both operations return plain dicts and never raise: every failure is folded into
``{"available": False, "error": ...}`` or ``{"ok": False, "error": ...}`` so the
dialogue and the audio bridge can verbalize a fallback instead of failing the call.
"""

import logging
import math
from typing import Any, Dict, Optional

import httpx

from receptionist.config import settings
from receptionist.config.constants import DEFAULT_SERVICE_DURATION_MINUTES, LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

REQUEST_TIMEOUT_SECONDS = 10.0


class BookingClient:
    """
    Async client for ``check_availability`` and ``book_appointment``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        agent_api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: Root URL of the scheduling API; defaults to BOOKING_API_URL
            agent_api_key: Key identifying this agent; defaults to BOOKING_AGENT_API_KEY
            client: Shared HTTP client; one is created lazily if omitted
        """
        self.base_url = (base_url or settings.BOOKING_API_URL).rstrip("/")
        self.agent_api_key = (
            agent_api_key if agent_api_key is not None else settings.BOOKING_AGENT_API_KEY
        )
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS)
        return self._client

    async def _post(self, path: str, body: Dict[str, Any]) -> httpx.Response:
        return await self.client.post(f"{self.base_url}{path}", json=body)

    async def check_availability(
        self, date: Optional[str], timezone: Optional[str], duration_minutes: Any
    ) -> Dict[str, Any]:
        """
        Ask whether a slot of ``duration_minutes`` is free on ``date``.

        Args:
            date: Day in YYYY-MM-DD form
            timezone: IANA timezone name the date is expressed in
            duration_minutes: Length of the appointment; invalid values fall back to 30

        Returns:
            The API result, at least ``{"available": bool}``
        """
        if not date or not timezone:
            logger.error(f"Missing availability fields: date={bool(date)}, timezone={bool(timezone)}")
            return {"available": False, "error": "Missing required availability information"}

        try:
            duration = float(duration_minutes)
        except (TypeError, ValueError):
            duration = 0
        if not math.isfinite(duration) or duration <= 0:
            logger.warning(f"Invalid duration {duration_minutes!r}, defaulting to {DEFAULT_SERVICE_DURATION_MINUTES}")
            duration = DEFAULT_SERVICE_DURATION_MINUTES
        duration = int(duration) if float(duration).is_integer() else duration

        if not self.agent_api_key:
            logger.error("BOOKING_AGENT_API_KEY is not configured")
            return {"available": False, "error": "Agent API key not configured"}

        try:
            response = await self._post("/api/agent/check-availability", {
                "agentApiKey": self.agent_api_key,
                "date": str(date),
                "timezone": str(timezone),
                "durationMinutes": duration,
            })
        except httpx.HTTPError as e:
            logger.error(f"check_availability request failed: {e!r}")
            return {"available": False, "error": str(e) or "Availability check failed"}

        if not response.is_success:
            logger.error(f"check_availability returned HTTP {response.status_code}: {response.text[:200]}")
            return {"available": False, "error": f"API error: {response.status_code}"}

        try:
            result = response.json()
        except ValueError:
            return {"available": False, "error": "Invalid JSON response"}
        return result if result else {"available": False, "error": "Empty response"}

    async def book_appointment(
        self,
        start: Optional[str],
        guest_name: Optional[str],
        guest_email: Optional[str] = None,
        guest_phone: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Book an appointment starting at ``start`` (``YYYY-MM-DDTHH:mm``).

        Returns:
            The API result, at least ``{"ok": bool}``
        """
        if not self.agent_api_key:
            logger.error("BOOKING_AGENT_API_KEY is not configured")
            return {"ok": False, "error": "Agent API key not configured"}

        try:
            response = await self._post("/api/agent/book", {
                "agentApiKey": self.agent_api_key,
                "start": start,
                "guestName": guest_name,
                "guestEmail": guest_email,
                "guestPhone": guest_phone or None,
            })
        except httpx.HTTPError as e:
            logger.error(f"book_appointment request failed: {e!r}")
            return {"ok": False, "error": str(e) or "Booking failed"}

        try:
            result = response.json()
        except ValueError:
            logger.error(f"book_appointment returned non-JSON body with HTTP {response.status_code}")
            return {"ok": False, "error": f"API error: {response.status_code}"}

        if not response.is_success and isinstance(result, dict):
            result.setdefault("ok", False)
            result.setdefault("error", f"API error: {response.status_code}")
        return result

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
