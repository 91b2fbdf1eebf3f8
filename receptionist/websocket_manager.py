"""
WebSocket connection manager for the telephony media stream.

This module implements the server side of the ``/media-stream`` endpoint. For
every incoming call it:
- Accepts the WebSocket connection and tunes its socket for low latency
- Resolves the business being called and formats the model instructions
- Builds a ``MediaStreamBridge`` to the realtime speech model and runs it
- Tracks active bridges so shutdown can close them

The bridge owns the call from then on; the manager only sets it up and forgets
it once either leg has closed.
"""

import logging
import socket
from typing import Optional, Set

from fastapi import WebSocket

from receptionist.bot.media_stream_bridge import MediaStreamBridge
from receptionist.bot.realtime_api import RealtimeClient
from receptionist.bot.tool_calls import ToolCallHandler
from receptionist.config import settings
from receptionist.config.constants import LOGGER_NAME
from receptionist.models.business import BusinessProfile
from receptionist.services.booking_client import BookingClient
from receptionist.services.business_profiles import BusinessProfileError, BusinessProfileResolver
from receptionist.services.prompt import FALLBACK_INSTRUCTIONS, build_system_prompt

logger = logging.getLogger(LOGGER_NAME)


class MediaStreamManager:
    """Creates and tracks one media stream bridge per connected call.

    Collaborators are shared across calls; the realtime client and tool handler
    are created per call.
    """

    def __init__(self, profiles: BusinessProfileResolver, booking: BookingClient):
        self.profiles = profiles
        self.booking = booking
        self.active_bridges: Set[MediaStreamBridge] = set()

    async def _optimize_socket(self, websocket: WebSocket) -> None:
        """
        Optimize the WebSocket's underlying TCP socket for low-latency transmission.

        Args:
            websocket: The FastAPI WebSocket connection
        """
        try:
            client = websocket.client
            if hasattr(client, "sock") and client.sock is not None:
                # Disable Nagle's algorithm to send packets immediately
                client.sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
                logger.info("Optimized socket: TCP_NODELAY enabled for low latency")
        except Exception as e:
            logger.warning(f"Could not optimize socket: {e}")

    async def load_profile(self, business_id: str) -> Optional[BusinessProfile]:
        try:
            profile = await self.profiles.get(business_id)
        except BusinessProfileError as e:
            logger.error(f"Error loading business profile {business_id}: {e}")
            return None
        logger.info(f"Loaded business profile: {profile.name}")
        return profile

    def create_bridge(
        self,
        websocket: WebSocket,
        instructions: str,
        caller_phone: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> MediaStreamBridge:
        model = RealtimeClient(settings.OPENAI_API_KEY, settings.REALTIME_MODEL, settings.TEMPERATURE)
        tools = ToolCallHandler(self.booking, caller_phone=caller_phone, default_timezone=timezone)
        return MediaStreamBridge(websocket, model, tools, instructions)

    async def handle_websocket(
        self,
        websocket: WebSocket,
        business_id: Optional[str] = None,
        caller_phone: Optional[str] = None,
    ) -> None:
        """Handle a media stream connection for the whole call.

        Args:
            websocket: The FastAPI WebSocket connection object
            business_id: Handle of the business being called
            caller_phone: Caller ID passed through from the incoming-call webhook
        """
        await websocket.accept()
        await self._optimize_socket(websocket)
        business_id = business_id or settings.DEFAULT_BUSINESS_HANDLE
        logger.info(f"Media stream connected for business: {business_id}")

        profile = await self.load_profile(business_id)
        if profile is None:
            instructions, timezone = FALLBACK_INSTRUCTIONS, settings.BUSINESS_TIMEZONE
        else:
            instructions = build_system_prompt(profile)
            timezone = profile.timezone or settings.BUSINESS_TIMEZONE

        bridge = self.create_bridge(websocket, instructions, caller_phone, timezone)
        self.active_bridges.add(bridge)
        try:
            await bridge.run()
        except Exception as e:
            logger.error(f"Error in media stream connection: {e}", exc_info=True)
        finally:
            await bridge.close()
            self.active_bridges.discard(bridge)
            logger.info("Media stream connection closed")

    async def close_all(self) -> None:
        for bridge in list(self.active_bridges):
            await bridge.close()
        self.active_bridges.clear()
