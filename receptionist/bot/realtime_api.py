import asyncio
import json
import logging
import time
import traceback
from typing import Any, AsyncIterator, Dict, List, Optional, Union

import websockets
from pydantic import BaseModel
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK

from receptionist.config.constants import LOGGER_NAME, LOG_EVENT_TYPES
from receptionist.models.realtime_schemas import SessionUpdateEvent

logger = logging.getLogger(LOGGER_NAME)

REALTIME_URL = "wss://api.openai.com/v1/realtime"
CONNECTION_TIMEOUT = 30  # seconds
SEND_TIMEOUT = 5.0  # seconds

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_MAX_QUEUE = 32  # Small queue to prevent buffering
WS_PING_INTERVAL = 5  # 5 seconds between pings


class RealtimeClient:
    """
    Client for the realtime speech model socket.

    One client serves one call. It is not reconnected: a dropped socket ends the
    ``events`` iterator and the owning bridge tears the call down.
    """
    def __init__(self, api_key: str, model: str, temperature: Optional[float] = None):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.ws = None
        self._connection_active = False
        self._is_closing = False
        self._last_activity = 0.0
        logger.info(f"RealtimeClient initialized with model: {model}")

    @property
    def connected(self) -> bool:
        return self._connection_active and not self._is_closing

    @property
    def url(self) -> str:
        url = f"{REALTIME_URL}?model={self.model}"
        if self.temperature is not None:
            url += f"&temperature={self.temperature}"
        return url

    async def connect(self) -> bool:
        """
        Connect to the realtime WebSocket endpoint.

        Returns:
            bool: True if connection was successful, False otherwise
        """
        if self._is_closing:
            logger.warning("Cannot connect - client is closing")
            return False

        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            logger.info(f"Connecting to realtime API with model: {self.model}")
            connection_start = time.time()
            # compression disabled to avoid per-frame overhead on audio
            self.ws = await asyncio.wait_for(
                websockets.connect(
                    self.url,
                    max_size=WS_MAX_SIZE,
                    max_queue=WS_MAX_QUEUE,
                    ping_interval=WS_PING_INTERVAL,
                    ping_timeout=10,
                    compression=None,
                    additional_headers=headers,
                ),
                timeout=CONNECTION_TIMEOUT
            )
            connection_time = time.time() - connection_start
            logger.debug(f"WebSocket connection established in {connection_time:.2f} seconds")

            self._connection_active = True
            self._last_activity = time.time()
            logger.info("Successfully connected to realtime API")
            return True
        except asyncio.TimeoutError:
            logger.error(f"Timeout while connecting to realtime API (after {CONNECTION_TIMEOUT}s)")
            self._connection_active = False
            return False
        except Exception as e:
            logger.error(f"Failed to connect to realtime API: {e}")
            logger.debug(f"Connection error details: {traceback.format_exc()}")
            self._connection_active = False
            return False

    async def send_event(self, event: Union[BaseModel, Dict[str, Any]]) -> bool:
        """
        Send one JSON event to the model.

        Args:
            event: Pydantic event model or plain dict

        Returns:
            bool: True if the event was sent, False otherwise
        """
        if not self.connected or self.ws is None:
            logger.debug("Cannot send event - connection not active")
            return False

        message = event.model_dump_json() if isinstance(event, BaseModel) else json.dumps(event)
        try:
            await asyncio.wait_for(self.ws.send(message), timeout=SEND_TIMEOUT)
            self._last_activity = time.time()
            return True
        except asyncio.TimeoutError:
            logger.warning("Timeout while sending event to realtime API")
            return False
        except ConnectionClosed as e:
            logger.info(f"Connection closed while sending event: {e}")
            self._connection_active = False
            return False

    async def update_session(
        self,
        instructions: str,
        voice: str,
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> bool:
        """
        Configure audio formats, turn detection, voice, instructions and tools.
        """
        session: Dict[str, Any] = {
            "type": "realtime",
            "model": self.model,
            "output_modalities": ["audio"],
            "audio": {
                "input": {"format": {"type": "audio/pcmu"}, "turn_detection": {"type": "server_vad"}},
                "output": {"format": {"type": "audio/pcmu"}, "voice": voice},
            },
            "instructions": instructions,
        }
        if tools:
            session["tools"] = tools
            session["tool_choice"] = "auto"
        logger.debug(f"Sending session update with {len(tools or [])} tools")
        return await self.send_event(SessionUpdateEvent(session=session))

    async def events(self) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield decoded JSON events until the socket closes.
        """
        if not self.ws:
            logger.error("WebSocket not initialized for receive loop")
            return

        try:
            async for message in self.ws:
                self._last_activity = time.time()
                if isinstance(message, bytes):
                    logger.debug(f"Ignoring binary frame of size {len(message)} bytes")
                    continue
                try:
                    data = json.loads(message)
                except json.JSONDecodeError:
                    logger.warning(f"Received invalid JSON: {message[:100]}...")
                    continue
                if not isinstance(data, dict):
                    continue

                event_type = data.get("type")
                if event_type == "error":
                    logger.error(f"Received error from realtime API: {data}")
                elif event_type in LOG_EVENT_TYPES:
                    logger.info(f"Received event: {event_type}")
                yield data
        except ConnectionClosedOK:
            logger.info("Realtime connection closed normally")
        except ConnectionClosedError as e:
            logger.warning(f"Realtime connection closed unexpectedly: {e}")
        finally:
            self._connection_active = False

    async def close(self) -> None:
        """
        Close the WebSocket connection.
        """
        if self._is_closing:
            return
        logger.info("Closing realtime client")
        self._is_closing = True
        self._connection_active = False

        if self.ws:
            try:
                await self.ws.close()
            except Exception as e:
                logger.warning(f"Error closing realtime WebSocket: {e}")
