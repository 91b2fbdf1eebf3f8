"""
Bridge between a telephony media stream and the realtime speech model.

One ``MediaStreamBridge`` serves one phone call. It relays caller audio to the
model and model audio back to the caller, tracks how much of the current model
utterance has been played so it can be cut short when the caller talks over it,
and runs booking tools the model asks for.

Raw frames from either socket are translated into ``BridgeEvent`` values and
dispatched to exactly one handler per event type. Handlers mutate the
``AudioSessionState`` before their first ``await``, so the two reader tasks never
observe a half-updated state.
"""

import asyncio
import json
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from receptionist.bot.realtime_api import RealtimeClient
from receptionist.bot.tool_calls import TOOL_DEFINITIONS, ToolCallError, ToolCallHandler
from receptionist.config import settings
from receptionist.config.constants import (
    LOGGER_NAME,
    MEDIA_EVENT_CONNECTED,
    MEDIA_EVENT_MARK,
    MEDIA_EVENT_MEDIA,
    MEDIA_EVENT_START,
    MEDIA_EVENT_STOP,
    PLAYBACK_MARK_NAME,
    REALTIME_ERROR,
    REALTIME_LEGACY_AUDIO_DELTA,
    REALTIME_OUTPUT_AUDIO_DELTA,
    REALTIME_REQUIRES_ACTION,
    REALTIME_SPEECH_STARTED,
)
from receptionist.models.media_stream_schemas import (
    MarkFrame,
    MediaFrame,
    StartFrame,
    StopFrame,
    clear_frame,
    mark_frame,
    media_frame,
)
from receptionist.models.realtime_schemas import (
    ConversationItemTruncateEvent,
    InputAudioAppendEvent,
    OutputAudioDeltaEvent,
    RequiresActionEvent,
    SpeechStartedEvent,
    SubmitToolOutputsEvent,
    ToolCall,
    ToolOutput,
)

logger = logging.getLogger(LOGGER_NAME)


class BridgeState(str, Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSED = "closed"


class BridgeEventType(str, Enum):
    """Every event the bridge reacts to, from either leg."""
    TRANSPORT_START = "transport.start"
    TRANSPORT_MEDIA = "transport.media"
    TRANSPORT_MARK = "transport.mark"
    TRANSPORT_STOP = "transport.stop"
    MODEL_AUDIO_DELTA = "model.audio_delta"
    MODEL_SPEECH_STARTED = "model.speech_started"
    MODEL_REQUIRES_ACTION = "model.requires_action"
    MODEL_ERROR = "model.error"


@dataclass
class BridgeEvent:
    type: BridgeEventType
    data: Any = None


@dataclass
class AudioSessionState:
    """Playback bookkeeping for one call."""
    stream_id: Optional[str] = None
    latest_media_timestamp_ms: int = 0
    last_assistant_item_id: Optional[str] = None
    playback_mark_queue: Deque[str] = field(default_factory=deque)
    response_start_timestamp_ms: Optional[int] = None

    def reset_playback(self) -> None:
        self.playback_mark_queue.clear()
        self.last_assistant_item_id = None
        self.response_start_timestamp_ms = None


_TRANSPORT_FRAMES = {
    MEDIA_EVENT_START: (BridgeEventType.TRANSPORT_START, StartFrame),
    MEDIA_EVENT_MEDIA: (BridgeEventType.TRANSPORT_MEDIA, MediaFrame),
    MEDIA_EVENT_MARK: (BridgeEventType.TRANSPORT_MARK, MarkFrame),
    MEDIA_EVENT_STOP: (BridgeEventType.TRANSPORT_STOP, StopFrame),
}

_MODEL_EVENTS = {
    REALTIME_OUTPUT_AUDIO_DELTA: (BridgeEventType.MODEL_AUDIO_DELTA, OutputAudioDeltaEvent),
    REALTIME_LEGACY_AUDIO_DELTA: (BridgeEventType.MODEL_AUDIO_DELTA, OutputAudioDeltaEvent),
    REALTIME_SPEECH_STARTED: (BridgeEventType.MODEL_SPEECH_STARTED, SpeechStartedEvent),
    REALTIME_REQUIRES_ACTION: (BridgeEventType.MODEL_REQUIRES_ACTION, RequiresActionEvent),
}


def transport_event(frame: Dict[str, Any]) -> Optional[BridgeEvent]:
    """
    Translate a decoded transport frame into a bridge event.

    Returns:
        The event, or None for frames the bridge does not act on
    """
    name = frame.get("event")
    if name == MEDIA_EVENT_CONNECTED:
        logger.debug("Transport connected")
        return None
    if name not in _TRANSPORT_FRAMES:
        logger.debug(f"Ignoring transport frame: {name}")
        return None

    event_type, model = _TRANSPORT_FRAMES[name]
    try:
        return BridgeEvent(event_type, model.model_validate(frame))
    except ValidationError as e:
        logger.warning(f"Invalid {name} frame from transport: {e}")
        return None


def model_event(event: Dict[str, Any]) -> Optional[BridgeEvent]:
    """
    Translate a decoded realtime model event into a bridge event.

    Returns:
        The event, or None for event types the bridge does not act on
    """
    name = event.get("type")
    if name == REALTIME_ERROR:
        return BridgeEvent(BridgeEventType.MODEL_ERROR, event.get("error"))
    if name not in _MODEL_EVENTS:
        return None

    event_type, model = _MODEL_EVENTS[name]
    try:
        return BridgeEvent(event_type, model.model_validate(event))
    except ValidationError as e:
        logger.warning(f"Invalid {name} event from model: {e}")
        return None


class MediaStreamBridge:
    """
    Duplex relay for one call between the telephony transport and the model.

    Lifecycle: CONNECTING until the model socket is open and configured, then
    ACTIVE until either leg closes, then CLOSED for good. Closing is idempotent
    and anything dispatched after it is ignored.
    """

    def __init__(
        self,
        transport: WebSocket,
        model: RealtimeClient,
        tools: ToolCallHandler,
        instructions: str,
        voice: Optional[str] = None,
    ):
        self.transport = transport
        self.model = model
        self.tools = tools
        self.instructions = instructions
        self.voice = voice or settings.VOICE
        self.state = BridgeState.CONNECTING
        self.session = AudioSessionState()
        self.tool_tasks: Set[asyncio.Task] = set()
        self._pumps: List[asyncio.Task] = []

        self.handlers: Dict[BridgeEventType, Callable[[Any], Awaitable[None]]] = {
            BridgeEventType.TRANSPORT_START: self._on_start,
            BridgeEventType.TRANSPORT_MEDIA: self._on_media,
            BridgeEventType.TRANSPORT_MARK: self._on_mark,
            BridgeEventType.TRANSPORT_STOP: self._on_stop,
            BridgeEventType.MODEL_AUDIO_DELTA: self._on_audio_delta,
            BridgeEventType.MODEL_SPEECH_STARTED: self._on_speech_started,
            BridgeEventType.MODEL_REQUIRES_ACTION: self._on_requires_action,
            BridgeEventType.MODEL_ERROR: self._on_model_error,
        }

    @property
    def closed(self) -> bool:
        return self.state is BridgeState.CLOSED

    async def start(self) -> bool:
        """
        Open and configure the model socket.

        Returns:
            bool: True if the bridge is now ACTIVE
        """
        if self.state is not BridgeState.CONNECTING:
            return self.state is BridgeState.ACTIVE

        if not await self.model.connect():
            logger.error("Could not connect to the realtime model")
            return False
        if not await self.model.update_session(self.instructions, self.voice, TOOL_DEFINITIONS):
            logger.error("Could not configure the realtime session")
            return False
        if self.closed:
            return False

        self.state = BridgeState.ACTIVE
        logger.info("Media stream bridge active")
        return True

    async def run(self) -> None:
        """
        Relay both legs until either one closes, then tear everything down.
        """
        try:
            if not await self.start():
                return
            self._pumps = [
                asyncio.create_task(self._pump_transport()),
                asyncio.create_task(self._pump_model()),
            ]
            await asyncio.wait(self._pumps, return_when=asyncio.FIRST_COMPLETED)
        finally:
            await self.close()

    async def dispatch(self, event: BridgeEvent) -> None:
        if self.closed:
            logger.debug(f"Ignoring {event.type.value} after close")
            return
        handler = self.handlers.get(event.type)
        if handler is None:
            logger.debug(f"No handler for {event.type.value}")
            return
        await handler(event.data)

    async def _pump_transport(self) -> None:
        try:
            while not self.closed:
                message = await self.transport.receive_text()
                try:
                    frame = json.loads(message)
                except json.JSONDecodeError:
                    logger.warning(f"Received invalid JSON from transport: {message[:100]}")
                    continue
                if not isinstance(frame, dict):
                    continue
                event = transport_event(frame)
                if event is not None:
                    await self.dispatch(event)
        except WebSocketDisconnect:
            logger.info("Transport disconnected")
        except Exception as e:
            logger.error(f"Error reading transport: {e}", exc_info=True)

    async def _pump_model(self) -> None:
        try:
            async for data in self.model.events():
                if self.closed:
                    break
                event = model_event(data)
                if event is not None:
                    await self.dispatch(event)
            logger.info("Realtime model stream ended")
        except Exception as e:
            logger.error(f"Error reading realtime model: {e}", exc_info=True)

    async def _send_transport(self, frame: BaseModel) -> bool:
        try:
            await self.transport.send_text(frame.model_dump_json(exclude_none=True))
            return True
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.warning(f"Could not send {frame.event} frame to transport: {e}")
            return False

    # Transport handlers

    async def _on_start(self, frame: StartFrame) -> None:
        self.session.stream_id = frame.start.streamSid
        self.session.response_start_timestamp_ms = None
        self.session.latest_media_timestamp_ms = 0
        caller_phone = frame.start.customParameters.get("callerPhone")
        if caller_phone and not self.tools.caller_phone:
            self.tools.caller_phone = caller_phone
        logger.info(f"Media stream started: {frame.start.streamSid} (call: {frame.start.callSid})")

    async def _on_media(self, frame: MediaFrame) -> None:
        self.session.latest_media_timestamp_ms = frame.media.timestamp
        await self.model.send_event(InputAudioAppendEvent(audio=frame.media.payload))

    async def _on_mark(self, frame: MarkFrame) -> None:
        if self.session.playback_mark_queue:
            self.session.playback_mark_queue.popleft()

    async def _on_stop(self, frame: StopFrame) -> None:
        logger.info(f"Media stream stopped: {self.session.stream_id}")
        await self.close()

    # Model handlers

    async def _on_audio_delta(self, event: OutputAudioDeltaEvent) -> None:
        stream_id = self.session.stream_id
        if stream_id is None:
            logger.debug("Dropping model audio before the stream started")
            return

        if self.session.response_start_timestamp_ms is None:
            self.session.response_start_timestamp_ms = self.session.latest_media_timestamp_ms
        if event.item_id:
            self.session.last_assistant_item_id = event.item_id
        self.session.playback_mark_queue.append(PLAYBACK_MARK_NAME)

        await self._send_transport(media_frame(stream_id, event.delta))
        await self._send_transport(mark_frame(stream_id))

    async def _on_speech_started(self, event: SpeechStartedEvent) -> None:
        session = self.session
        if not session.playback_mark_queue or session.response_start_timestamp_ms is None:
            return

        elapsed = max(0, session.latest_media_timestamp_ms - session.response_start_timestamp_ms)
        item_id = session.last_assistant_item_id
        stream_id = session.stream_id
        session.reset_playback()
        logger.info(f"Caller interrupted playback after {elapsed}ms")

        if item_id:
            await self.model.send_event(
                ConversationItemTruncateEvent(item_id=item_id, audio_end_ms=elapsed)
            )
        if stream_id:
            await self._send_transport(clear_frame(stream_id))

    async def _on_requires_action(self, event: RequiresActionEvent) -> None:
        if not event.tool_calls:
            return
        task = asyncio.create_task(self._run_tools(event.response_id, event.tool_calls))
        self.tool_tasks.add(task)
        task.add_done_callback(self.tool_tasks.discard)

    async def _on_model_error(self, error: Any) -> None:
        logger.error(f"Realtime model reported an error: {error}")

    # Tools

    async def _tool_output(self, tool_call: ToolCall) -> Any:
        if tool_call.type != "function":
            return {"error": f"Unsupported tool call type: {tool_call.type}"}
        try:
            return await self.tools.run(tool_call)
        except ToolCallError as e:
            logger.warning(str(e))
            return {"error": str(e)}
        except Exception as e:
            logger.error(f"Tool {tool_call.function.name} failed: {e}", exc_info=True)
            return {"error": str(e) or type(e).__name__}

    async def _run_tools(self, response_id: Optional[str], tool_calls: List[ToolCall]) -> None:
        outputs = []
        for tool_call in tool_calls:
            result = await self._tool_output(tool_call)
            outputs.append(ToolOutput(tool_call_id=tool_call.id, output=json.dumps(result, default=str)))

        if self.closed:
            logger.info(f"Discarding tool outputs for response {response_id} after close")
            return
        await self.model.send_event(SubmitToolOutputsEvent(response_id=response_id, tool_outputs=outputs))
        logger.info(f"Submitted {len(outputs)} tool output(s) for response {response_id}")

    async def close(self) -> None:
        """
        Close both legs and abandon outstanding tool calls. Safe to call twice.
        """
        if self.closed:
            return
        self.state = BridgeState.CLOSED
        logger.info(f"Closing media stream bridge: {self.session.stream_id}")

        current = asyncio.current_task()
        pending = [task for task in [*self.tool_tasks, *self._pumps] if task is not current and not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        await self.model.close()
        try:
            await self.transport.close()
        except RuntimeError as e:
            logger.debug(f"Transport already closed: {e}")
