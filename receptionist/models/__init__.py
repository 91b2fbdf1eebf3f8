"""
Models module for data structures and state management in the receptionist.

This module provides structured data models and state management classes for the
application, defining the schemas of the telephony transport, the realtime model
socket and the agent-chat endpoint, as well as the per-call dialogue state.

Key components:
- call_session: The slots collected for a call (``CallSession``) and the NLU
  output for one utterance (``ExtractedFields``).
- session_store: TTL-expiring, per-call store of dialogue slots with turn
  counters and per-call locks.
- idempotency: Deterministic identifiers for telemetry events.
- media_stream_schemas: Frames exchanged with the telephony media stream.
- realtime_schemas: Events exchanged with the realtime speech model.
- agent_chat_schemas: Request and response bodies of the turn endpoint.
- business: Business profile and service catalog models.

Usage examples:
```python
from receptionist.models.session_store import SessionStateStore

store = SessionStateStore(ttl_seconds=1800)
store.merge("CA123", {"service": "Haircut", "date": None})
session = store.get("CA123")
assert session.service == "Haircut"

from receptionist.models.media_stream_schemas import MediaFrame

frame = MediaFrame(**{
    "event": "media",
    "streamSid": "MZ123",
    "media": {"payload": "AAAA", "timestamp": "1450"},
})
assert frame.media.timestamp == 1450
```
"""

from receptionist.models.agent_chat_schemas import (
    AgentChatError,
    AgentChatRequest,
    AgentChatResponse,
    ChatMessage,
)
from receptionist.models.business import BusinessProfile, Service
from receptionist.models.call_session import CallSession, ExtractedFields, Intent
from receptionist.models.idempotency import TurnCounter, event_id, tool_event_id
from receptionist.models.media_stream_schemas import (
    ClearFrame,
    MarkFrame,
    MediaFrame,
    OutboundMediaFrame,
    StartFrame,
    StopFrame,
)
from receptionist.models.realtime_schemas import (
    ConversationItemTruncateEvent,
    InputAudioAppendEvent,
    OutputAudioDeltaEvent,
    RequiresActionEvent,
    SessionUpdateEvent,
    SpeechStartedEvent,
    SubmitToolOutputsEvent,
    ToolCall,
    ToolOutput,
)
from receptionist.models.session_store import SessionStateStore
