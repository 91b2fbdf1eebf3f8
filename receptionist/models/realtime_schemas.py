"""
Pydantic models for the realtime model socket events used by the bridge.

This module provides type-safe models for the subset of realtime events the
bridge exchanges with the speech model: audio in and out, barge-in signals,
truncation and tool-call round trips.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class RealtimeBaseEvent(BaseModel):
    """Base model for realtime events."""
    type: str


# Outbound events
class InputAudioAppendEvent(RealtimeBaseEvent):
    """Caller audio forwarded to the model."""
    type: Literal["input_audio_buffer.append"] = "input_audio_buffer.append"
    audio: str = Field(..., description="Base64-encoded audio data")


class ConversationItemTruncateEvent(RealtimeBaseEvent):
    """Cut an assistant item's audio at the point the caller interrupted it."""
    type: Literal["conversation.item.truncate"] = "conversation.item.truncate"
    item_id: str
    content_index: int = 0
    audio_end_ms: int


class ToolOutput(BaseModel):
    """Result of one tool call, serialized as a JSON string."""
    tool_call_id: str
    output: str


class SubmitToolOutputsEvent(RealtimeBaseEvent):
    """Tool results returned to the model, correlated by response id."""
    type: Literal["response.submit_tool_outputs"] = "response.submit_tool_outputs"
    response_id: Optional[str] = None
    tool_outputs: List[ToolOutput]


class SessionUpdateEvent(RealtimeBaseEvent):
    """Session configuration sent once the model socket is open."""
    type: Literal["session.update"] = "session.update"
    session: Dict[str, Any]


# Inbound events
class OutputAudioDeltaEvent(RealtimeBaseEvent):
    """A chunk of model audio."""
    delta: str = Field(..., description="Base64-encoded audio data")
    item_id: Optional[str] = None
    response_id: Optional[str] = None


class SpeechStartedEvent(RealtimeBaseEvent):
    """Server VAD detected the caller starting to speak."""
    type: Literal["input_audio_buffer.speech_started"]
    audio_start_ms: Optional[int] = None
    item_id: Optional[str] = None


class FunctionCall(BaseModel):
    name: str
    arguments: str = "{}"


class ToolCall(BaseModel):
    """One function call the model wants executed."""
    id: str
    type: str = "function"
    function: FunctionCall


class SubmitToolOutputsAction(BaseModel):
    tool_calls: List[ToolCall] = Field(default_factory=list)


class RequiredAction(BaseModel):
    submit_tool_outputs: SubmitToolOutputsAction = Field(default_factory=SubmitToolOutputsAction)


class ActionResponse(BaseModel):
    id: Optional[str] = None
    required_action: RequiredAction = Field(default_factory=RequiredAction)


class RequiresActionEvent(RealtimeBaseEvent):
    """The model paused a response until tool outputs are submitted."""
    type: Literal["response.requires_action"]
    response: ActionResponse = Field(default_factory=ActionResponse)

    @property
    def response_id(self) -> Optional[str]:
        return self.response.id

    @property
    def tool_calls(self) -> List[ToolCall]:
        return self.response.required_action.submit_tool_outputs.tool_calls
