"""
Pydantic models for the agent-chat turn endpoint.

A turn carries one caller utterance for one call of one business. The text can
arrive either as ``text`` or as the last entry of a ``messages`` list.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from receptionist.models.call_session import CallSession


class ChatMessage(BaseModel):
    """One message of a chat-style history."""

    role: str = "user"
    content: Optional[str] = None
    text: Optional[str] = None


class AgentChatRequest(BaseModel):
    """Body of ``POST /api/agent-chat``."""

    businessId: str = Field(..., description="Handle of the business being called")
    callId: Optional[str] = Field(None, description="Identifier of the phone call")
    callSid: Optional[str] = Field(None, description="Telephony alias of callId")
    text: Optional[str] = Field(None, description="Caller utterance for this turn")
    messages: List[ChatMessage] = Field(default_factory=list)
    callerPhone: Optional[str] = None
    toPhone: Optional[str] = None

    @field_validator("businessId")
    def validate_business_id(cls, v):
        """Validate that the business id is not blank."""
        if not v or not v.strip():
            raise ValueError("businessId is required")
        return v.strip()

    @model_validator(mode="after")
    def validate_user_text(self):
        """Validate that the turn carries caller text somewhere."""
        if not self.user_text:
            raise ValueError("text or messages with content is required")
        return self

    @property
    def call_id(self) -> Optional[str]:
        return self.callId or self.callSid

    @property
    def user_text(self) -> str:
        if self.text and self.text.strip():
            return self.text
        if self.messages:
            last = self.messages[-1]
            return last.content or last.text or ""
        return ""


class AgentChatResponse(BaseModel):
    """Successful turn response."""

    ok: bool = True
    reply: str
    replyText: str
    state: CallSession


class AgentChatError(BaseModel):
    """Turn response for validation failures and unhandled faults."""

    ok: bool = False
    error: str
    reply: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
