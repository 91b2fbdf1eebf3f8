"""
Dialogue data models for the appointment-booking conversation.

``CallSession`` holds the slots collected for one phone call, ``ExtractedFields``
is the structured output of the NLU step for a single utterance.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, Field


class Intent(str, Enum):
    """What the caller is trying to do in a single utterance."""
    BOOK = "book"
    ASK_SERVICES = "ask_services"
    PRICE = "price"
    CANCEL = "cancel"
    OTHER = "other"


class CallSession(BaseModel):
    """Slots collected for one call. Every field is nullable."""

    step: Optional[str] = Field(None, description="Informational phase tag")
    service: Optional[str] = None
    date: Optional[str] = Field(None, description="YYYY-MM-DD")
    time: Optional[str] = Field(None, description="HH:mm, 24h")
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    timezone: Optional[str] = None

    def merged(self, partial: Union["CallSession", "ExtractedFields", Mapping[str, Any]]) -> "CallSession":
        """
        Return a copy with every non-null session field of ``partial`` applied.

        Null or absent incoming values never overwrite a known value.
        """
        if isinstance(partial, BaseModel):
            partial = partial.model_dump()
        update = {
            key: value
            for key, value in partial.items()
            if key in SESSION_FIELDS and value is not None
        }
        return self.model_copy(update=update)


SESSION_FIELDS = frozenset(CallSession.model_fields)


class ExtractedFields(BaseModel):
    """Structured fields the NLU step pulled out of one utterance."""

    intent: Intent = Intent.OTHER
    service: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    timezone: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    confirmation: Optional[bool] = None
    llm_tokens: int = Field(0, exclude=True, description="Tokens spent producing this extraction")

    @classmethod
    def empty(cls) -> "ExtractedFields":
        """Extraction used when the NLU step fails: no intent, no fields."""
        return cls()

    def session_fields(self) -> Dict[str, Any]:
        """Only the fields that belong in a ``CallSession``."""
        return {key: value for key, value in self.model_dump().items() if key in SESSION_FIELDS}
