"""
Pydantic models for the telephony media stream WebSocket protocol.

This module defines structured data models for the frames exchanged with the
telephony transport (Twilio Media Streams framing): inbound ``start``, ``media``,
``mark`` and ``stop`` frames, and outbound ``media``, ``mark`` and ``clear`` frames.
"""

import base64
import binascii
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from receptionist.config.constants import PLAYBACK_MARK_NAME


# Base Models
class BaseFrame(BaseModel):
    """Base model for all media stream frames."""

    event: str = Field(..., description="Frame type identifier")
    streamSid: Optional[str] = Field(None, description="Stream the frame belongs to")


# Inbound Frames
class StartDetails(BaseModel):
    """Payload of the ``start`` frame."""

    streamSid: str = Field(..., description="Identifier of the media stream")
    callSid: Optional[str] = Field(None, description="Identifier of the phone call")
    customParameters: Dict[str, str] = Field(default_factory=dict)


class StartFrame(BaseFrame):
    """Model for the ``start`` frame that opens a media stream."""

    event: Literal["start"]
    start: StartDetails


class MediaDetails(BaseModel):
    """Payload of a ``media`` frame."""

    payload: str = Field(..., description="Base64-encoded audio data")
    timestamp: int = Field(0, description="Milliseconds since the stream started")
    track: Optional[str] = None

    @field_validator("payload")
    def validate_payload(cls, v):
        """Validate that the payload is valid base64."""
        if not v:
            raise ValueError("Audio payload cannot be empty")
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Invalid base64 encoded audio data")
        return v


class MediaFrame(BaseFrame):
    """Model for an inbound ``media`` frame carrying caller audio."""

    event: Literal["media"]
    media: MediaDetails


class MarkDetails(BaseModel):
    name: str = PLAYBACK_MARK_NAME


class MarkFrame(BaseFrame):
    """Model for a ``mark`` frame: playback acknowledgment in, playback marker out."""

    event: Literal["mark"]
    mark: MarkDetails = Field(default_factory=MarkDetails)


class StopFrame(BaseFrame):
    """Model for the ``stop`` frame sent when the call's stream ends."""

    event: Literal["stop"]


# Outbound Frames
class OutboundMedia(BaseModel):
    payload: str = Field(..., description="Base64-encoded audio data")


class OutboundMediaFrame(BaseFrame):
    """Model for a ``media`` frame carrying model audio to the caller."""

    event: Literal["media"] = "media"
    streamSid: str
    media: OutboundMedia


class ClearFrame(BaseFrame):
    """Model for the ``clear`` frame that discards buffered, unplayed audio."""

    event: Literal["clear"] = "clear"
    streamSid: str


def media_frame(stream_sid: str, payload: str) -> OutboundMediaFrame:
    """Build an outbound media frame for ``stream_sid``."""
    return OutboundMediaFrame(streamSid=stream_sid, media=OutboundMedia(payload=payload))


def mark_frame(stream_sid: str, name: str = PLAYBACK_MARK_NAME) -> MarkFrame:
    """Build an outbound playback mark for ``stream_sid``."""
    return MarkFrame(event="mark", streamSid=stream_sid, mark=MarkDetails(name=name))


def clear_frame(stream_sid: str) -> ClearFrame:
    """Build an outbound clear instruction for ``stream_sid``."""
    return ClearFrame(streamSid=stream_sid)
