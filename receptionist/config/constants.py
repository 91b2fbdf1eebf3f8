"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol names and fallback values and making it
easier to keep naming consistent throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "receptionist"

# Default OpenAI model for the Realtime API
DEFAULT_REALTIME_MODEL = "gpt-realtime"

# Default model for structured field extraction
DEFAULT_NLU_MODEL = "gpt-4o-mini"

# Dialogue fallbacks
DEFAULT_TIMEZONE = "America/Toronto"
DEFAULT_SERVICE_DURATION_MINUTES = 30
DEFAULT_SESSION_TTL_SECONDS = 30 * 60

# Telemetry delivery
TELEMETRY_TIMEOUT_SECONDS = 2.5
TELEMETRY_MAX_RETRIES = 1
TELEMETRY_TRANSCRIPT_PATH = "/internal/calls/transcript"
TELEMETRY_TOOL_PATH = "/internal/calls/tool"
TELEMETRY_USAGE_PATH = "/internal/calls/usage"

# Media stream (telephony transport) event names
MEDIA_EVENT_CONNECTED = "connected"
MEDIA_EVENT_START = "start"
MEDIA_EVENT_MEDIA = "media"
MEDIA_EVENT_MARK = "mark"
MEDIA_EVENT_STOP = "stop"

# Name carried by every playback mark sent to the transport
PLAYBACK_MARK_NAME = "responsePart"

# Realtime model event names
REALTIME_SPEECH_STARTED = "input_audio_buffer.speech_started"
REALTIME_OUTPUT_AUDIO_DELTA = "response.output_audio.delta"
REALTIME_LEGACY_AUDIO_DELTA = "response.audio.delta"
REALTIME_REQUIRES_ACTION = "response.requires_action"
REALTIME_ERROR = "error"

# Realtime event types worth logging at INFO level
LOG_EVENT_TYPES = [
    "error",
    "response.content.done",
    "rate_limits.updated",
    "response.done",
    "input_audio_buffer.committed",
    "input_audio_buffer.speech_stopped",
    "input_audio_buffer.speech_started",
    "session.created",
    "session.updated",
]

# Tool names understood by the booking API
TOOL_CHECK_AVAILABILITY = "check_availability"
TOOL_BOOK_APPOINTMENT = "book_appointment"
