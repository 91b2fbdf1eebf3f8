"""
Environment-based settings for the receptionist service.

Values are read once at import time after loading an optional ``.env`` file from
the working directory. Modules import the names they need; tests patch them on
this module or on the importing module.
"""

import os
from pathlib import Path

import dotenv

from receptionist.config.constants import (
    DEFAULT_NLU_MODEL,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_SESSION_TTL_SECONDS,
    DEFAULT_TIMEZONE,
    TELEMETRY_TIMEOUT_SECONDS as DEFAULT_TELEMETRY_TIMEOUT,
)

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

# OpenAI
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
REALTIME_MODEL = os.getenv("OPENAI_MODEL", DEFAULT_REALTIME_MODEL)
NLU_MODEL = os.getenv("NLU_MODEL", DEFAULT_NLU_MODEL)
VOICE = os.getenv("VOICE", "alloy")
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.8"))

# Booking API
BOOKING_API_URL = os.getenv("BOOKING_API_URL", "https://api.book8.com").rstrip("/")
BOOKING_AGENT_API_KEY = os.getenv("BOOKING_AGENT_API_KEY")

# Core API (business profiles and telemetry sink)
CORE_API_URL = (os.getenv("CORE_API_URL") or "").rstrip("/") or None

# Dialogue
DEFAULT_BUSINESS_HANDLE = os.getenv("DEFAULT_BUSINESS_HANDLE", "waismofit")
BUSINESS_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", DEFAULT_TIMEZONE)
SESSION_TTL_SECONDS = float(os.getenv("SESSION_TTL_SECONDS", str(DEFAULT_SESSION_TTL_SECONDS)))

# Telemetry
TELEMETRY_TIMEOUT_SECONDS = float(
    os.getenv("TELEMETRY_TIMEOUT_SECONDS", str(DEFAULT_TELEMETRY_TIMEOUT))
)

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5050"))
