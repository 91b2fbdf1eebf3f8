"""
Phone Receptionist Voice Agent - telephony media streams and booking dialogue

This application answers phone calls for small businesses. Call audio arrives
over a telephony media stream WebSocket and is bridged to a realtime speech
model; a separate text-turn endpoint drives a deterministic appointment-booking
dialogue against a scheduling API.

Architecture Overview:
- FastAPI server exposing the incoming-call webhook, the media stream WebSocket
  and the agent-chat endpoint
- Per-call duplex bridge to the realtime model with barge-in handling
- Slot-filling dialogue over a TTL-expiring per-call session store
- Best-effort telemetry to the core API

Key Components:
- bot: Media stream bridge, realtime model client, tool calls and dialogue resolver
- config: Application-wide configuration, constants, and logging setup
- handlers: The agent-chat turn pipeline
- models: Wire schemas, call session and the session store
- services: Booking, NLU, business profile, prompt and telemetry clients
- websocket_manager: Sets up one bridge per media stream connection

Getting Started:
1. Set up environment variables:
   - OPENAI_API_KEY: Your OpenAI API key
   - BOOKING_AGENT_API_KEY: Key for the scheduling API
   - CORE_API_URL: Core API for business profiles and telemetry (optional)
   - PORT: Port to run the server on (default 5050)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the phone number's voice webhook at:
   - http://your-server:5050/incoming-call?businessId=<handle>
"""

# This file is intentionally left empty
# It makes the receptionist directory a proper Python package
