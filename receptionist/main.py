"""
FastAPI server for the phone receptionist voice agent.

This module initializes and configures the FastAPI application. It exposes:
- ``/incoming-call``: the telephony webhook answering with TwiML that connects
  the call's audio to ``/media-stream``
- ``/media-stream``: the WebSocket carrying the call's audio, bridged to the
  realtime speech model
- ``/api/agent-chat``: the text-turn booking dialogue
- ``/``, ``/health`` and ``/api/ping`` for monitoring
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode
from xml.sax.saxutils import escape

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from receptionist.config import settings
from receptionist.config.logging_config import configure_logging
from receptionist.handlers.agent_chat import create_turn_processor
from receptionist.models.agent_chat_schemas import AgentChatError, AgentChatRequest
from receptionist.websocket_manager import MediaStreamManager

# Configure logging
logger = configure_logging()

SERVICE_NAME = "receptionist-voice-agent"
TWIML_VOICE = "Google.en-US-Chirp3-HD-Aoede"

# Shared collaborators for both paths
turn_processor = create_turn_processor()
media_stream_manager = MediaStreamManager(turn_processor.profiles, turn_processor.booking)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await media_stream_manager.close_all()
    await turn_processor.aclose()
    logger.info("Server shut down")


# Create FastAPI application
app = FastAPI(
    title="Phone Receptionist Voice Agent",
    description="Telephony media streams bridged to a realtime speech model, plus a booking dialogue",
    version="1.0.0",
    lifespan=lifespan,
)


def validation_message(error: ValidationError) -> str:
    """Human-readable message for the first validation problem."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if first.get("type") == "missing":
        return f"{location} is required"
    context = first.get("ctx") or {}
    if "error" in context:
        return str(context["error"])
    return f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")


def build_twiml(stream_url: str) -> str:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<Response>
    <Say voice="{TWIML_VOICE}">Please wait while we connect your call to the A. I. voice assistant.</Say>
    <Pause length="1"/>
    <Say voice="{TWIML_VOICE}">O.K. you can start talking!</Say>
    <Connect>
        <Stream url="{escape(stream_url)}" />
    </Connect>
</Response>"""


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API."""
    return {
        "ok": True,
        "service": SERVICE_NAME,
        "endpoints": {
            "/incoming-call": "Telephony webhook returning TwiML",
            "/media-stream": "WebSocket endpoint for call audio",
            "/api/agent-chat": "Text-turn booking dialogue",
            "/health": "Health check endpoint",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers and monitoring tools."""
    return {"ok": True, "activeCalls": len(media_stream_manager.active_bridges)}


@app.get("/api/ping")
async def ping():
    return {
        "ok": True,
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "port": settings.PORT,
    }


@app.post("/api/agent-chat")
async def agent_chat(request: Request):
    """Process one caller utterance of the booking dialogue.

    Returns:
        200 with the reply and session state, 400 when ``businessId`` or the
        caller text is missing, 500 with a fixed apology on any other failure.
    """
    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        logger.warning("agent-chat body is not a JSON object")
        return JSONResponse(status_code=400, content=AgentChatError(error="Request body must be a JSON object").to_dict())

    try:
        turn = AgentChatRequest(**body)
    except ValidationError as e:
        message = validation_message(e)
        logger.warning(f"Invalid agent-chat request: {message}")
        return JSONResponse(status_code=400, content=AgentChatError(error=message).to_dict())

    try:
        response = await turn_processor.handle_turn(turn)
    except Exception as e:
        failure = turn_processor.handle_failure(turn.call_id, e)
        return JSONResponse(status_code=500, content=failure.to_dict())
    return response.model_dump(mode="json")


@app.api_route("/incoming-call", methods=["GET", "POST"])
async def incoming_call(request: Request):
    """Answer an incoming call with TwiML that streams its audio to ``/media-stream``."""
    form = await request.form() if request.method == "POST" else {}
    query = request.query_params

    caller_phone = form.get("From") or query.get("From")
    business_id = (
        query.get("businessId")
        or form.get("businessId")
        or query.get("handle")
        or form.get("handle")
        or settings.DEFAULT_BUSINESS_HANDLE
    )

    params = {}
    if caller_phone:
        params["callerPhone"] = caller_phone
    params["businessId"] = business_id
    host = request.headers.get("host", request.url.netloc)
    stream_url = f"wss://{host}/media-stream?{urlencode(params)}"
    logger.info(f"Incoming call for business {business_id}")

    return Response(content=build_twiml(stream_url), media_type="text/xml")


@app.websocket("/media-stream")
async def media_stream(
    websocket: WebSocket,
    businessId: Optional[str] = None,
    handle: Optional[str] = None,
    callerPhone: Optional[str] = None,
):
    """WebSocket endpoint carrying one call's audio for its whole duration."""
    await media_stream_manager.handle_websocket(
        websocket,
        business_id=businessId or handle,
        caller_phone=callerPhone,
    )
