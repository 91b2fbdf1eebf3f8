"""
Bot module for the phone receptionist.

This module holds the two conversational cores of the service.

Key components:
- MediaStreamBridge: per-call duplex relay between the telephony media stream and
  the realtime speech model, with barge-in truncation and playback tracking.
- RealtimeClient: WebSocket client for the realtime speech model.
- ToolCallHandler: runs the booking tools the realtime model asks for.
- dialog_resolver: deterministic slot-filling decisions for the text-turn path.

Usage example:
```python
from receptionist.bot import MediaStreamBridge, RealtimeClient, ToolCallHandler

async def serve_call(websocket, instructions, booking):
    bridge = MediaStreamBridge(
        websocket,
        RealtimeClient(api_key, model),
        ToolCallHandler(booking, caller_phone="+15550100"),
        instructions,
    )
    await bridge.run()
```
"""

from receptionist.bot.media_stream_bridge import MediaStreamBridge
from receptionist.bot.realtime_api import RealtimeClient
from receptionist.bot.tool_calls import ToolCallHandler

__all__ = ["MediaStreamBridge", "RealtimeClient", "ToolCallHandler"]
