"""
Handlers module for the receptionist's request/response endpoints.

Key components:
- agent_chat: The text-turn pipeline behind ``POST /api/agent-chat``. Each turn
  loads the business profile, extracts fields from the caller's utterance,
  merges them into the call's session, decides the next step and, when every
  slot is known, checks availability and books.

Usage example:
```python
from receptionist.handlers.agent_chat import create_turn_processor
from receptionist.models.agent_chat_schemas import AgentChatRequest

processor = create_turn_processor()

async def turn(body):
    request = AgentChatRequest(**body)
    try:
        return (await processor.handle_turn(request)).model_dump()
    except Exception as e:
        return processor.handle_failure(request.call_id, e).to_dict()
```
"""

# Handlers module initialization
