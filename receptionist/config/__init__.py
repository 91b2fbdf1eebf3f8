"""
Configuration module for the receptionist voice agent.

This module provides centralized configuration management for the entire application,
including constants, logging setup, and environment-based settings.

Key components:
- constants: Protocol event names, telemetry paths and dialogue fallbacks shared
  across modules.
- settings: Values read from the environment (and an optional ``.env`` file) such
  as API keys, base URLs, the session TTL and the server bind address.
- logging_config: A consistent logging setup with console and rotating file output.

Usage examples:
```python
from receptionist.config.constants import LOGGER_NAME, REALTIME_SPEECH_STARTED
from receptionist.config import settings

from receptionist.config.logging_config import configure_logging
logger = configure_logging()
logger.info(f"Realtime model: {settings.REALTIME_MODEL}")
```
"""

# Config module initialization
