"""
Best-effort telemetry emission to the call collector.

Transcript, tool-call and usage events are posted to the core API in the
background. Emission never raises and never delays the caller-facing response:
``emit`` schedules a detached task and returns immediately. Each delivery is
bounded by a short timeout and retried exactly once on timeout or network
failure; anything else, including a non-2xx response, is logged and dropped.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

import httpx

from receptionist.config.constants import (
    LOGGER_NAME,
    TELEMETRY_MAX_RETRIES,
    TELEMETRY_TIMEOUT_SECONDS,
    TELEMETRY_TOOL_PATH,
    TELEMETRY_TRANSCRIPT_PATH,
    TELEMETRY_USAGE_PATH,
)
from receptionist.models.idempotency import event_id

logger = logging.getLogger(LOGGER_NAME)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class TelemetrySidecar:
    """
    Fire-and-forget poster for call telemetry.

    Outstanding deliveries are tracked so they are not garbage collected while
    running and so shutdown (or a test) can wait for them with ``drain``.
    """

    def __init__(
        self,
        base_url: Optional[str],
        timeout: float = TELEMETRY_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: Root URL of the collector; None disables emission
            timeout: Upper bound in seconds for a single delivery attempt
            client: Shared HTTP client; one is created lazily if omitted
        """
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._pending: Set[asyncio.Task] = set()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    @property
    def pending(self) -> int:
        return len(self._pending)

    def _url(self, endpoint: str) -> Optional[str]:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        if not self.base_url:
            return None
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def emit(self, endpoint: str, payload: Dict[str, Any]) -> Optional[asyncio.Task]:
        """
        Schedule delivery of ``payload`` to ``endpoint`` and return at once.

        Args:
            endpoint: Absolute URL, or a path relative to the collector base URL
            payload: JSON-serializable event body

        Returns:
            The delivery task, or None if nothing was scheduled
        """
        url = self._url(endpoint)
        if url is None:
            logger.debug(f"Telemetry disabled, dropping event for {endpoint}")
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, dropping telemetry for {url}")
            return None

        task = loop.create_task(self._deliver(url, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, url: str, payload: Dict[str, Any]) -> bool:
        attempt = 0
        while True:
            try:
                response = await asyncio.wait_for(
                    self.client.post(url, json=payload), timeout=self.timeout
                )
            except (asyncio.TimeoutError, httpx.TransportError) as e:
                if attempt < TELEMETRY_MAX_RETRIES:
                    attempt += 1
                    logger.warning(f"Retrying telemetry POST to {url} (attempt {attempt}): {e!r}")
                    continue
                logger.error(f"Failed to POST telemetry to {url}: {e!r}")
                return False
            except Exception as e:
                logger.error(f"Failed to POST telemetry to {url}: {e!r}")
                return False

            if response.is_success:
                return True
            logger.error(
                f"Telemetry POST to {url} returned HTTP {response.status_code}: {response.text[:200]}"
            )
            return False

    def transcript(self, call_id: str, role: str, text: str, turn_index: int) -> Optional[asyncio.Task]:
        """Emit one transcript line for ``role`` ("caller" or "agent")."""
        return self.emit(TELEMETRY_TRANSCRIPT_PATH, {
            "turnId": event_id(call_id, role, turn_index),
            "callId": call_id,
            "role": role,
            "text": text,
            "turnIndex": turn_index,
            "timestamp": utc_timestamp(),
        })

    def tool(
        self,
        tool_event_id: str,
        call_id: str,
        tool_name: str,
        tool_index: int,
        tool_input: Dict[str, Any],
        tool_output: Any,
    ) -> Optional[asyncio.Task]:
        """Emit the input and output of one external tool call."""
        return self.emit(TELEMETRY_TOOL_PATH, {
            "eventId": tool_event_id,
            "callId": call_id,
            "toolName": tool_name,
            "toolIndex": tool_index,
            "input": tool_input,
            "output": tool_output,
            "timestamp": utc_timestamp(),
        })

    def usage(self, call_id: str, llm_tokens: int, tts_characters: int) -> Optional[asyncio.Task]:
        """Emit usage metering deltas for one turn."""
        return self.emit(TELEMETRY_USAGE_PATH, {
            "callId": call_id,
            "llmTokens": llm_tokens,
            "ttsCharacters": tts_characters,
            "timestamp": utc_timestamp(),
        })

    async def drain(self) -> None:
        """Wait for every outstanding delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
