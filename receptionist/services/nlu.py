"""
Structured field extraction from caller utterances.

The extractor asks a chat-completions model to map one utterance onto the
booking slots using a strict JSON schema. The dialogue treats it as a black box:
any failure yields an empty extraction (``intent=other``, every field null) so
previously collected slots stay untouched.
"""

import json
import logging
from typing import Any, Dict, Iterable, Optional

import httpx
from pydantic import ValidationError

from receptionist.config import settings
from receptionist.config.constants import LOGGER_NAME
from receptionist.models.call_session import ExtractedFields, Intent

logger = logging.getLogger(LOGGER_NAME)

CHAT_COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"
REQUEST_TIMEOUT_SECONDS = 15.0

_NULLABLE_STRING = {"type": ["string", "null"]}

EXTRACTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "intent": {
            "type": "string",
            "enum": [intent.value for intent in Intent],
            "description": "User's intent",
        },
        "service": {**_NULLABLE_STRING, "description": "Service name if mentioned"},
        "date": {**_NULLABLE_STRING, "description": "YYYY-MM-DD if known"},
        "time": {**_NULLABLE_STRING, "description": "HH:mm (24h) if known"},
        "timezone": _NULLABLE_STRING,
        "name": _NULLABLE_STRING,
        "email": _NULLABLE_STRING,
        "phone": _NULLABLE_STRING,
        "confirmation": {"type": ["boolean", "null"]},
    },
    "required": [
        "intent", "service", "date", "time", "timezone",
        "name", "email", "phone", "confirmation",
    ],
    "additionalProperties": False,
}


def build_extraction_prompt(business_name: str, service_names: Iterable[str]) -> str:
    names = ", ".join(name for name in service_names if name) or "none"
    return (
        f"You extract structured fields from phone speech for {business_name}.\n"
        f"Services are: {names}.\n"
        "Rules:\n"
        '- If user says "intro", map to "30-minute intro call" if present.\n'
        '- If user says "1 on 1" or "personal training", map to the training service if present.\n'
        '- If user says something like "330 minute intro call", interpret as "30 minute intro call".\n'
        '- If user asks "what services", intent=ask_services.\n'
        '- If user asks "how much", intent=price.\n'
        "Return ONLY JSON that matches the schema."
    )


def parse_extraction(content: str, usage: Optional[Dict[str, Any]] = None) -> ExtractedFields:
    """
    Turn the model's JSON output into ``ExtractedFields``.

    An unknown intent is read as ``other`` rather than rejecting the whole extraction.

    Raises:
        ValueError: If the content is not a JSON object
        ValidationError: If a field has the wrong type
    """
    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError("Extraction is not a JSON object")
    if data.get("intent") not in {intent.value for intent in Intent}:
        data["intent"] = Intent.OTHER.value
    if usage:
        data["llm_tokens"] = int(usage.get("prompt_tokens") or 0) + int(usage.get("completion_tokens") or 0)
    return ExtractedFields(**data)


class NluExtractor:
    """
    Chat-completions backed field extractor.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.NLU_MODEL
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS)
        return self._client

    async def extract(
        self, business_name: str, service_names: Iterable[str], user_text: str
    ) -> ExtractedFields:
        """
        Extract booking fields from one caller utterance.

        Args:
            business_name: Name of the business, used to ground the prompt
            service_names: Names of the services the business offers
            user_text: What the caller said

        Returns:
            The extracted fields, or an empty extraction on any failure
        """
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": build_extraction_prompt(business_name, service_names)},
                {"role": "user", "content": user_text},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": "nlu_extract", "schema": EXTRACTION_SCHEMA},
            },
            "temperature": 0.1,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            response = await self.client.post(CHAT_COMPLETIONS_URL, json=body, headers=headers)
            response.raise_for_status()
            data = response.json()
            content = data["choices"][0]["message"]["content"]
            return parse_extraction(content, data.get("usage"))
        except httpx.HTTPError as e:
            logger.error(f"NLU request failed: {e!r}")
        except (KeyError, IndexError, TypeError, ValueError, ValidationError) as e:
            logger.error(f"NLU response could not be parsed: {e!r}")
        return ExtractedFields.empty()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
