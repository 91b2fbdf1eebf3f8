"""
Business profile resolution.

A profile is the business record merged over its category template. Records come
from the core API when ``CORE_API_URL`` is configured and from the bundled
registry otherwise. Resolution raises ``BusinessProfileError`` on failure; the
turn pipeline substitutes ``fallback_profile`` so a call can still proceed.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from receptionist.config import settings
from receptionist.config.constants import DEFAULT_SERVICE_DURATION_MINUTES, LOGGER_NAME
from receptionist.models.business import BusinessProfile, Service

logger = logging.getLogger(LOGGER_NAME)

REQUEST_TIMEOUT_SECONDS = 5.0

CATEGORY_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "fitness": {
        "categoryName": "Fitness / Personal Training",
        "defaultGreeting": "You've reached {businessName}, a personal training studio.",
        "defaultServices": [
            {"id": "intro_call_30", "name": "30-minute intro call", "duration": 30},
            {"id": "pt_60", "name": "60-minute 1:1 training", "duration": 60},
        ],
        "bookingStyle": "Ask briefly about goals, then offer specific times based on availability.",
    },
    "car_wash": {
        "categoryName": "Car Wash / Detailing",
        "defaultGreeting": "You've reached {businessName}, your local car wash and detailing service.",
        "defaultServices": [
            {"id": "exterior", "name": "Exterior wash", "duration": 30},
            {"id": "full_detail", "name": "Full interior & exterior detail", "duration": 120},
        ],
        "bookingStyle": (
            "Ask for vehicle type, preferred day, and morning/afternoon. "
            "Keep things fast and transactional."
        ),
    },
    "salon": {
        "categoryName": "Hair / Beauty Salon",
        "defaultGreeting": "You've reached {businessName}, how can we make you feel great today?",
        "defaultServices": [
            {"id": "haircut", "name": "Haircut", "duration": 45},
            {"id": "color", "name": "Color treatment", "duration": 120},
        ],
        "bookingStyle": "Confirm service type, stylist preference if relevant, and timing.",
    },
    "other": {
        "categoryName": "General Business",
        "defaultGreeting": "You've reached {businessName}, how can I help you today?",
        "defaultServices": [],
        "bookingStyle": "Confirm service, date, and time before booking.",
    },
}

BUSINESSES: Dict[str, Dict[str, Any]] = {
    "waismofit": {
        "id": "waismofit",
        "name": "Wais Mo Fitness",
        "category": "fitness",
        "timezone": "America/Toronto",
        "location": "Toronto, Canada",
        "services": [
            {"id": "intro_call_30", "name": "30-minute intro call", "duration": 30, "price": 0},
            {"id": "pt_60", "name": "60-minute 1:1 training", "duration": 60, "price": 120},
        ],
        "greetingOverride": (
            "You've reached Wais Mo Fitness. I'm the AI assistant. How can I help you today?"
        ),
        "policies": {
            "cancellationHours": 24,
            "latePolicy": "If you're more than 15 minutes late, the session may need to be rescheduled.",
            "notes": "Remote and in-person options are available. Payment is handled after booking.",
        },
    },
    "cutzbarber": {
        "id": "cutzbarber",
        "name": "Cutz Barber Shop",
        "category": "salon",
        "timezone": "America/Toronto",
        "location": "Downtown Toronto",
        "services": [
            {"id": "mens_cut", "name": "Men's haircut", "duration": 30, "price": 35},
            {"id": "fade_beard", "name": "Skin fade + beard trim", "duration": 45, "price": 55},
        ],
        "policies": {
            "cancellationHours": 12,
            "latePolicy": "If you're more than 10 minutes late, we may need to shorten or reschedule.",
            "notes": "Cash or card accepted. Walk-ins welcome but appointments preferred.",
        },
    },
}

GENERIC_SERVICE = {
    "id": "generic",
    "name": "appointment",
    "duration": DEFAULT_SERVICE_DURATION_MINUTES,
    "durationMinutes": DEFAULT_SERVICE_DURATION_MINUTES,
}


class BusinessProfileError(Exception):
    """Raised when a business profile cannot be resolved."""


def merge_with_template(business: Dict[str, Any]) -> BusinessProfile:
    """
    Merge a business record over its category template.

    Raises:
        BusinessProfileError: If the merged record is not a valid profile
    """
    template = CATEGORY_TEMPLATES.get(business.get("category"), CATEGORY_TEMPLATES["other"])
    name = business.get("name") or business.get("id") or "this business"
    merged = {
        "category": "other",
        "bookingStyle": template["bookingStyle"],
        **{k: v for k, v in business.items() if v is not None},
        "name": name,
        "categoryName": template["categoryName"],
    }
    merged["services"] = business.get("services") or template["defaultServices"]
    merged["greeting"] = (
        business.get("greetingOverride")
        or business.get("greeting")
        or template["defaultGreeting"].format(businessName=name)
    )
    try:
        return BusinessProfile(**merged)
    except ValidationError as e:
        raise BusinessProfileError(f"Invalid business record for {name}: {e}") from e


def fallback_profile(handle: Optional[str]) -> BusinessProfile:
    """Minimal profile with a single generic 30-minute service."""
    return BusinessProfile(
        id=handle,
        name=handle or "this business",
        services=[Service(**GENERIC_SERVICE)],
        timezone=settings.BUSINESS_TIMEZONE,
    )


class BusinessProfileResolver:
    """
    Looks up business profiles by handle.
    """

    def __init__(
        self,
        core_api_url: Optional[str] = None,
        registry: Optional[Dict[str, Dict[str, Any]]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            core_api_url: Root URL of the core API; the local registry is used when None
            registry: Business records keyed by handle for local resolution
            client: Shared HTTP client; one is created lazily if omitted
        """
        self.core_api_url = core_api_url.rstrip("/") if core_api_url else None
        self.registry = BUSINESSES if registry is None else registry
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS)
        return self._client

    async def get(self, handle: str) -> BusinessProfile:
        """
        Resolve the profile for a business handle.

        Raises:
            BusinessProfileError: If the business is unknown or the lookup fails
        """
        if not self.core_api_url:
            business = self.registry.get(handle)
            if business is None:
                raise BusinessProfileError(f"Unknown business: {handle}")
            return merge_with_template(business)

        url = f"{self.core_api_url}/api/businesses/{handle}"
        try:
            response = await self.client.get(url)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise BusinessProfileError(f"Failed to fetch business {handle}: {e!r}") from e

        if not isinstance(data, dict) or not data.get("ok") or not isinstance(data.get("business"), dict):
            error = data.get("error") if isinstance(data, dict) else None
            raise BusinessProfileError(error or "Failed to fetch business")
        return merge_with_template(data["business"])

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
