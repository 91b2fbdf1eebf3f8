"""
Business profile models.

A profile is a business record merged over the defaults of its category
template. Service durations come from external data and may be missing or
invalid, so they are kept loosely typed here and normalized by the dialogue.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Service(BaseModel):
    """A bookable service offered by a business."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None
    duration: Optional[Any] = Field(None, description="Length in minutes")
    durationMinutes: Optional[Any] = None
    price: Optional[float] = None


class BusinessProfile(BaseModel):
    """Everything the receptionist knows about a business."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: str
    category: str = "other"
    categoryName: str = "General Business"
    timezone: Optional[str] = None
    location: Optional[str] = None
    services: List[Service] = Field(default_factory=list)
    greeting: Optional[str] = None
    bookingStyle: str = "Confirm service, date, and time before booking."
    policies: Dict[str, Any] = Field(default_factory=dict)
