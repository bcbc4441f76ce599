"""Pydantic models for booking requests and responses.

Field names on the wire are camelCase to match the front-end client.
Every request field is optional at the model level so that missing values
are reported by the gateway as a 400 with a domain message rather than by
FastAPI's generic 422.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AvailabilityRequest(BaseModel):
    """Body of ``POST /api/check-availability``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    start_date_time_iso: Optional[str] = Field(default=None, alias="startDateTimeISO")


class BookingRequest(BaseModel):
    """Body of ``POST /api/create-booking``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    summary: Optional[str] = None
    start_date_time_iso: Optional[str] = Field(default=None, alias="startDateTimeISO")
    end_date_time_iso: Optional[str] = Field(default=None, alias="endDateTimeISO")
    description: Optional[str] = None
    email: Optional[str] = None


class AvailabilityResponse(BaseModel):
    available: bool


class BookingResponse(BaseModel):
    """Result returned after a successful booking."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    event_link: str = Field(default="", alias="eventLink")
    event_id: str = Field(alias="eventId")


class ErrorResponse(BaseModel):
    error: str
