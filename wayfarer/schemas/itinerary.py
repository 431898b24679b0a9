import datetime as dt
import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from wayfarer.schemas.trip import Marker

EventKind = Literal["flight", "hotel", "activity", "dining", "transport"]


class EventLocation(BaseModel):
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    address: str = ""


class ItineraryEvent(BaseModel):
    kind: EventKind
    title: str = Field(min_length=1, max_length=255)
    start_time: datetime
    end_time: datetime | None = None
    cost: float = Field(default=0, ge=0)
    location: EventLocation | None = None
    meta: dict = {}

    @model_validator(mode="after")
    def _check_times(self):
        if self.end_time and self.end_time < self.start_time:
            raise ValueError("end_time must be on or after start_time")
        return self


class ItineraryDay(BaseModel):
    date: dt.date
    events: list[ItineraryEvent] = []


class CreateItineraryRequest(BaseModel):
    trip_name: str = Field(min_length=1, max_length=255)
    destination: str = Field(min_length=1, max_length=100)
    city_code: str | None = Field(default=None, min_length=3, max_length=10)
    start_date: date
    end_date: date
    budget: float = Field(default=0, ge=0)
    days: list[ItineraryDay] = []
    markers: list[Marker] = []
    preferences: dict = {}

    @model_validator(mode="after")
    def _check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        for day in self.days:
            if not self.start_date <= day.date <= self.end_date:
                raise ValueError(f"day {day.date} is outside the itinerary dates")
        return self


class ItineraryResponse(BaseModel):
    id: uuid.UUID
    trip_name: str
    destination: str
    city_code: str | None
    start_date: date
    end_date: date
    budget: float
    total_cost: float
    days: list[dict]
    markers: list[dict]
    preferences: dict
    created_at: datetime | None

    @classmethod
    def from_itinerary(cls, itinerary) -> "ItineraryResponse":
        return cls(
            id=itinerary.id,
            trip_name=itinerary.trip_name,
            destination=itinerary.destination,
            city_code=itinerary.city_code,
            start_date=itinerary.start_date,
            end_date=itinerary.end_date,
            budget=float(itinerary.budget or 0),
            total_cost=round(itinerary.total_cost, 2),
            days=itinerary.days or [],
            markers=itinerary.markers or [],
            preferences=itinerary.preferences or {},
            created_at=itinerary.created_at,
        )
