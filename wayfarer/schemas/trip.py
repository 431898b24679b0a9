import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator


class Marker(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    label: str = ""


class TripPreferences(BaseModel):
    flexible_dates: bool = False
    max_stops: int = Field(default=2, ge=0)


class NotificationSettings(BaseModel):
    price_drop: bool = True
    email: bool = True


class ValidationStatus(BaseModel):
    is_valid: bool
    reason: str | None
    last_checked: datetime | None


class CreateTripRequest(BaseModel):
    trip_name: str = Field(min_length=1, max_length=255)
    origin: str
    origin_city_code: str = Field(min_length=3, max_length=10)
    destination: str
    destination_city_code: str = Field(min_length=3, max_length=10)
    start_date: date
    end_date: date
    budget: float = Field(gt=0)
    currency: str = "USD"
    preferences: TripPreferences = TripPreferences()
    notifications: NotificationSettings = NotificationSettings()
    markers: list[Marker] = []

    @model_validator(mode="after")
    def _check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class UpdateTripRequest(BaseModel):
    trip_name: str | None = Field(default=None, min_length=1, max_length=255)
    origin: str | None = None
    origin_city_code: str | None = None
    destination: str | None = None
    destination_city_code: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    budget: float | None = Field(default=None, gt=0)
    currency: str | None = None
    preferences: TripPreferences | None = None
    notifications: NotificationSettings | None = None


class TripResponse(BaseModel):
    id: uuid.UUID
    trip_name: str
    origin: str
    origin_city_code: str
    destination: str
    destination_city_code: str
    start_date: date
    end_date: date
    budget: float
    currency: str
    preferences: dict
    markers: list[dict]
    flight_options: list
    hotel_options: list
    notifications: NotificationSettings
    validation_status: ValidationStatus
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_trip(cls, trip) -> "TripResponse":
        return cls(
            id=trip.id,
            trip_name=trip.trip_name,
            origin=trip.origin,
            origin_city_code=trip.origin_city_code,
            destination=trip.destination,
            destination_city_code=trip.destination_city_code,
            start_date=trip.start_date,
            end_date=trip.end_date,
            budget=float(trip.budget or 0),
            currency=trip.currency,
            preferences=trip.preferences or {},
            markers=trip.markers or [],
            flight_options=trip.flight_options or [],
            hotel_options=trip.hotel_options or [],
            notifications=NotificationSettings(
                price_drop=trip.notify_price_drop, email=trip.notify_email
            ),
            validation_status=ValidationStatus(**trip.validation_status),
            created_at=trip.created_at,
            updated_at=trip.updated_at,
        )
