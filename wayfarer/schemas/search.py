import uuid
from datetime import date

from pydantic import BaseModel, Field


class LocationResponse(BaseModel):
    name: str | None
    iata_code: str | None


class PackageSearchParams(BaseModel):
    origin_city_code: str = Field(min_length=3, max_length=10)
    destination_city_code: str = Field(min_length=3, max_length=10)
    start_date: date
    end_date: date
    budget: float = Field(default=1000, gt=0)
    trip_id: uuid.UUID | None = None


class RecommendedPackage(BaseModel):
    flight: dict
    hotel: dict
    combined_price: float
    combined_score: float
    fits_budget: bool
    flight_score: float
    hotel_score: float
    flight_price: float | None
    hotel_price: float | None
    currency: str


class PackageSearchResponse(BaseModel):
    tip: str
    recommended: RecommendedPackage | None
    flights: list[dict]
    hotels: list[dict]
    currency: str
