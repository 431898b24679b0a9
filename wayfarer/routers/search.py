"""Search router: location lookup and live flight + hotel package recommendation."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wayfarer.config import settings
from wayfarer.data.currency import format_price
from wayfarer.database import get_db
from wayfarer.dependencies import get_current_user
from wayfarer.models.trip import Trip
from wayfarer.models.user import User
from wayfarer.schemas.search import (
    LocationResponse,
    PackageSearchParams,
    PackageSearchResponse,
    RecommendedPackage,
)
from wayfarer.services.amadeus_client import AmadeusError, amadeus_client
from wayfarer.services.offers import flight_currency, flight_price, hotel_price
from wayfarer.services.package_scorer import find_best_package

logger = logging.getLogger(__name__)

router = APIRouter()

SEARCH_MAX_FLIGHTS = 12


def _readable(price: float | None) -> float | None:
    """Positive provider price, else None (rendered as N/A)."""
    return price if price and price > 0 else None


@router.get("/locations", response_model=list[LocationResponse])
async def search_locations(
    keyword: str = Query(..., min_length=2),
    user: User = Depends(get_current_user),
):
    try:
        return await amadeus_client.search_locations(keyword)
    except AmadeusError as e:
        logger.warning(f"Location search failed: kind={e.kind} status={e.status_code}")
        raise HTTPException(status_code=502, detail=e.message)


@router.get("/packages", response_model=PackageSearchResponse)
async def search_packages(
    params: PackageSearchParams = Depends(),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Search live offers and recommend the best flight + hotel package for the budget."""
    if params.end_date < params.start_date:
        raise HTTPException(status_code=400, detail="end_date must be on or after start_date")

    try:
        flights = await amadeus_client.search_flight_offers(
            origin=params.origin_city_code.upper(),
            destination=params.destination_city_code.upper(),
            departure_date=params.start_date,
            return_date=params.end_date,
            adults=1,
            max_results=SEARCH_MAX_FLIGHTS,
        )
    except AmadeusError as e:
        logger.warning(f"Package search failed: kind={e.kind} status={e.status_code} message={e.message}")
        raise HTTPException(status_code=502, detail=f"API error: {e.message}")

    try:
        hotels = await amadeus_client.search_hotels_by_city(params.destination_city_code.upper())
    except AmadeusError as e:
        # Hotel list is optional for a recommendation
        logger.warning(f"Hotel list failed: kind={e.kind} status={e.status_code}")
        hotels = []

    best = find_best_package(flights, hotels, params.budget)
    currency = flight_currency(flights[0]) if flights else settings.default_currency

    recommended = None
    if best:
        f_price = _readable(flight_price(best.flight))
        h_price = _readable(hotel_price(best.hotel))
        recommended = RecommendedPackage(
            **best.to_dict(),
            flight_price=f_price,
            hotel_price=h_price,
            currency=currency,
        )
        tip = (
            f"Recommended: flight {format_price(f_price, currency)} "
            f"+ hotel {format_price(h_price, currency)}"
        )
    else:
        tip = f"No package fits budget {format_price(params.budget, currency)}"

    snapshot_flights = flights[: settings.snapshot_limit]
    snapshot_hotels = hotels[: settings.snapshot_limit]

    if params.trip_id:
        result = await db.execute(
            select(Trip).where(Trip.id == params.trip_id, Trip.user_id == user.id)
        )
        trip = result.scalar_one_or_none()
        if not trip:
            raise HTTPException(status_code=404, detail="Trip not found")
        trip.flight_options = snapshot_flights
        trip.hotel_options = snapshot_hotels
        await db.commit()

    return PackageSearchResponse(
        tip=tip,
        recommended=recommended,
        flights=snapshot_flights,
        hotels=snapshot_hotels,
        currency=currency,
    )
