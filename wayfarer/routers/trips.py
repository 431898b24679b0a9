"""Trips router: CRUD for the owner's trips, map markers and on-demand price checks."""

import logging
import uuid
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wayfarer.database import get_db
from wayfarer.dependencies import get_current_user
from wayfarer.jobs import price_check_guard
from wayfarer.models.trip import Trip
from wayfarer.models.user import User
from wayfarer.schemas.trip import CreateTripRequest, Marker, TripResponse, UpdateTripRequest
from wayfarer.services.price_monitor_service import price_monitor_service

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_owned_trip(db: AsyncSession, trip_id: uuid.UUID, user: User) -> Trip:
    result = await db.execute(
        select(Trip).where(Trip.id == trip_id, Trip.user_id == user.id)
    )
    trip = result.scalar_one_or_none()
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip


@router.get("", response_model=list[TripResponse])
async def list_trips(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = await db.execute(
        select(Trip).where(Trip.user_id == user.id).order_by(Trip.start_date)
    )
    return [TripResponse.from_trip(t) for t in result.scalars().all()]


@router.post("", status_code=201, response_model=TripResponse)
async def create_trip(
    req: CreateTripRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    trip = Trip(
        user_id=user.id,
        trip_name=req.trip_name,
        origin=req.origin,
        origin_city_code=req.origin_city_code.upper(),
        destination=req.destination,
        destination_city_code=req.destination_city_code.upper(),
        start_date=req.start_date,
        end_date=req.end_date,
        budget=Decimal(str(req.budget)),
        currency=req.currency.upper(),
        preferences=req.preferences.model_dump(),
        markers=[m.model_dump() for m in req.markers],
        flight_options=[],
        hotel_options=[],
        notify_price_drop=req.notifications.price_drop,
        notify_email=req.notifications.email,
    )
    db.add(trip)
    await db.commit()
    await db.refresh(trip)
    return TripResponse.from_trip(trip)


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    trip = await _get_owned_trip(db, trip_id, user)
    return TripResponse.from_trip(trip)


@router.patch("/{trip_id}", response_model=TripResponse)
async def update_trip(
    trip_id: uuid.UUID,
    req: UpdateTripRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    trip = await _get_owned_trip(db, trip_id, user)
    changes = req.model_dump(exclude_unset=True)

    notifications = changes.pop("notifications", None)
    if notifications is not None:
        trip.notify_price_drop = notifications["price_drop"]
        trip.notify_email = notifications["email"]
    if "budget" in changes and changes["budget"] is not None:
        changes["budget"] = Decimal(str(changes["budget"]))
    for code_field in ("origin_city_code", "destination_city_code", "currency"):
        if changes.get(code_field):
            changes[code_field] = changes[code_field].upper()

    for key, value in changes.items():
        if value is not None:
            setattr(trip, key, value)

    if trip.end_date < trip.start_date:
        raise HTTPException(status_code=400, detail="end_date must be on or after start_date")

    await db.commit()
    await db.refresh(trip)
    return TripResponse.from_trip(trip)


@router.delete("/{trip_id}")
async def delete_trip(
    trip_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    trip = await _get_owned_trip(db, trip_id, user)
    await db.delete(trip)
    await db.commit()
    return {"deleted": True}


@router.get("/{trip_id}/markers")
async def list_markers(
    trip_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    trip = await _get_owned_trip(db, trip_id, user)
    return {"markers": trip.markers or []}


@router.post("/{trip_id}/markers", status_code=201)
async def add_marker(
    trip_id: uuid.UUID,
    marker: Marker,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    trip = await _get_owned_trip(db, trip_id, user)
    # Reassign so the JSON column is flagged dirty
    trip.markers = [*(trip.markers or []), marker.model_dump()]
    await db.commit()
    return {"markers": trip.markers}


@router.post("/{trip_id}/price-check")
async def check_trip_price(
    trip_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Run the price monitor for one trip now."""
    await _get_owned_trip(db, trip_id, user)

    if not price_check_guard.try_acquire():
        raise HTTPException(status_code=409, detail="A price check is already running")
    try:
        trip = await price_monitor_service.load_trip(db, trip_id)
        if not trip.flight_options:
            raise HTTPException(status_code=400, detail="Trip has no stored flight options")
        outcome = await price_monitor_service.check_trip(db, trip)
    finally:
        price_check_guard.release()

    result = outcome.result
    return {
        "trip_id": str(outcome.trip_id),
        "status": outcome.status,
        "reason": outcome.reason,
        "notified": outcome.notified,
        "price": {
            "old_price": result.old_price,
            "new_price": result.new_price,
            "currency": result.currency,
            "percentage_change": round(result.percentage_change, 2),
            "price_dropped": result.price_dropped,
        } if result else None,
    }
