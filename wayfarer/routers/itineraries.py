"""Itineraries router: the owner's day-by-day plans."""

import uuid
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wayfarer.database import get_db
from wayfarer.dependencies import get_current_user
from wayfarer.models.itinerary import Itinerary
from wayfarer.models.user import User
from wayfarer.schemas.itinerary import CreateItineraryRequest, ItineraryResponse

router = APIRouter()


@router.get("", response_model=list[ItineraryResponse])
async def list_itineraries(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = await db.execute(
        select(Itinerary).where(Itinerary.user_id == user.id).order_by(Itinerary.start_date)
    )
    return [ItineraryResponse.from_itinerary(i) for i in result.scalars().all()]


@router.get("/{itinerary_id}", response_model=ItineraryResponse)
async def get_itinerary(
    itinerary_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = await db.execute(
        select(Itinerary).where(Itinerary.id == itinerary_id, Itinerary.user_id == user.id)
    )
    itinerary = result.scalar_one_or_none()
    if not itinerary:
        raise HTTPException(status_code=404, detail="Itinerary not found")
    return ItineraryResponse.from_itinerary(itinerary)


@router.post("", status_code=201, response_model=ItineraryResponse)
async def create_itinerary(
    req: CreateItineraryRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    itinerary = Itinerary(
        user_id=user.id,
        trip_name=req.trip_name,
        destination=req.destination,
        city_code=req.city_code.upper() if req.city_code else None,
        start_date=req.start_date,
        end_date=req.end_date,
        budget=Decimal(str(req.budget)),
        # JSON columns need plain values: dates and datetimes as ISO strings
        days=[day.model_dump(mode="json") for day in req.days],
        markers=[m.model_dump() for m in req.markers],
        preferences=req.preferences,
    )
    db.add(itinerary)
    await db.commit()
    await db.refresh(itinerary)
    return ItineraryResponse.from_itinerary(itinerary)
