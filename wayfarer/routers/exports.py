import re
import uuid

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wayfarer.database import get_db
from wayfarer.dependencies import get_current_user
from wayfarer.models.trip import Trip
from wayfarer.models.user import User
from wayfarer.services.export_service import export_service

router = APIRouter()


@router.get("/trips/{trip_id}.pdf")
async def export_trip_pdf(
    trip_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = await db.execute(
        select(Trip).where(Trip.id == trip_id, Trip.user_id == user.id)
    )
    trip = result.scalar_one_or_none()
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")

    pdf = export_service.generate_trip_pdf(trip)
    filename = re.sub(r"[^A-Za-z0-9_-]+", "_", trip.trip_name).strip("_") or "trip"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}.pdf"'},
    )
