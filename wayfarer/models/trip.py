import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wayfarer.database import Base, JSONType


class Trip(Base):
    __tablename__ = "trips"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    trip_name: Mapped[str] = mapped_column(String(255), nullable=False)
    origin: Mapped[str] = mapped_column(String(100), nullable=False)
    origin_city_code: Mapped[str] = mapped_column(String(10), nullable=False)
    destination: Mapped[str] = mapped_column(String(100), nullable=False)
    destination_city_code: Mapped[str] = mapped_column(String(10), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    budget: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    preferences: Mapped[dict] = mapped_column(
        JSONType, default=lambda: {"flexible_dates": False, "max_stops": 2}
    )
    markers: Mapped[list] = mapped_column(JSONType, default=list)

    # Last offer snapshot used as the price-drop baseline
    flight_options: Mapped[list] = mapped_column(JSONType, default=list)
    hotel_options: Mapped[list] = mapped_column(JSONType, default=list)

    notify_price_drop: Mapped[bool] = mapped_column(Boolean, default=True)
    notify_email: Mapped[bool] = mapped_column(Boolean, default=True)

    # Written only by the price monitor
    validation_is_valid: Mapped[bool] = mapped_column(Boolean, default=True)
    validation_reason: Mapped[str | None] = mapped_column(Text)
    validation_checked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped["User"] = relationship(back_populates="trips")  # noqa: F821

    @property
    def validation_status(self) -> dict:
        return {
            "is_valid": self.validation_is_valid,
            "reason": self.validation_reason,
            "last_checked": self.validation_checked_at,
        }

    def mark_invalid(self, reason: str, checked_at: datetime) -> None:
        self.validation_is_valid = False
        self.validation_reason = reason
        self.validation_checked_at = checked_at

    def mark_valid(self, checked_at: datetime) -> None:
        self.validation_is_valid = True
        self.validation_reason = None
        self.validation_checked_at = checked_at
