"""Price monitor: re-prices stored trip snapshots and emails on price drops."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wayfarer.config import settings
from wayfarer.data.currency import format_price
from wayfarer.models.trip import Trip
from wayfarer.models.user import User
from wayfarer.services.amadeus_client import AmadeusClient, AmadeusError, amadeus_client
from wayfarer.services.email_templates import PRICE_DROP_TEMPLATE, render_template
from wayfarer.services.mailbox_service import MailboxService, mailbox_service
from wayfarer.services.offers import comparable_prices, flight_currency
from wayfarer.services.trip_dates import format_date_range, validate_trip_dates

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.05


@dataclass
class PriceCheckResult:
    old_price: float
    new_price: float
    currency: str
    percentage_change: float
    price_dropped: bool

    @property
    def amount_saved(self) -> float:
        return self.old_price - self.new_price


@dataclass
class TripCheckOutcome:
    trip_id: uuid.UUID
    status: str  # invalid | provider_error | no_offers | no_comparison | no_drop | price_drop
    reason: str | None = None
    result: PriceCheckResult | None = None
    notified: bool = False


@dataclass
class PriceCheckSummary:
    checked: int = 0
    notified: int = 0
    invalid: int = 0
    failed: int = 0
    outcomes: list[TripCheckOutcome] = field(default_factory=list)


def compare_prices(
    old_offers: list | None,
    new_offers: list | None,
    threshold: float = DEFAULT_THRESHOLD,
) -> PriceCheckResult | None:
    """Compare the cheapest old offer with the cheapest new one.

    Only positive prices count. Returns ``None`` when either side has no
    usable price. ``price_dropped`` is true when the new minimum is at least
    ``threshold`` (fraction) cheaper than the old one.
    """
    old_prices = comparable_prices(old_offers)
    new_prices = comparable_prices(new_offers)
    if not old_prices or not new_prices:
        return None

    old_price = min(old_prices)
    new_price = min(new_prices)
    percentage_change = (old_price - new_price) / old_price * 100

    return PriceCheckResult(
        old_price=old_price,
        new_price=new_price,
        currency=flight_currency(new_offers[0]),
        percentage_change=percentage_change,
        price_dropped=percentage_change >= threshold * 100,
    )


class PriceMonitorService:
    """Scheduled price-drop check over every trip with alerts enabled."""

    def __init__(
        self,
        client: AmadeusClient | None = None,
        mailbox: MailboxService | None = None,
        threshold: float | None = None,
        snapshot_limit: int | None = None,
    ):
        self.client = client or amadeus_client
        self.mailbox = mailbox or mailbox_service
        self.threshold = settings.price_drop_threshold if threshold is None else threshold
        self.snapshot_limit = snapshot_limit or settings.snapshot_limit

    async def find_eligible_trip_ids(self, db: AsyncSession, today: date) -> list[uuid.UUID]:
        result = await db.execute(
            select(Trip.id, Trip.flight_options)
            .where(
                Trip.notify_price_drop == True,  # noqa: E712
                Trip.notify_email == True,  # noqa: E712
                Trip.end_date >= today,
            )
            .order_by(Trip.created_at, Trip.id)
        )
        # Trips without a stored flight snapshot have no baseline to compare against
        return [trip_id for trip_id, flight_options in result.all() if flight_options]

    async def load_trip(self, db: AsyncSession, trip_id: uuid.UUID) -> Trip | None:
        result = await db.execute(
            select(Trip)
            .options(selectinload(Trip.user))
            .where(Trip.id == trip_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def check_all_trips(self, db: AsyncSession, today: date | None = None) -> PriceCheckSummary:
        """Check every eligible trip in order. Called by the scheduler."""
        today = today or date.today()
        summary = PriceCheckSummary()

        trip_ids = await self.find_eligible_trip_ids(db, today)
        if not trip_ids:
            logger.info("Price check: no trips with price-drop alerts enabled")
            return summary

        logger.info(f"Price check: checking {len(trip_ids)} trips")

        for trip_id in trip_ids:
            try:
                trip = await self.load_trip(db, trip_id)
                if trip is None:
                    continue
                outcome = await self.check_trip(db, trip, today=today)
            except Exception:
                logger.exception(f"Price check failed for trip {trip_id}")
                await db.rollback()
                summary.failed += 1
                continue

            summary.checked += 1
            summary.outcomes.append(outcome)
            if outcome.notified:
                summary.notified += 1
            if outcome.status in ("invalid", "provider_error"):
                summary.invalid += 1

        logger.info(
            f"Price check completed: {summary.notified} notifications, "
            f"{summary.invalid} invalid, {summary.failed} failed, {len(trip_ids)} trips"
        )
        return summary

    async def check_trip(
        self, db: AsyncSession, trip: Trip, today: date | None = None
    ) -> TripCheckOutcome:
        """Validate, re-price, notify and store the fresh snapshot for one trip."""
        today = today or date.today()
        now = datetime.now(timezone.utc)

        reason = validate_trip_dates(trip.start_date, trip.end_date, today)
        if reason:
            logger.info(f"Trip {trip.id} ({trip.trip_name}) skipped: {reason}")
            trip.mark_invalid(reason, now)
            await db.commit()
            return TripCheckOutcome(trip_id=trip.id, status="invalid", reason=reason)

        try:
            flights = await self.client.search_flight_offers(
                origin=trip.origin_city_code,
                destination=trip.destination_city_code,
                departure_date=trip.start_date,
                return_date=trip.end_date,
                adults=1,
                currency=trip.currency or settings.default_currency,
            )
        except AmadeusError as e:
            logger.warning(
                f"Offer search failed for trip {trip.id}: kind={e.kind} "
                f"status={e.status_code} message={e.message}"
            )
            return await self._provider_failed(db, trip, e.message, now)
        except Exception as e:
            # Malformed payloads and client bugs surface here
            logger.exception(f"Offer search failed for trip {trip.id}")
            return await self._provider_failed(db, trip, str(e) or type(e).__name__, now)

        hotels = await self._refresh_hotels(trip)

        if not flights:
            logger.info(f"Trip {trip.id}: provider returned no flight offers, keeping snapshot")
            if hotels:
                trip.hotel_options = hotels[: self.snapshot_limit]
            trip.mark_valid(now)
            await db.commit()
            return TripCheckOutcome(trip_id=trip.id, status="no_offers")

        result = compare_prices(trip.flight_options, flights, self.threshold)
        status = "no_comparison"
        notified = False

        if result is None:
            logger.info(f"Trip {trip.id}: no comparable prices")
        elif not result.price_dropped:
            status = "no_drop"
            logger.info(
                f"No significant price drop for trip {trip.id} ({trip.trip_name}): "
                f"{result.old_price:.2f} -> {result.new_price:.2f}"
            )
        else:
            status = "price_drop"
            logger.info(
                f"Price drop for trip {trip.id} ({trip.trip_name}): "
                f"{result.old_price:.2f} -> {result.new_price:.2f} "
                f"({result.percentage_change:.1f}% drop)"
            )
            try:
                notified = await self.send_price_drop_notification(db, trip.user, trip, result)
            except Exception:
                logger.exception(f"Failed to queue price drop notification for trip {trip.id}")

        # Fresh offers become the next baseline whether or not we notified
        trip.flight_options = flights[: self.snapshot_limit]
        if hotels:
            trip.hotel_options = hotels[: self.snapshot_limit]
        trip.mark_valid(now)
        await db.commit()

        return TripCheckOutcome(trip_id=trip.id, status=status, result=result, notified=notified)

    async def _provider_failed(
        self, db: AsyncSession, trip: Trip, message: str, now: datetime
    ) -> TripCheckOutcome:
        reason = f"API error: {message}"
        trip.mark_invalid(reason, now)
        await db.commit()
        return TripCheckOutcome(trip_id=trip.id, status="provider_error", reason=reason)

    async def _refresh_hotels(self, trip: Trip) -> list[dict]:
        """Re-fetch hotels when the trip tracks them; failures keep the old snapshot."""
        if not trip.hotel_options:
            return []
        try:
            return await self.client.search_hotels_by_city(trip.destination_city_code)
        except AmadeusError as e:
            logger.warning(
                f"Hotel refresh failed for trip {trip.id}: kind={e.kind} status={e.status_code}"
            )
            return []
        except Exception:
            logger.exception(f"Hotel refresh failed for trip {trip.id}")
            return []

    async def send_price_drop_notification(
        self, db: AsyncSession, user: User | None, trip: Trip, result: PriceCheckResult
    ) -> bool:
        """Queue the price-drop email. Returns ``False`` when the user cannot be addressed."""
        if not user or not user.email or not user.first_name or not user.last_name:
            logger.warning(f"Trip {trip.id}: user record incomplete, price drop email not queued")
            return False

        currency = result.currency
        content = render_template(
            PRICE_DROP_TEMPLATE,
            name=user.first_name.split(" ")[0],
            trip_name=trip.trip_name,
            previous_price=format_price(result.old_price, currency),
            new_price=format_price(result.new_price, currency),
            money_save=f"{format_price(result.amount_saved, currency)} ({result.percentage_change:.1f}%)",
            destination=trip.destination or "N/A",
            dates=format_date_range(trip.start_date, trip.end_date),
        )

        await self.mailbox.save_email(
            db,
            to_name=user.full_name,
            to_address=user.email,
            subject=f"Price Drop Alert: {trip.trip_name}",
            content=content,
        )
        logger.info(f"Price drop notification queued for {user.email} (trip {trip.trip_name})")
        return True


price_monitor_service = PriceMonitorService()
