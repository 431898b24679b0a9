from datetime import date, datetime, timedelta, timezone

import httpx
from sqlalchemy import select

from conftest import FakeOfferClient, add_trip, add_user, make_flight, make_hotel, run
from wayfarer.models import EmailBox, Trip
from wayfarer.services.amadeus_client import AmadeusClient, AmadeusError
from wayfarer.services.mailbox_service import MailboxService
from wayfarer.services.price_monitor_service import PriceMonitorService
from wayfarer.services.trip_dates import REASON_DEPARTURE_PAST, REASON_DEPARTURE_TOO_SOON


class NullMailer:
    async def send(self, *args, **kwargs):
        raise AssertionError("the price check only queues mail")


def make_service(client, **kwargs):
    return PriceMonitorService(client=client, mailbox=MailboxService(mailer=NullMailer()), **kwargs)


async def _reload(session_factory, trip_id):
    async with session_factory() as db:
        return await db.get(Trip, trip_id)


async def _emails(session_factory):
    async with session_factory() as db:
        return (await db.execute(select(EmailBox))).scalars().all()


def test_price_drop_queues_email_and_bounds_snapshot(session_factory):
    fresh = [make_flight(400 + i) for i in range(9)]
    client = FakeOfferClient(flights=fresh)
    service = make_service(client, threshold=0.05, snapshot_limit=6)

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db)
            trip = await add_trip(db, user, flight_options=[make_flight(500), make_flight(650)])
            summary = await service.check_all_trips(db, today=date.today())
        return summary, await _reload(session_factory, trip.id), await _emails(session_factory)

    summary, trip, emails = run(scenario())

    assert summary.checked == 1
    assert summary.notified == 1
    outcome = summary.outcomes[0]
    assert outcome.status == "price_drop"
    assert outcome.result.old_price == 500
    assert outcome.result.new_price == 400
    assert len(trip.flight_options) == 6
    assert trip.flight_options[0]["price"]["total"] == "400"
    assert trip.validation_is_valid is True
    assert trip.validation_checked_at is not None

    assert len(emails) == 1
    email = emails[0]
    assert email.subject == "Price Drop Alert: Paris Spring"
    assert email.to_name == "Ada Lovelace"
    assert email.to_address == "ada@example.com"
    assert email.sent is False
    assert "$500.00" in email.content
    assert "$400.00" in email.content


def test_no_drop_still_replaces_snapshot(session_factory):
    client = FakeOfferClient(flights=[make_flight(490)])
    service = make_service(client)

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db)
            trip = await add_trip(db, user, flight_options=[make_flight(500)])
            summary = await service.check_all_trips(db, today=date.today())
        return summary, await _reload(session_factory, trip.id), await _emails(session_factory)

    summary, trip, emails = run(scenario())

    assert summary.outcomes[0].status == "no_drop"
    assert summary.notified == 0
    assert trip.flight_options == [make_flight(490)]
    assert emails == []


def test_past_departure_is_marked_invalid_without_provider_call(session_factory):
    client = FakeOfferClient(flights=[make_flight(10)])
    service = make_service(client)
    today = date.today()

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db)
            trip = await add_trip(
                db, user,
                start_date=today - timedelta(days=2),
                end_date=today + timedelta(days=3),
            )
            summary = await service.check_all_trips(db, today=today)
        return summary, await _reload(session_factory, trip.id)

    summary, trip = run(scenario())

    assert summary.invalid == 1
    assert client.flight_calls == []
    assert trip.validation_is_valid is False
    assert trip.validation_reason == REASON_DEPARTURE_PAST
    assert trip.flight_options == [make_flight(500)]


def test_departure_today_is_too_soon(session_factory):
    client = FakeOfferClient(flights=[make_flight(10)])
    service = make_service(client)
    today = date.today()

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db)
            trip = await add_trip(db, user, start_date=today, end_date=today + timedelta(days=2))
            trip = await service.load_trip(db, trip.id)
            return await service.check_trip(db, trip, today=today)

    outcome = run(scenario())

    assert outcome.status == "invalid"
    assert outcome.reason == REASON_DEPARTURE_TOO_SOON


def test_provider_error_records_reason(session_factory):
    client = FakeOfferClient(error=AmadeusError("No fare found", 400))
    service = make_service(client)

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db)
            trip = await add_trip(db, user)
            summary = await service.check_all_trips(db, today=date.today())
        return summary, await _reload(session_factory, trip.id)

    summary, trip = run(scenario())

    assert summary.outcomes[0].status == "provider_error"
    assert trip.validation_is_valid is False
    assert trip.validation_reason == "API error: No fare found"
    assert trip.flight_options == [make_flight(500)]


def test_empty_provider_result_keeps_snapshot(session_factory):
    service = make_service(FakeOfferClient(flights=[]))

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db)
            trip = await add_trip(db, user)
            summary = await service.check_all_trips(db, today=date.today())
        return summary, await _reload(session_factory, trip.id)

    summary, trip = run(scenario())

    assert summary.outcomes[0].status == "no_offers"
    assert trip.flight_options == [make_flight(500)]
    assert trip.validation_is_valid is True


def test_incomplete_user_gets_no_email_but_snapshot_updates(session_factory):
    service = make_service(FakeOfferClient(flights=[make_flight(100)]))

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db, last_name="")
            trip = await add_trip(db, user)
            summary = await service.check_all_trips(db, today=date.today())
        return summary, await _reload(session_factory, trip.id), await _emails(session_factory)

    summary, trip, emails = run(scenario())

    assert summary.outcomes[0].status == "price_drop"
    assert summary.notified == 0
    assert emails == []
    assert trip.flight_options == [make_flight(100)]


def test_eligibility_filters_and_orders_trips(session_factory):
    service = make_service(FakeOfferClient())
    today = date.today()
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db)
            second = await add_trip(db, user, trip_name="second", created_at=base + timedelta(hours=2))
            first = await add_trip(db, user, trip_name="first", created_at=base)
            await add_trip(db, user, trip_name="muted", notify_price_drop=False)
            await add_trip(db, user, trip_name="no email", notify_email=False)
            await add_trip(db, user, trip_name="no baseline", flight_options=[])
            await add_trip(
                db, user, trip_name="finished",
                start_date=today - timedelta(days=10), end_date=today - timedelta(days=1),
            )
            ids = await service.find_eligible_trip_ids(db, today)
        return ids, first.id, second.id

    ids, first_id, second_id = run(scenario())

    assert ids == [first_id, second_id]


def test_one_failing_trip_does_not_stop_the_batch(session_factory):
    class BrokenCheckService(PriceMonitorService):
        async def check_trip(self, db, trip, today=None):
            if trip.origin_city_code == "BAD":
                raise RuntimeError("database went away")
            return await super().check_trip(db, trip, today=today)

    service = BrokenCheckService(
        client=FakeOfferClient(flights=[make_flight(300)]),
        mailbox=MailboxService(mailer=NullMailer()),
    )
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db)
            await add_trip(db, user, origin_city_code="BAD", created_at=base)
            good = await add_trip(db, user, created_at=base + timedelta(hours=1))
            # the failed trip rolls the session back, which expires every instance
            good_id = good.id
            summary = await service.check_all_trips(db, today=date.today())
        return summary, await _reload(session_factory, good_id)

    summary, good = run(scenario())

    assert summary.failed == 1
    assert summary.checked == 1
    assert summary.notified == 1
    assert good.flight_options == [make_flight(300)]


def test_hotels_refreshed_only_when_tracked(session_factory):
    hotels = [make_hotel(100 + i, rating=4) for i in range(8)]
    client = FakeOfferClient(flights=[make_flight(480)], hotels=hotels)
    service = make_service(client, snapshot_limit=6)

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db)
            tracked = await add_trip(db, user, hotel_options=[make_hotel(200)])
            untracked = await add_trip(db, user, hotel_options=[])
            await service.check_all_trips(db, today=date.today())
        return (
            await _reload(session_factory, tracked.id),
            await _reload(session_factory, untracked.id),
        )

    tracked, untracked = run(scenario())

    assert client.hotel_calls == ["PAR"]
    assert len(tracked.hotel_options) == 6
    assert untracked.hotel_options == []


def test_hotel_failure_keeps_hotel_snapshot(session_factory):
    client = FakeOfferClient(flights=[make_flight(480)], hotel_error=AmadeusError("down", 503))
    service = make_service(client)

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db)
            trip = await add_trip(db, user, hotel_options=[make_hotel(200)])
            summary = await service.check_all_trips(db, today=date.today())
        return summary, await _reload(session_factory, trip.id)

    summary, trip = run(scenario())

    assert summary.outcomes[0].status == "no_drop"
    assert trip.hotel_options == [make_hotel(200)]


def test_provider_error_does_not_stop_next_trip(session_factory):
    class FailsForFirstOrigin(FakeOfferClient):
        async def search_flight_offers(self, **kwargs):
            if kwargs["origin"] == "ERR":
                raise AmadeusError("Service unavailable", 503)
            return await super().search_flight_offers(**kwargs)

    service = make_service(FailsForFirstOrigin(flights=[make_flight(490)]))
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db)
            failing = await add_trip(db, user, origin_city_code="ERR", created_at=base)
            healthy = await add_trip(db, user, created_at=base + timedelta(hours=1))
            summary = await service.check_all_trips(db, today=date.today())
        return (
            summary,
            await _reload(session_factory, failing.id),
            await _reload(session_factory, healthy.id),
        )

    summary, failing, healthy = run(scenario())

    assert [o.status for o in summary.outcomes] == ["provider_error", "no_drop"]
    assert summary.failed == 0
    assert "API error" in failing.validation_reason
    assert healthy.validation_is_valid is True
    assert healthy.flight_options == [make_flight(490)]


def test_unexpected_provider_exception_marks_trip_invalid(session_factory):
    service = make_service(FakeOfferClient(error=ValueError("unreadable fare payload")))

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db)
            trip = await add_trip(db, user)
            summary = await service.check_all_trips(db, today=date.today())
        return summary, await _reload(session_factory, trip.id)

    summary, trip = run(scenario())

    assert summary.failed == 0
    assert summary.outcomes[0].status == "provider_error"
    assert trip.validation_is_valid is False
    assert trip.validation_reason == "API error: unreadable fare payload"
    assert trip.flight_options == [make_flight(500)]


def test_non_json_provider_response_marks_trip_invalid(session_factory):
    def handler(request):
        if request.url.path == "/v1/security/oauth2/token":
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 1799})
        return httpx.Response(200, text="<html>gateway</html>")

    client = AmadeusClient(
        client_id="id",
        client_secret="secret",
        base_url="https://amadeus.test",
        transport=httpx.MockTransport(handler),
    )
    service = make_service(client)

    async def scenario():
        async with session_factory() as db:
            user = await add_user(db)
            trip = await add_trip(db, user)
            summary = await service.check_all_trips(db, today=date.today())
        await client.close()
        return summary, await _reload(session_factory, trip.id)

    summary, trip = run(scenario())

    assert summary.failed == 0
    assert trip.validation_is_valid is False
    assert trip.validation_reason.startswith("API error: Invalid JSON response")
