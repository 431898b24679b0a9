"""Offer normalization: flattens provider flight/hotel payloads into one shape.

Provider payloads are loose: a flight price is either a number or a
``{"total": ..., "currency": ...}`` object, and a hotel price lives under
``offers[0].price.total`` or directly on the hotel. Normalization runs once per
offer and never raises; anything unreadable falls back to a sentinel.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# Sentinels for unreadable offers
MISSING_PRICE = 1_000_000.0
DEFAULT_DURATION_MINUTES = 24 * 60
DEFAULT_CURRENCY = "USD"


@dataclass
class FlightOffer:
    price: float
    currency: str
    duration_minutes: float
    stops: int
    raw: Any = field(default=None, repr=False)


@dataclass
class HotelOffer:
    price: float
    rating: float
    raw: Any = field(default=None, repr=False)


def _to_number(value: Any) -> float | None:
    """Coerce ints, floats and numeric strings; ``None`` for anything else."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _first_itinerary_segments(raw: Any) -> list:
    if not isinstance(raw, dict):
        return []
    itineraries = raw.get("itineraries")
    if not isinstance(itineraries, list) or not itineraries or not isinstance(itineraries[0], dict):
        return []
    segments = itineraries[0].get("segments")
    return segments if isinstance(segments, list) else []


def _parse_timestamp(value: str) -> datetime:
    # fromisoformat on older interpreters rejects the trailing Z
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def flight_price(raw: Any) -> float | None:
    """Raw flight price (scalar or ``{"total"}``), ``None`` when unreadable."""
    if not isinstance(raw, dict):
        return None
    price = raw.get("price")
    if isinstance(price, dict):
        return _to_number(price.get("total"))
    return _to_number(price)


def flight_currency(raw: Any) -> str:
    if isinstance(raw, dict) and isinstance(raw.get("price"), dict):
        currency = raw["price"].get("currency")
        if isinstance(currency, str) and currency:
            return currency
    return DEFAULT_CURRENCY


def flight_duration_minutes(raw: Any) -> float:
    """Outbound duration: first segment departure to last segment arrival."""
    try:
        segments = _first_itinerary_segments(raw)
        departure = _parse_timestamp(segments[0]["departure"]["at"])
        arrival = _parse_timestamp(segments[-1]["arrival"]["at"])
        minutes = (arrival - departure).total_seconds() / 60
    except (IndexError, KeyError, TypeError, ValueError, AttributeError):
        return DEFAULT_DURATION_MINUTES
    # Arrival before departure means a broken payload
    return minutes if minutes >= 0 else DEFAULT_DURATION_MINUTES


def flight_stops(raw: Any) -> int:
    segments = _first_itinerary_segments(raw)
    return max(len(segments), 1) - 1


def hotel_price(raw: Any) -> float | None:
    if not isinstance(raw, dict):
        return None
    offers = raw.get("offers")
    if isinstance(offers, list) and offers and isinstance(offers[0], dict):
        nested = offers[0].get("price") or {}
        if isinstance(nested, dict):
            total = _to_number(nested.get("total"))
            if total:
                return total
    return _to_number(raw.get("price"))


def hotel_rating(raw: Any) -> float:
    if not isinstance(raw, dict):
        return 0.0
    nested = raw.get("hotel")
    if isinstance(nested, dict):
        rating = _to_number(nested.get("rating"))
        if rating:
            return rating
    return _to_number(raw.get("rating")) or 0.0


def normalize_flight(raw: Any) -> FlightOffer:
    if isinstance(raw, FlightOffer):
        return raw
    price = flight_price(raw)
    return FlightOffer(
        price=price if price and price > 0 else MISSING_PRICE,
        currency=flight_currency(raw),
        duration_minutes=flight_duration_minutes(raw),
        stops=flight_stops(raw),
        raw=raw,
    )


def normalize_hotel(raw: Any) -> HotelOffer:
    if isinstance(raw, HotelOffer):
        return raw
    price = hotel_price(raw)
    return HotelOffer(
        price=price if price and price > 0 else MISSING_PRICE,
        rating=hotel_rating(raw),
        raw=raw,
    )


def comparable_prices(raw_offers: list | None) -> list[float]:
    """Positive prices of a flight snapshot; invalid entries are dropped."""
    prices = []
    for raw in raw_offers or []:
        price = flight_price(raw)
        if price and price > 0:
            prices.append(price)
    return prices
