"""Package scorer: ranks flight and hotel offers against a budget.

Scores are in [0, 1]. A flight blends price, outbound duration and stop
count; a hotel blends price and star rating. ``find_best_package`` pairs the
top flights with the top hotels and picks the best combination that fits the
budget, or the best combination overall when nothing fits.
"""

from dataclasses import dataclass
from typing import Any

from wayfarer.services.offers import (
    DEFAULT_DURATION_MINUTES,
    FlightOffer,
    HotelOffer,
    normalize_flight,
    normalize_hotel,
)

DEFAULT_BUDGET = 1000.0
TOP_K = 5

# Flight weights
WEIGHT_FLIGHT_PRICE = 0.55
WEIGHT_FLIGHT_DURATION = 0.25
WEIGHT_FLIGHT_STOPS = 0.20
MAX_STOPS = 5

# Hotel weights
WEIGHT_HOTEL_PRICE = 0.6
WEIGHT_HOTEL_RATING = 0.4
MAX_RATING = 5

# Package weights
WEIGHT_PACKAGE_FLIGHT = 0.6
WEIGHT_PACKAGE_HOTEL = 0.4


@dataclass
class FlightScore:
    score: float
    price: float
    duration_minutes: float
    stops: int


@dataclass
class HotelScore:
    score: float
    price: float
    rating: float


@dataclass
class ScoredFlight(FlightScore):
    offer: Any = None


@dataclass
class ScoredHotel(HotelScore):
    offer: Any = None


@dataclass
class PackageCombination:
    flight: Any
    hotel: Any
    combined_price: float
    combined_score: float
    fits_budget: bool
    flight_score: float
    hotel_score: float

    def to_dict(self) -> dict:
        return {
            "flight": self.flight,
            "hotel": self.hotel,
            "combined_price": round(self.combined_price, 2),
            "combined_score": round(self.combined_score, 4),
            "fits_budget": self.fits_budget,
            "flight_score": round(self.flight_score, 4),
            "hotel_score": round(self.hotel_score, 4),
        }


def _price_score(price: float, budget: float | None) -> float:
    # No budget: denominator price + 1 drives the score to ~0 instead of dividing by zero
    denominator = budget or price + 1
    return max(0.0, 1 - price / denominator)


def score_flight(flight: Any, budget: float | None = DEFAULT_BUDGET) -> FlightScore:
    offer: FlightOffer = normalize_flight(flight)
    price_score = _price_score(offer.price, budget)
    duration_score = max(0.0, 1 - offer.duration_minutes / DEFAULT_DURATION_MINUTES)
    stops_score = max(0.0, 1 - offer.stops / MAX_STOPS)
    score = (
        WEIGHT_FLIGHT_PRICE * price_score
        + WEIGHT_FLIGHT_DURATION * duration_score
        + WEIGHT_FLIGHT_STOPS * stops_score
    )
    return FlightScore(
        score=score,
        price=offer.price,
        duration_minutes=offer.duration_minutes,
        stops=offer.stops,
    )


def score_hotel(hotel: Any, budget: float | None = DEFAULT_BUDGET) -> HotelScore:
    offer: HotelOffer = normalize_hotel(hotel)
    price_score = _price_score(offer.price, budget)
    rating_score = max(0.0, min(1.0, offer.rating / MAX_RATING))
    score = WEIGHT_HOTEL_PRICE * price_score + WEIGHT_HOTEL_RATING * rating_score
    return HotelScore(score=score, price=offer.price, rating=offer.rating)


def rank_flights(flights: list, budget: float | None = DEFAULT_BUDGET) -> list[ScoredFlight]:
    scored = [
        ScoredFlight(**vars(score_flight(f, budget)), offer=f) for f in flights or []
    ]
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored


def rank_hotels(hotels: list, budget: float | None = DEFAULT_BUDGET) -> list[ScoredHotel]:
    scored = [
        ScoredHotel(**vars(score_hotel(h, budget)), offer=h) for h in hotels or []
    ]
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored


def find_best_package(
    flights: list,
    hotels: list,
    budget: float | None = DEFAULT_BUDGET,
) -> PackageCombination | None:
    """Best flight + hotel pair from the top 5 of each list.

    Over-budget pairs are only considered when no pair fits the budget, so a
    non-empty input always yields a recommendation. Returns ``None`` when
    either list is empty.
    """
    top_flights = rank_flights(flights, budget)[:TOP_K]
    top_hotels = rank_hotels(hotels, budget)[:TOP_K]

    combos: list[PackageCombination] = []
    for sf in top_flights:
        for sh in top_hotels:
            combined_price = sf.price + sh.price
            combos.append(PackageCombination(
                flight=sf.offer,
                hotel=sh.offer,
                combined_price=combined_price,
                combined_score=WEIGHT_PACKAGE_FLIGHT * sf.score + WEIGHT_PACKAGE_HOTEL * sh.score,
                fits_budget=budget is not None and combined_price <= budget,
                flight_score=sf.score,
                hotel_score=sh.score,
            ))

    if not combos:
        return None

    candidates = [c for c in combos if c.fits_budget] or combos
    # max() keeps the first of equal scores, matching a stable descending sort
    return max(candidates, key=lambda c: c.combined_score)
