"""Amadeus API client: flight offers, hotel lists and location lookup with OAuth2."""

import asyncio
import hashlib
import logging
import random
from datetime import date, datetime, timedelta, timezone
from typing import Any

import httpx

from wayfarer.config import settings

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


class AmadeusError(Exception):
    """Offer-search provider failure.

    ``kind`` is one of ``"http"``, ``"network"``, ``"timeout"`` or ``"auth"``.
    """

    def __init__(self, message: str, status_code: int | None = None, kind: str = "http"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.kind = kind


def _json_body(resp: httpx.Response) -> dict:
    """Decoded JSON object body; anything else is a provider error."""
    try:
        body = resp.json()
    except ValueError as e:
        raise AmadeusError(f"Invalid JSON response (HTTP {resp.status_code})", resp.status_code, "http") from e
    if not isinstance(body, dict):
        raise AmadeusError(f"Unexpected response body (HTTP {resp.status_code})", resp.status_code, "http")
    return body


def _data_list(body: dict) -> list:
    data = body.get("data") or []
    if not isinstance(data, list):
        raise AmadeusError("Unexpected response body: data is not a list", kind="http")
    return data


def _error_message(resp: httpx.Response) -> str:
    """Pull ``errors[0].detail`` (or title) out of an Amadeus error body."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    errors = body.get("errors") if isinstance(body, dict) else None
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        first = errors[0]
        return first.get("detail") or first.get("title") or f"HTTP {resp.status_code}"
    return f"HTTP {resp.status_code}"


class AmadeusClient:
    """Adapter for the Amadeus Self-Service API."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client_id = settings.amadeus_client_id if client_id is None else client_id
        self._client_secret = (
            settings.amadeus_client_secret if client_secret is None else client_secret
        )
        self._base_url = base_url or settings.amadeus_base_url
        self._timeout = timeout or settings.amadeus_timeout_seconds
        self._transport = transport
        self._token: str | None = None
        self._token_expires: datetime | None = None
        self._semaphore = asyncio.Semaphore(10)  # 10 req/s rate limit
        self._client: httpx.AsyncClient | None = None
        self._use_mock = not self._client_id

    @property
    def use_mock(self) -> bool:
        return self._use_mock

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def _ensure_token(self):
        """Get or refresh OAuth2 token."""
        if self._token and self._token_expires and datetime.now(timezone.utc) < self._token_expires:
            return

        try:
            resp = await self._request(
                "POST",
                "/v1/security/oauth2/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except AmadeusError as e:
            raise AmadeusError(f"Authentication failed: {e.message}", e.status_code, "auth") from e

        try:
            data = _json_body(resp)
            token = data["access_token"]
            expires_in = int(data.get("expires_in", 1799))
        except (AmadeusError, KeyError, TypeError, ValueError) as e:
            raise AmadeusError(
                "Authentication failed: malformed token response", resp.status_code, "auth"
            ) from e

        self._token = token
        self._token_expires = datetime.now(timezone.utc) + timedelta(seconds=expires_in - 60)
        logger.info("Amadeus token refreshed")

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request, retrying 429s with exponential back-off."""
        client = await self._get_client()
        for attempt in range(MAX_ATTEMPTS):
            try:
                resp = await client.request(method, url, **kwargs)
            except httpx.TimeoutException as e:
                raise AmadeusError(f"Request timed out after {self._timeout:.0f}s", kind="timeout") from e
            except httpx.RequestError as e:
                raise AmadeusError(f"Request failed: {e}", kind="network") from e

            if resp.status_code == 429 and attempt < MAX_ATTEMPTS - 1:
                await asyncio.sleep(2 ** attempt)
                continue
            if resp.is_error:
                raise AmadeusError(_error_message(resp), resp.status_code, "http")
            return resp

        raise AmadeusError("Rate limited", 429, "http")

    async def _get(self, url: str, params: dict) -> dict:
        async with self._semaphore:
            await self._ensure_token()
            resp = await self._request(
                "GET",
                url,
                params=params,
                headers={"Authorization": f"Bearer {self._token}"},
            )
            return _json_body(resp)

    async def search_flight_offers(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        return_date: date | None = None,
        adults: int = 1,
        currency: str | None = None,
        max_results: int = 7,
    ) -> list[dict]:
        """Search round-trip (or one-way) flight offers; raw Amadeus offers."""
        currency = currency or settings.default_currency
        if self._use_mock:
            return self._generate_mock_flights(
                origin, destination, departure_date, return_date, currency, max_results
            )

        params = {
            "originLocationCode": origin,
            "destinationLocationCode": destination,
            "departureDate": departure_date.isoformat(),
            "adults": adults,
            "max": max_results,
            "currencyCode": currency,
        }
        if return_date:
            params["returnDate"] = return_date.isoformat()

        data = await self._get("/v2/shopping/flight-offers", params)
        return _data_list(data)

    async def search_hotels_by_city(self, city_code: str) -> list[dict]:
        """List hotels in a city (``/v1/reference-data/locations/hotels/by-city``)."""
        if self._use_mock:
            return self._generate_mock_hotels(city_code)

        data = await self._get(
            "/v1/reference-data/locations/hotels/by-city",
            {"cityCode": city_code},
        )
        return _data_list(data)

    async def search_locations(self, keyword: str) -> list[dict]:
        """City and airport lookup by keyword."""
        if self._use_mock:
            return [{"name": keyword.upper(), "iata_code": keyword[:3].upper()}]

        data = await self._get(
            "/v1/reference-data/locations",
            {"keyword": keyword, "subType": "CITY,AIRPORT"},
        )
        return [
            {"name": item.get("name"), "iata_code": item.get("iataCode")}
            for item in _data_list(data)
            if isinstance(item, dict)
        ]

    # --- Mock data generation for demo mode ---

    @staticmethod
    def _rng(*parts: Any) -> random.Random:
        # Deterministic seed so repeated checks see stable prices
        seed_str = "".join(str(p) for p in parts)
        return random.Random(int(hashlib.md5(seed_str.encode()).hexdigest()[:8], 16))

    def _generate_mock_flights(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        return_date: date | None,
        currency: str,
        max_results: int,
    ) -> list[dict]:
        """Amadeus-shaped mock offers for demo/development."""
        rng = self._rng(origin, destination, departure_date, return_date)
        airlines = ["AA", "DL", "UA", "AF", "BA", "LH", "KL", "AC"]

        def leg(frm: str, to: str, day: date, stops: int) -> dict:
            dep = datetime(day.year, day.month, day.day, rng.randint(6, 21), rng.choice([0, 15, 30, 45]))
            carrier = rng.choice(airlines)
            segments = []
            hops = [frm] + ["JFK", "CDG", "FRA"][:stops] + [to]
            for a, b in zip(hops, hops[1:]):
                arr = dep + timedelta(minutes=rng.randint(70, 420))
                segments.append({
                    "departure": {"iataCode": a, "at": dep.isoformat()},
                    "arrival": {"iataCode": b, "at": arr.isoformat()},
                    "carrierCode": carrier,
                    "number": str(rng.randint(100, 9999)),
                })
                dep = arr + timedelta(minutes=rng.randint(45, 120))
            total = (datetime.fromisoformat(segments[-1]["arrival"]["at"])
                     - datetime.fromisoformat(segments[0]["departure"]["at"]))
            minutes = int(total.total_seconds() // 60)
            return {"duration": f"PT{minutes // 60}H{minutes % 60}M", "segments": segments}

        offers = []
        for i in range(min(max_results, rng.randint(4, 9))):
            stops = rng.choices([0, 1, 2], weights=[60, 30, 10])[0]
            itineraries = [leg(origin, destination, departure_date, stops)]
            if return_date:
                itineraries.append(leg(destination, origin, return_date, stops))
            price = round(rng.uniform(250, 1200), 2)
            offers.append({
                "type": "flight-offer",
                "id": str(i + 1),
                "itineraries": itineraries,
                "price": {"currency": currency, "total": f"{price:.2f}", "grandTotal": f"{price:.2f}"},
            })
        return sorted(offers, key=lambda o: float(o["price"]["total"]))

    def _generate_mock_hotels(self, city_code: str) -> list[dict]:
        rng = self._rng(city_code, "hotels")
        names = ["Grand Central", "Harbour View", "City Lodge", "Park Suites", "Old Town Inn", "Riverside"]
        hotels = []
        for i, name in enumerate(names):
            nightly = round(rng.uniform(60, 320), 2)
            hotels.append({
                "hotelId": f"{city_code}{i:04d}",
                "name": f"{name} {city_code}",
                "iataCode": city_code,
                "rating": rng.randint(2, 5),
                "offers": [{"price": {"currency": settings.default_currency, "total": f"{nightly * 3:.2f}"}}],
            })
        return hotels

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


amadeus_client = AmadeusClient()
