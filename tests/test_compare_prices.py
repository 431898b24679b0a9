import pytest

from conftest import make_flight
from wayfarer.services.price_monitor_service import compare_prices


def test_drop_at_threshold_is_flagged():
    result = compare_prices([make_flight(1000)], [make_flight(950)], threshold=0.05)
    assert result.percentage_change == pytest.approx(5.0)
    assert result.price_dropped is True
    assert result.amount_saved == pytest.approx(50)


def test_drop_below_threshold_is_not_flagged():
    result = compare_prices([make_flight(1000)], [make_flight(951)], threshold=0.05)
    assert result.price_dropped is False


def test_price_increase_is_negative_change():
    result = compare_prices([make_flight(500)], [make_flight(600)])
    assert result.percentage_change == pytest.approx(-20.0)
    assert result.price_dropped is False


def test_compares_cheapest_on_each_side():
    old = [make_flight(900), make_flight(700), make_flight(800)]
    new = [make_flight(760), make_flight(600)]
    result = compare_prices(old, new)
    assert result.old_price == 700
    assert result.new_price == 600


def test_invalid_prices_are_ignored():
    old = [{"price": 0}, make_flight(400), {}]
    new = [{"price": "n/a"}, make_flight(300)]
    result = compare_prices(old, new)
    assert (result.old_price, result.new_price) == (400, 300)


def test_no_comparable_prices_returns_none():
    assert compare_prices([], [make_flight(100)]) is None
    assert compare_prices([make_flight(100)], [{"price": 0}]) is None
    assert compare_prices(None, None) is None


def test_currency_comes_from_first_new_offer():
    result = compare_prices([make_flight(100)], [make_flight(80, currency="EUR")])
    assert result.currency == "EUR"


def test_threshold_boundary_pair():
    under = compare_prices([make_flight(500)], [make_flight(475.5)], threshold=0.05)
    exact = compare_prices([make_flight(500)], [make_flight(475)], threshold=0.05)

    assert under.percentage_change == pytest.approx(4.9)
    assert under.price_dropped is False
    assert exact.percentage_change == pytest.approx(5.0)
    assert exact.price_dropped is True


def test_eight_percent_drop_is_flagged():
    result = compare_prices([make_flight(500), make_flight(700)], [make_flight(460)])
    assert result.percentage_change == pytest.approx(8.0)
    assert result.price_dropped is True


def test_two_percent_drop_is_not_flagged():
    result = compare_prices([make_flight(500)], [make_flight(490), make_flight(520)])
    assert result.percentage_change == pytest.approx(2.0)
    assert result.price_dropped is False
