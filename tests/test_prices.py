"""Tests for price text parsing.

Tests del parser de precios: formatos con símbolo antes y después,
coma decimal, y descarte de valores fuera del rango plausible.
"""

import pytest

from fareradar.prices import detect_currency, find_price_candidate, parse_price


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("€45", 4500),
        ("45,50 €", 4550),
        ("$120.99", 12099),
        ("£ 10", 1000),
        ("2000 €", 200000),
    ],
)
def test_parse_price_valid(text, expected):
    """Precios dentro del rango → centavos."""
    assert parse_price(text) == expected


@pytest.mark.parametrize("text", ["€5", "€3000", "no price here", "", None])
def test_parse_price_rejects(text):
    """Muy barato, muy caro o sin número → None (nunca lanza)."""
    assert parse_price(text) is None


def test_find_candidate_symbol_first():
    text = "Round trip · Cheapest from €45 · 2h 10m"
    assert find_price_candidate(text) == "€45"


def test_find_candidate_symbol_last():
    """Números largos sin símbolo (ej: nº de vuelo) no cuentan como precio."""
    text = "Flight 1234567 departs 07:45, total 45,50 €"
    assert find_price_candidate(text) == "45,50 €"


def test_find_candidate_first_match_wins():
    """Best effort: el primer precio visible, no el mínimo."""
    assert find_price_candidate("€89 ... €45") == "€89"


def test_find_candidate_none():
    assert find_price_candidate("No flights found") is None
    assert find_price_candidate(None) is None


def test_detect_currency():
    assert detect_currency("€45") == "EUR"
    assert detect_currency("$120") == "USD"
    assert detect_currency("£60") == "GBP"
    assert detect_currency("60", default="USD") == "USD"
    assert detect_currency(None) == "EUR"
