"""Shared fixtures: SQLite store, users/searches factories, fake browser.

Fixtures compartidos: base SQLite temporaria, fábricas para cargar
preferencias y búsquedas, y un navegador falso para el engine.
"""

from contextlib import asynccontextmanager
from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from fareradar.models import AppSettings, SearchStatus
from fareradar.store import FlightSearch, SearchStore, UserPreference
from fareradar.urls import search_urls


@pytest.fixture
def settings():
    """Settings de prueba sin esperas, para que los tests sean rápidos."""
    return AppSettings(
        delay_between_platforms_seconds=0,
        delay_between_tasks_seconds=0,
        settle_seconds=0,
    )


@pytest.fixture
def store(tmp_path):
    store = SearchStore(f"sqlite:///{tmp_path / 'test.db'}")
    store.init_schema()
    return store


@pytest.fixture
def make_user(store):
    """Carga una fila de user_preferences."""

    def _make_user(
        user_id: str = "user_1",
        budget: int | None = 6000,
        alert_enabled: bool = True,
        email: str = "traveler@example.com",
    ) -> str:
        with store.Session() as session:
            session.add(
                UserPreference(
                    user_id=user_id,
                    max_price_round_trip=budget,
                    alert_enabled=alert_enabled,
                    alert_email=email,
                )
            )
            session.commit()
        return user_id

    return _make_user


@pytest.fixture
def make_search(store):
    """Carga una fila de flight_searches y devuelve su id."""

    def _make_search(
        user_id: str = "user_1",
        destination: str = "BCN",
        city: str = "Barcelona",
        outbound: date = date(2026, 11, 6),
        return_date: date | None = date(2026, 11, 8),
        status: str = SearchStatus.PENDING,
        next_check_at: datetime | None = None,
        created_at: datetime | None = None,
    ) -> str:
        urls = search_urls("AMS", destination, outbound, return_date)
        search = FlightSearch(
            user_id=user_id,
            origin="AMS",
            destination=destination,
            destination_city=city,
            outbound_date=outbound,
            return_date=return_date,
            google_flights_url=urls["google"],
            skyscanner_url=urls["skyscanner"],
            kayak_url=urls["kayak"],
            status=status,
            next_check_at=next_check_at,
        )
        if created_at is not None:
            search.created_at = created_at
        with store.Session() as session:
            session.add(search)
            session.commit()
            return search.id

    return _make_search


@pytest.fixture
def browser_launches():
    """Lista de navegadores "lanzados" por el fake_browser_factory."""
    return []


@pytest.fixture
def fake_browser_factory(browser_launches):
    @asynccontextmanager
    async def _factory(settings):
        browser = MagicMock(name="browser")
        browser_launches.append(browser)
        yield browser

    return _factory
