"""Tests for the browser price extractors.

Tests de los extractores con un navegador falso: lectura del precio,
popup de cookies, timeouts y errores (que siempre terminan en None).
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from fareradar.extractors import (
    GoogleFlightsExtractor,
    KayakExtractor,
    SkyscannerExtractor,
    build_extractors,
)
from fareradar.extractors.base import CONSENT_RELOAD_MS
from fareradar.models import AppSettings, SearchTask, UserBudget
from fareradar.urls import build_skyscanner_url, search_urls


@pytest.fixture
def task():
    outbound, ret = date(2026, 11, 6), date(2026, 11, 8)
    return SearchTask(
        id="search-1",
        user_id="user_1",
        origin="AMS",
        destination="BCN",
        destination_city="Barcelona",
        outbound_date=outbound,
        return_date=ret,
        budget=UserBudget("user_1", 6000, True, "traveler@example.com"),
        urls=search_urls("AMS", "BCN", outbound, ret),
    )


def _make_page(body_text: str = "", element_texts: list[str] | None = None,
               consent: bool = False) -> MagicMock:
    """Helper para crear una página falsa de Playwright."""
    page = MagicMock()
    page.goto = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.inner_text = AsyncMock(return_value=body_text)
    page.screenshot = AsyncMock()

    button = MagicMock()
    if consent:
        button.click = AsyncMock()
    else:
        button.click = AsyncMock(side_effect=PlaywrightTimeoutError("no popup"))
    page.get_by_role.return_value.first = button

    page.locator.return_value.all_inner_texts = AsyncMock(return_value=element_texts or [])
    return page


def _make_browser(page: MagicMock) -> tuple[MagicMock, MagicMock]:
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()
    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    return browser, context


@pytest.mark.asyncio
async def test_google_reads_first_price(settings, task):
    """Encuentra "€45" en la página → 4500 EUR con la URL guardada."""
    page = _make_page(body_text="Best flights\nKLM · Direct\n€45 round trip\n€89")
    browser, context = _make_browser(page)

    result = await GoogleFlightsExtractor(settings).extract(browser, task)

    assert result is not None
    assert result.platform == "google"
    assert result.price_cents == 4500
    assert result.currency == "EUR"
    assert result.booking_url == task.urls["google"]
    page.goto.assert_awaited_once_with(
        task.urls["google"], wait_until="domcontentloaded", timeout=30_000,
    )
    context.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_navigation_timeout_returns_none(settings, task):
    """Timeout navegando → None, y el contexto igual se cierra."""
    page = _make_page()
    page.goto.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded")
    browser, context = _make_browser(page)

    result = await SkyscannerExtractor(settings).extract(browser, task)

    assert result is None
    page.inner_text.assert_not_awaited()
    context.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_out_of_band_price_saves_snapshot(task, tmp_path):
    """Precio sospechoso → None y screenshot para depurar."""
    settings = AppSettings(settle_seconds=0, debug_dir=str(tmp_path))
    page = _make_page(body_text="Bags from €5")
    browser, context = _make_browser(page)

    result = await GoogleFlightsExtractor(settings).extract(browser, task)

    assert result is None
    page.screenshot.assert_awaited_once()
    assert page.screenshot.await_args.kwargs["path"].endswith("google-debug.png")
    context.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_no_price_on_page(settings, task):
    page = _make_page(body_text="No flights found for these dates")
    browser, _ = _make_browser(page)

    assert await KayakExtractor(settings).extract(browser, task) is None
    # Sin debug_dir no hay screenshot
    page.screenshot.assert_not_awaited()


@pytest.mark.asyncio
async def test_unexpected_error_returns_none(settings, task):
    """Cualquier excepción del navegador se loggea y termina en None."""
    page = _make_page()
    browser, context = _make_browser(page)
    context.new_page.side_effect = RuntimeError("Target closed")

    result = await SkyscannerExtractor(settings).extract(browser, task)

    assert result is None
    context.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_context_creation_error_returns_none(settings, task):
    browser = MagicMock()
    browser.new_context = AsyncMock(side_effect=RuntimeError("Browser has been closed"))

    assert await GoogleFlightsExtractor(settings).extract(browser, task) is None


@pytest.mark.asyncio
async def test_consent_popup_is_dismissed(settings, task):
    page = _make_page(body_text="Cheapest £60", consent=True)
    browser, _ = _make_browser(page)

    result = await SkyscannerExtractor(settings).extract(browser, task)

    assert result.price_cents == 6000
    assert result.currency == "GBP"
    assert page.get_by_role.call_args.args == ("button",)
    name_pattern = page.get_by_role.call_args.kwargs["name"]
    assert name_pattern.search("ACCEPT")
    page.wait_for_timeout.assert_any_await(CONSENT_RELOAD_MS)


@pytest.mark.asyncio
async def test_missing_consent_popup_is_not_an_error(settings, task):
    page = _make_page(body_text="from 45,50 €")
    browser, _ = _make_browser(page)

    result = await SkyscannerExtractor(settings).extract(browser, task)

    assert result.price_cents == 4550
    assert CONSENT_RELOAD_MS not in [c.args[0] for c in page.wait_for_timeout.await_args_list]


@pytest.mark.asyncio
async def test_kayak_prefers_price_elements(settings, task):
    """Kayak lee primero los elementos con clase de precio."""
    page = _make_page(body_text="Promo €45", element_texts=["Total", "$217"])
    browser, _ = _make_browser(page)

    result = await KayakExtractor(settings).extract(browser, task)

    assert result.price_cents == 21700
    assert result.currency == "USD"
    page.inner_text.assert_not_awaited()


@pytest.mark.asyncio
async def test_kayak_falls_back_to_body(settings, task):
    page = _make_page(body_text="Cheapest €72", element_texts=["Filters"])
    browser, _ = _make_browser(page)

    result = await KayakExtractor(settings).extract(browser, task)

    assert result.price_cents == 7200
    page.inner_text.assert_awaited_once_with("body")


@pytest.mark.asyncio
async def test_google_results_container_timeout_is_tolerated(settings, task):
    page = _make_page(body_text="€99")
    page.wait_for_selector.side_effect = PlaywrightTimeoutError("no list")
    browser, _ = _make_browser(page)

    result = await GoogleFlightsExtractor(settings).extract(browser, task)

    assert result.price_cents == 9900


def test_url_fallback_when_not_stored(settings, task):
    """Sin URL guardada para la plataforma, se arma en el momento."""
    task.urls = {}
    assert SkyscannerExtractor(settings).url_for(task) == build_skyscanner_url(
        "AMS", "BCN", task.outbound_date, task.return_date,
    )


def test_build_extractors_in_declared_order():
    settings = AppSettings(platforms=["kayak", "google"])
    assert [e.platform for e in build_extractors(settings)] == ["kayak", "google"]


@pytest.mark.asyncio
async def test_consent_click_error_does_not_lose_price(settings, task):
    """Si el click del popup falla (DOM recargado), se sigue y se lee el precio."""
    page = _make_page(body_text="Best flights €45")
    page.get_by_role.return_value.first.click = AsyncMock(
        side_effect=PlaywrightError("Element is not attached to the DOM"),
    )
    browser, context = _make_browser(page)

    result = await GoogleFlightsExtractor(settings).extract(browser, task)

    assert result is not None
    assert result.price_cents == 4500
    page.inner_text.assert_awaited_once_with("body")
    context.close.assert_awaited_once()
