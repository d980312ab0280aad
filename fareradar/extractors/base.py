"""Abstract base classes for booking-site price extractors.

Todos los extractores implementan PriceSource. BaseExtractor resuelve el
flujo común (contexto nuevo, navegar, cerrar cookies, esperar, leer precio,
cerrar contexto) y cada plataforma solo define sus selectores y heurísticas.
Un extractor NUNCA propaga excepciones: cualquier error es "no encontrado".
"""

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path

from playwright.async_api import Browser, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from fareradar.models import AppSettings, ExtractedPrice, SearchTask
from fareradar.prices import detect_currency, find_price_candidate, parse_price
from fareradar.urls import URL_BUILDERS

logger = logging.getLogger(__name__)

# Pausa después de cerrar el popup de cookies (la página suele recargar)
CONSENT_RELOAD_MS = 3_000


class PriceSource(ABC):
    """Capability interface: try to read one price for one search."""

    @property
    @abstractmethod
    def platform(self) -> str:
        """Unique identifier for this platform (e.g., 'google', 'kayak')."""
        ...

    @abstractmethod
    async def extract(self, browser: Browser, task: SearchTask) -> ExtractedPrice | None:
        """Return the price found for ``task``, or None if not found.

        Si hay un error, debe loggearlo y devolver None (nunca crashear).
        """
        ...


class BaseExtractor(PriceSource):
    """Headless-browser extractor with overridable per-platform hooks."""

    # Textos de botones del popup de cookies (multi-idioma)
    consent_labels: tuple[str, ...] = ()
    # Selectores con precios estructurados; si no hay, se escanea todo el body
    price_selectors: tuple[str, ...] = ()

    def __init__(self, settings: AppSettings) -> None:
        self.settings = settings

    def url_for(self, task: SearchTask) -> str:
        """URL guardada para esta plataforma, o armada en el momento si falta."""
        url = task.urls.get(self.platform)
        if url:
            return url
        builder = URL_BUILDERS[self.platform]
        return builder(task.origin, task.destination, task.outbound_date, task.return_date)

    async def extract(self, browser: Browser, task: SearchTask) -> ExtractedPrice | None:
        context = None
        page = None
        try:
            url = self.url_for(task)
            context = await browser.new_context(
                user_agent=self.settings.user_agent,
                locale=self.settings.locale,
                viewport={"width": 1920, "height": 1080},
            )
            page = await context.new_page()

            logger.info("  → %s: %s", self.platform, url)
            try:
                await page.goto(
                    url,
                    wait_until="domcontentloaded",
                    timeout=self.settings.navigation_timeout_ms,
                )
            except PlaywrightTimeoutError:
                logger.warning("  %s: timeout de navegación para %s", self.platform, task.route_key)
                return None

            await self.dismiss_consent(page)
            await self.wait_for_results(page)

            candidate = await self.read_candidate(page)
            price_cents = parse_price(candidate)
            if price_cents is None:
                logger.info(
                    "  %s: sin precio válido para %s (candidato: %r)",
                    self.platform, task.route_key, candidate,
                )
                await self._save_debug_snapshot(page)
                return None

            currency = detect_currency(candidate, self.settings.default_currency)
            logger.info("  ✓ %s: %s %.2f", self.platform, currency, price_cents / 100)
            return ExtractedPrice(
                platform=self.platform,
                price_cents=price_cents,
                currency=currency,
                booking_url=url,
            )

        except Exception as e:
            logger.warning("  %s: error al consultar %s: %s", self.platform, task.route_key, e)
            if page is not None:
                await self._save_debug_snapshot(page)
            return None

        finally:
            if context is not None:
                try:
                    await context.close()
                except Exception as e:
                    logger.debug("  %s: error al cerrar el contexto: %s", self.platform, e)

    async def dismiss_consent(self, page: Page) -> bool:
        """Click the first consent button matching ``consent_labels``.

        Que no haya popup no es un error.
        """
        if not self.consent_labels:
            return False

        pattern = re.compile(
            r"\b(?:" + "|".join(re.escape(label) for label in self.consent_labels) + r")\b",
            re.IGNORECASE,
        )
        try:
            await page.get_by_role("button", name=pattern).first.click(
                timeout=self.settings.consent_timeout_ms,
            )
        except PlaywrightTimeoutError:
            logger.debug("  %s: sin popup de cookies", self.platform)
            return False
        except PlaywrightError as e:
            # El click puede fallar si la página recarga; se sigue leyendo igual
            logger.debug("  %s: no se pudo cerrar el popup de cookies: %s", self.platform, e)
            return False

        logger.info("  ✓ %s: popup de cookies cerrado", self.platform)
        await page.wait_for_timeout(CONSENT_RELOAD_MS)
        return True

    async def wait_for_results(self, page: Page) -> None:
        """Wait for dynamic content. Por defecto, una espera fija."""
        await page.wait_for_timeout(self.settings.settle_seconds * 1000)

    async def read_candidate(self, page: Page) -> str | None:
        """First currency-amount string: structured elements first, then the body."""
        for selector in self.price_selectors:
            for text in await page.locator(selector).all_inner_texts():
                candidate = find_price_candidate(text)
                if candidate:
                    return candidate

        body_text = await page.inner_text("body")
        return find_price_candidate(body_text)

    async def _save_debug_snapshot(self, page: Page) -> None:
        """Screenshot para revisar selectores después. Se pisa en cada corrida."""
        if not self.settings.debug_dir:
            return
        try:
            debug_dir = Path(self.settings.debug_dir)
            debug_dir.mkdir(parents=True, exist_ok=True)
            path = debug_dir / f"{self.platform}-debug.png"
            await page.screenshot(path=str(path), full_page=True)
            logger.info("  💾 Screenshot guardado en %s", path)
        except Exception as e:
            logger.debug("  %s: no se pudo guardar el screenshot: %s", self.platform, e)
