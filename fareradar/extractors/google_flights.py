"""Google Flights price extractor.

Google muestra un popup de consentimiento en Europa (en el idioma del país).
Los resultados aparecen en un div[role="list"], así que además de la espera
fija se espera ese contenedor.
"""

import logging

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from fareradar.extractors.base import BaseExtractor

logger = logging.getLogger(__name__)

RESULTS_SELECTOR = 'div[role="list"]'
RESULTS_TIMEOUT_MS = 10_000


class GoogleFlightsExtractor(BaseExtractor):
    """Extractor for Google Flights search pages."""

    consent_labels = (
        "Reject all",
        "Respinge tot",
        "Alle ablehnen",
        "Tout refuser",
        "Rechazar todo",
        "Rifiuta tutto",
        "Alles afwijzen",
    )

    @property
    def platform(self) -> str:
        return "google"

    async def wait_for_results(self, page: Page) -> None:
        await super().wait_for_results(page)
        try:
            await page.wait_for_selector(RESULTS_SELECTOR, timeout=RESULTS_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            logger.info("  google: lista de resultados no encontrada, leyendo igual...")
