"""Shared headless browser for a whole run.

Se lanza un solo Chromium por corrida; cada extractor abre su propio
contexto aislado sobre este navegador y lo cierra al terminar.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from playwright.async_api import Browser, async_playwright

from fareradar.models import AppSettings

logger = logging.getLogger(__name__)

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


@asynccontextmanager
async def launch_browser(settings: AppSettings) -> AsyncIterator[Browser]:
    """Launch Chromium and close it on exit, even if the run crashes."""
    logger.info("🌐 Lanzando navegador (headless=%s)...", settings.headless)
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(
            headless=settings.headless, args=CHROMIUM_ARGS,
        )
        try:
            yield browser
        finally:
            await browser.close()
            logger.info("Navegador cerrado.")
