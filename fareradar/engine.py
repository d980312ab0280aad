"""Main orchestration engine.

Coordina una corrida completa: elige las búsquedas pendientes, las chequea
una por una en todas las plataformas con un único navegador, guarda los
precios, junta las ofertas por usuario y al final manda un aviso por usuario.
Es secuencial: un navegador, una página a la vez, pausas fijas.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from datetime import timedelta

from playwright.async_api import Browser

from fareradar.aggregator import DealBatch
from fareradar.browser import launch_browser
from fareradar.extractors import PriceSource, build_extractors
from fareradar.models import (
    AppSettings,
    BatchSummary,
    ExtractedPrice,
    PriceObservation,
    SearchStatus,
    SearchTask,
    utc_now,
)
from fareradar.notifier import AlertDispatcher
from fareradar.store import SearchStore

logger = logging.getLogger(__name__)

BrowserFactory = Callable[[AppSettings], AbstractAsyncContextManager[Browser]]


class SearchNotFoundError(LookupError):
    """The requested search id does not exist (or its owner has no preferences)."""


class BatchRunner:
    """Runs the price check over all due searches, one at a time."""

    def __init__(
        self,
        store: SearchStore,
        settings: AppSettings,
        dispatcher: AlertDispatcher,
        sources: list[PriceSource] | None = None,
        browser_factory: BrowserFactory = launch_browser,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.settings = settings
        self.dispatcher = dispatcher
        self.sources = sources if sources is not None else build_extractors(settings)
        self.browser_factory = browser_factory
        self._sleep = sleep

    async def run_once(self) -> BatchSummary:
        """Execute one full scheduled run.

        Flujo:
        1. Seleccionar búsquedas pendientes (máximo batch_size)
        2. Lanzar un navegador compartido
        3. Para cada búsqueda: plataformas en orden, guardar, juntar ofertas, marcar estado
        4. Cerrar el navegador
        5. Un aviso por usuario con todas sus ofertas
        """
        logger.info("🚀 Iniciando chequeo de precios...")
        summary = BatchSummary()

        # La base es sincrónica: se consulta fuera del event loop
        tasks = await asyncio.to_thread(
            self.store.select_due, utc_now(), self.settings.batch_size,
        )
        if not tasks:
            logger.info("✅ No hay búsquedas pendientes.")
            return summary

        logger.info("📋 %d búsquedas para chequear", len(tasks))
        batch = DealBatch()

        async with self.browser_factory(self.settings) as browser:
            for index, task in enumerate(tasks):
                if index:
                    # Pausa entre búsquedas, pase lo que pase con la anterior
                    await self._sleep(self.settings.delay_between_tasks_seconds)
                self._count(summary, *await self._check_task(browser, task, batch))

        # Recién con la corrida completa: cada aviso refleja todo lo encontrado
        logger.info("📬 %d usuarios con ofertas", len(batch))
        summary.notifications = await self.dispatcher.dispatch(batch)

        logger.info(
            "━━━ Resumen: %d completadas, %d fallidas, %d precios, %d avisos ━━━",
            summary.processed, summary.failed, summary.observations, summary.notifications,
        )
        return summary

    async def check_search(self, search_id: str) -> BatchSummary:
        """Check one search on demand, outside the schedule.

        Usa el mismo paso por búsqueda que la corrida programada, con su
        propio lote de ofertas, y avisa con la variante de una sola oferta.

        Raises:
            SearchNotFoundError: Si la búsqueda no existe.
        """
        task = await asyncio.to_thread(self.store.get_search, search_id)
        if task is None:
            raise SearchNotFoundError(search_id)

        summary = BatchSummary()
        batch = DealBatch()
        async with self.browser_factory(self.settings) as browser:
            self._count(summary, *await self._check_task(browser, task, batch))

        summary.notifications = await self.dispatcher.dispatch(batch, single_variant=True)
        return summary

    async def _check_task(
        self, browser: Browser, task: SearchTask, batch: DealBatch,
    ) -> tuple[str, int]:
        """Check one search on every platform and record its terminal status.

        Devuelve (estado, cantidad de precios guardados). Si algo falla acá
        (no en los extractores, que nunca fallan) la búsqueda queda 'failed'.
        Un error al marcar el estado sí se propaga y corta la corrida.
        """
        logger.info(
            "🔍 Chequeando: %s → %s (%s) el %s",
            task.origin, task.destination_city, task.destination, task.outbound_date,
        )

        saved = 0
        try:
            found = await self._collect_prices(browser, task)

            observed_at = utc_now()
            observations = [
                PriceObservation.from_extracted(task, price, observed_at) for price in found
            ]
            saved = await asyncio.to_thread(self.store.save_observations, observations)

            if found:
                best = min(found, key=lambda p: p.price_cents)
                if task.budget.alert_enabled and task.budget.is_deal(best.price_cents):
                    batch.add(task, best)
            else:
                logger.info("  Ninguna plataforma devolvió precio para %s", task.route_key)

            status = SearchStatus.COMPLETED
        except Exception as e:
            logger.error("❌ Falló la búsqueda %s: %s", task.id, e, exc_info=True)
            status = SearchStatus.FAILED

        await asyncio.to_thread(
            self.store.mark_checked,
            task.id, status, utc_now(), timedelta(hours=self.settings.backoff_hours),
        )
        return status, saved

    async def _collect_prices(self, browser: Browser, task: SearchTask) -> list[ExtractedPrice]:
        """Run every platform in declared order, pausing between them."""
        found: list[ExtractedPrice] = []
        for index, source in enumerate(self.sources):
            if index:
                await self._sleep(self.settings.delay_between_platforms_seconds)
            price = await source.extract(browser, task)
            if price is not None:
                found.append(price)
        return found

    @staticmethod
    def _count(summary: BatchSummary, status: str, saved: int) -> None:
        if status == SearchStatus.COMPLETED:
            summary.processed += 1
        else:
            summary.failed += 1
        summary.observations += saved
