"""On-demand run triggers.

"Correr ahora": arranca la corrida en segundo plano y responde enseguida con
un mensaje. Los resultados se consultan en la base, no en la respuesta.
Hay un solo trabajo a la vez por proceso; si ya hay uno corriendo, no se
arranca otro (el llamado es idempotente).
"""

import asyncio
import logging
from collections.abc import Callable

from fareradar.engine import BatchRunner, SearchNotFoundError

logger = logging.getLogger(__name__)

RUN_STARTED = "Flight search started! Results will appear in a few minutes. Refresh to see them."
CHECK_STARTED = "Search {search_id} queued. Results will appear shortly."
ALREADY_RUNNING = "A flight search is already running. Results will appear when it finishes."


class RunTrigger:
    """Starts background runs, never more than one at a time."""

    def __init__(self, runner_factory: Callable[[], BatchRunner]) -> None:
        self.runner_factory = runner_factory
        self._job: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._job is not None and not self._job.done()

    def run_now(self) -> str:
        """Start a scheduled-style run over all due searches."""
        if self.is_running:
            logger.info("Pedido de corrida ignorado: ya hay una en curso.")
            return ALREADY_RUNNING

        runner = self.runner_factory()
        self._start(runner.run_once(), "run_once")
        return RUN_STARTED

    async def check_now(self, search_id: str) -> str:
        """Start an ad-hoc check of a single search.

        Raises:
            SearchNotFoundError: Si la búsqueda no existe (se valida antes de encolar).
        """
        if self.is_running:
            logger.info("Pedido de chequeo de %s ignorado: ya hay una corrida en curso.", search_id)
            return ALREADY_RUNNING

        runner = self.runner_factory()
        if await asyncio.to_thread(runner.store.get_search, search_id) is None:
            raise SearchNotFoundError(search_id)
        if self.is_running:
            return ALREADY_RUNNING
        self._start(runner.check_search(search_id), f"check_search:{search_id}")
        return CHECK_STARTED.format(search_id=search_id)

    async def wait(self) -> None:
        """Wait for the current job, if any (útil en tests y al apagar)."""
        if self._job is not None:
            await asyncio.gather(self._job, return_exceptions=True)

    def _start(self, coro, name: str) -> None:
        logger.info("Iniciando trabajo en segundo plano: %s", name)
        self._job = asyncio.get_running_loop().create_task(coro, name=name)
        self._job.add_done_callback(_log_job_result)


def _log_job_result(job: asyncio.Task) -> None:
    if job.cancelled():
        logger.warning("Trabajo %s cancelado.", job.get_name())
        return
    error = job.exception()
    if error is not None:
        logger.error(
            "Trabajo %s falló: %s", job.get_name(), error, exc_info=error,
        )
        return
    logger.info("Trabajo %s terminado: %s", job.get_name(), job.result())
