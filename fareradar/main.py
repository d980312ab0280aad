"""Entry point for the fare radar.

Punto de entrada principal. Carga la configuración y las variables de
entorno, y ejecuta la corrida, el chequeo puntual o el servidor HTTP.

Uso:
    python -m fareradar.main run                # Corrida programada (cron)
    python -m fareradar.main run --dry-run      # Imprime los avisos en consola
    python -m fareradar.main check SEARCH_ID    # Chequea una sola búsqueda
    python -m fareradar.main serve --port 8000  # Expone los triggers por HTTP
    python -m fareradar.main trips friday sunday --months 2 --route AMS-BCN
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from fareradar.config import database_url, load_config
from fareradar.dates import enumerate_trips, format_date_range
from fareradar.engine import BatchRunner, SearchNotFoundError
from fareradar.models import AppSettings
from fareradar.notifier import (
    DEFAULT_FROM_EMAIL,
    AlertDispatcher,
    ConsoleSender,
    EmailSender,
    NotificationSender,
)
from fareradar.store import SearchStore
from fareradar.urls import search_urls

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Logging con formato legible, una sola vez por proceso."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_sender(dry_run: bool) -> NotificationSender:
    """Email sender from the environment, or the console in dry-run mode.

    Raises:
        ValueError: Si falta RESEND_API_KEY fuera de dry-run.
    """
    if dry_run:
        return ConsoleSender()

    api_key = os.getenv("RESEND_API_KEY")
    if not api_key:
        raise ValueError(
            "RESEND_API_KEY es requerida en modo producción. "
            "Configurá el archivo .env o las variables de entorno. "
            "Usá --dry-run para probar sin enviar emails."
        )
    return EmailSender(api_key, os.getenv("ALERT_FROM_EMAIL") or DEFAULT_FROM_EMAIL)


def build_runner(settings: AppSettings, dry_run: bool = False) -> BatchRunner:
    store = SearchStore(database_url())
    store.init_schema()
    return BatchRunner(store, settings, AlertDispatcher(build_sender(dry_run)))


async def run(settings: AppSettings, dry_run: bool = False) -> int:
    """Scheduled run. Devuelve el exit code."""
    logger.info("🛫 Fare radar iniciando...")
    logger.info("Modo: %s", "DRY RUN (sin emails)" if dry_run else "PRODUCCIÓN")

    runner = build_runner(settings, dry_run)
    try:
        summary = await runner.run_once()
    except Exception as e:
        logger.error("Error fatal en el engine: %s", e, exc_info=True)
        return 1

    logger.info(
        "✅ Fare radar finalizado. Procesadas: %d, fallidas: %d",
        summary.processed, summary.failed,
    )
    return 0


async def check(settings: AppSettings, search_id: str, dry_run: bool = False) -> int:
    """On-demand check of one search. Devuelve el exit code."""
    runner = build_runner(settings, dry_run)
    try:
        summary = await runner.check_search(search_id)
    except SearchNotFoundError:
        logger.error("Búsqueda %s no encontrada.", search_id)
        return 1
    except Exception as e:
        logger.error("Error fatal chequeando %s: %s", search_id, e, exc_info=True)
        return 1

    # Solo los precios de este chequeo (los últimos guardados)
    results = runner.store.list_results(search_id)
    for obs in results[len(results) - summary.observations:]:
        print(f"{obs.platform:<12} {obs.currency} {obs.price_cents / 100:>8.2f}  {obs.booking_url}")
    return 0 if summary.failed == 0 else 1


def serve(settings: AppSettings, host: str, port: int, dry_run: bool = False) -> None:
    """Run the HTTP trigger server."""
    import uvicorn

    from fareradar.api import create_app
    from fareradar.trigger import RunTrigger

    store = SearchStore(database_url())
    store.init_schema()
    dispatcher = AlertDispatcher(build_sender(dry_run))
    trigger = RunTrigger(lambda: BatchRunner(store, settings, dispatcher))
    uvicorn.run(create_app(trigger), host=host, port=port)


def print_trips(outbound: str, return_day: str, months: int, route: str | None) -> None:
    """Print the enumerated date pairs (and the search URLs if a route is given)."""
    trips = enumerate_trips(outbound, return_day, months)
    origin, destination = route.upper().split("-", 1) if route else (None, None)

    for out_date, ret_date in trips:
        print(format_date_range(out_date, ret_date))
        if origin and destination:
            for platform, url in search_urls(origin, destination, out_date, ret_date).items():
                print(f"  {platform}: {url}")
    print(f"\n{len(trips)} combinaciones")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fare radar — Busca precios de vuelos y avisa por email",
    )
    parser.add_argument("--config", type=Path, default=None, help="Ruta a settings.json")
    sub = parser.add_subparsers(dest="command", required=True)

    run_parser = sub.add_parser("run", help="Chequea todas las búsquedas pendientes")
    run_parser.add_argument(
        "--dry-run", action="store_true",
        help="Modo prueba: imprime los avisos en consola sin enviar emails",
    )

    check_parser = sub.add_parser("check", help="Chequea una sola búsqueda ahora")
    check_parser.add_argument("search_id")
    check_parser.add_argument("--dry-run", action="store_true")

    serve_parser = sub.add_parser("serve", help="Levanta el servidor HTTP de triggers")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--dry-run", action="store_true")

    trips_parser = sub.add_parser("trips", help="Lista combinaciones de fechas")
    trips_parser.add_argument("outbound", help="Día de ida (ej: friday)")
    trips_parser.add_argument("return_day", help="Día de vuelta (ej: sunday)")
    trips_parser.add_argument("--months", type=int, default=3)
    trips_parser.add_argument("--route", help="ORIGEN-DESTINO para mostrar URLs (ej: AMS-BCN)")

    return parser


def cli(argv: list[str] | None = None) -> int:
    # Cargar .env para ejecución local (en producción se usan variables de entorno)
    load_dotenv()
    configure_logging()

    args = build_parser().parse_args(argv)

    if args.command == "trips":
        try:
            print_trips(args.outbound, args.return_day, args.months, args.route)
        except ValueError as e:
            logger.error("%s", e)
            return 1
        return 0

    # DRY_RUN puede venir del CLI o de la variable de entorno
    dry_run = args.dry_run or os.getenv("DRY_RUN", "false").lower() == "true"

    try:
        settings = load_config(args.config)
        if args.command == "serve":
            serve(settings, args.host, args.port, dry_run)
            return 0
        if args.command == "check":
            return asyncio.run(check(settings, args.search_id, dry_run))
        return asyncio.run(run(settings, dry_run))
    except (FileNotFoundError, ValueError) as e:
        logger.error("Error de configuración: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(cli())
