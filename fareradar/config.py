"""Configuration loading and validation.

Carga los settings desde config/settings.json. Valida que los valores
tengan sentido y que las plataformas pedidas tengan extractor implementado.
Los secretos (API keys, URL de la base) vienen de variables de entorno.
"""

import json
import logging
import os
from pathlib import Path

from fareradar.models import AppSettings

logger = logging.getLogger(__name__)

# Plataformas que tienen extractor implementado
VALID_PLATFORMS = ("google", "skyscanner", "kayak")

# Ruta al archivo de configuración (relativa a la raíz del proyecto)
CONFIG_PATH = Path(__file__).parent.parent / "config" / "settings.json"

DEFAULT_DATABASE_URL = "sqlite:///data/fareradar.db"


def load_config(config_path: Path | None = None) -> AppSettings:
    """Load settings from the config file.

    Si no se pasa ruta y el archivo por defecto no existe, usa los valores
    por defecto de AppSettings.

    Raises:
        FileNotFoundError: Si se pasó una ruta explícita que no existe.
        ValueError: Si la configuración es inválida.
    """
    path = config_path or CONFIG_PATH

    if not path.exists():
        if config_path is not None:
            raise FileNotFoundError(
                f"Config file not found: {path}. "
                f"Copiá config/settings.json.example a config/settings.json y editalo."
            )
        logger.info("Sin %s, usando configuración por defecto.", path)
        return AppSettings()

    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    settings = _parse_settings(raw.get("settings", {}))
    settings.platforms = _parse_platforms(raw.get("platforms", list(VALID_PLATFORMS)))

    logger.info(
        "Configuración cargada: lote=%d, backoff=%dh, plataformas=%s",
        settings.batch_size,
        settings.backoff_hours,
        ", ".join(settings.platforms),
    )
    return settings


def _parse_platforms(raw_platforms: list[str]) -> list[str]:
    """Keep only known platforms, preserving the declared order."""
    platforms = [p.lower().strip() for p in raw_platforms]
    invalid = set(platforms) - set(VALID_PLATFORMS)
    if invalid:
        logger.warning(
            "Plataformas inválidas %s (válidas: %s), salteando.",
            sorted(invalid), ", ".join(VALID_PLATFORMS),
        )

    result: list[str] = []
    for platform in platforms:
        if platform in VALID_PLATFORMS and platform not in result:
            result.append(platform)

    if not result:
        raise ValueError("No hay plataformas válidas en la configuración.")
    return result


def _parse_settings(raw: dict) -> AppSettings:
    """Parse global settings with defaults.

    Si falta alguno, usa el valor por defecto de AppSettings.
    """
    defaults = AppSettings()

    settings = AppSettings(
        batch_size=int(raw.get("batch_size", defaults.batch_size)),
        backoff_hours=int(raw.get("backoff_hours", defaults.backoff_hours)),
        delay_between_platforms_seconds=float(
            raw.get("delay_between_platforms_seconds", defaults.delay_between_platforms_seconds)
        ),
        delay_between_tasks_seconds=float(
            raw.get("delay_between_tasks_seconds", defaults.delay_between_tasks_seconds)
        ),
        navigation_timeout_ms=int(
            raw.get("navigation_timeout_ms", defaults.navigation_timeout_ms)
        ),
        consent_timeout_ms=int(raw.get("consent_timeout_ms", defaults.consent_timeout_ms)),
        settle_seconds=float(raw.get("settle_seconds", defaults.settle_seconds)),
        headless=bool(raw.get("headless", defaults.headless)),
        user_agent=raw.get("user_agent", defaults.user_agent),
        locale=raw.get("locale", defaults.locale),
        default_currency=str(raw.get("default_currency", defaults.default_currency)).upper(),
        debug_dir=raw.get("debug_dir", defaults.debug_dir),
    )

    if settings.batch_size <= 0:
        raise ValueError("batch_size tiene que ser mayor a 0")
    if settings.backoff_hours <= 0:
        raise ValueError("backoff_hours tiene que ser mayor a 0")
    if settings.delay_between_platforms_seconds < 0 or settings.delay_between_tasks_seconds < 0:
        raise ValueError("Los delays no pueden ser negativos")

    return settings


def database_url() -> str:
    """Database URL from ``DATABASE_URL``, with a local SQLite default.

    Igual que en Heroku/Dokku, 'postgres://' se normaliza para SQLAlchemy 2.
    """
    url = os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg2://", 1)
    return url
