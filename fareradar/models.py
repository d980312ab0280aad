"""Shared data models for the fare radar."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone

CURRENCY_SYMBOLS: dict[str, str] = {"EUR": "€", "USD": "$", "GBP": "£"}


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (así se guarda en la base)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_price(price_cents: int, currency: str) -> str:
    """Formatted price for display. Ej: '€45.50' o 'USD 120.00'."""
    symbol = CURRENCY_SYMBOLS.get(currency)
    amount = price_cents / 100
    if symbol:
        return f"{symbol}{amount:,.2f}"
    return f"{currency} {amount:,.2f}"


class SearchStatus:
    """Possible values of ``flight_searches.status``."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    TERMINAL = (COMPLETED, FAILED)


@dataclass
class UserBudget:
    """Read-only projection of a user's alert settings.

    Proyección de las preferencias del usuario: presupuesto máximo ida y vuelta
    (en centavos), si tiene alertas activas y a dónde mandarlas.
    """

    user_id: str
    max_price_cents: int | None  # None = sin presupuesto, nunca hay "deal"
    alert_enabled: bool
    alert_email: str
    currency: str = "EUR"

    def is_deal(self, price_cents: int) -> bool:
        """True si el precio está en o por debajo del presupuesto."""
        if self.max_price_cents is None:
            return False
        return price_cents <= self.max_price_cents


@dataclass
class SearchTask:
    """One scheduled (route, date pair) price check for one user.

    Una búsqueda concreta: origen/destino, fechas, y las URLs de cada plataforma.
    Viene de la tabla flight_searches unida con las preferencias del dueño.
    """

    id: str
    user_id: str
    origin: str  # Código IATA
    destination: str  # Código IATA
    destination_city: str  # Nombre para mostrar ("Barcelona")
    outbound_date: date
    return_date: date | None
    budget: UserBudget
    urls: dict[str, str] = field(default_factory=dict)  # {"google": ..., "kayak": ...}
    status: str = SearchStatus.PENDING
    last_checked_at: datetime | None = None
    next_check_at: datetime | None = None

    @property
    def route_key(self) -> str:
        """Clave legible de ruta+fechas, para logs."""
        key = f"{self.origin}-{self.destination}-{self.outbound_date.isoformat()}"
        if self.return_date:
            key += f"-{self.return_date.isoformat()}"
        return key


@dataclass
class ExtractedPrice:
    """Price read from one platform's page, already validated by the parser."""

    platform: str  # "google", "skyscanner", "kayak"
    price_cents: int
    currency: str
    booking_url: str


@dataclass
class PriceObservation:
    """One price found on one platform for one search.

    Un hecho: "en esta plataforma, para esta búsqueda, vimos este precio".
    No se deduplican entre plataformas.
    """

    search_id: str
    user_id: str
    platform: str
    price_cents: int
    currency: str
    booking_url: str
    is_deal: bool
    origin: str = ""
    destination: str = ""
    destination_city: str = ""
    outbound_date: date | None = None
    return_date: date | None = None
    observed_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_extracted(
        cls,
        task: SearchTask,
        extracted: ExtractedPrice,
        observed_at: datetime | None = None,
    ) -> "PriceObservation":
        """Build an observation for ``task``, deciding ``is_deal`` right now."""
        return cls(
            search_id=task.id,
            user_id=task.user_id,
            platform=extracted.platform,
            price_cents=extracted.price_cents,
            currency=extracted.currency,
            booking_url=extracted.booking_url,
            is_deal=task.budget.is_deal(extracted.price_cents),
            origin=task.origin,
            destination=task.destination,
            destination_city=task.destination_city,
            outbound_date=task.outbound_date,
            return_date=task.return_date,
            observed_at=observed_at or utc_now(),
        )


@dataclass
class DealSummary:
    """A qualifying fare as it appears in an alert."""

    search_id: str
    origin: str
    destination: str
    destination_city: str
    outbound_date: date
    return_date: date | None
    price_cents: int
    currency: str
    platform: str  # Plataforma que dio el mejor precio
    booking_urls: dict[str, str] = field(default_factory=dict)

    @property
    def display_price(self) -> str:
        return format_price(self.price_cents, self.currency)

    @property
    def booking_url(self) -> str:
        """Link de la plataforma ganadora (o el primero que haya)."""
        if self.platform in self.booking_urls:
            return self.booking_urls[self.platform]
        return next(iter(self.booking_urls.values()), "")


@dataclass
class BatchSummary:
    """Counts of searches that reached each terminal status in a run."""

    processed: int = 0
    failed: int = 0
    observations: int = 0
    notifications: int = 0

    @property
    def total(self) -> int:
        return self.processed + self.failed


@dataclass
class AppSettings:
    """Global application settings loaded from config.

    Configuración global: tamaño del lote, backoff, pausas entre plataformas
    y entre búsquedas, timeouts del navegador, etc.
    """

    batch_size: int = 50
    backoff_hours: int = 24
    delay_between_platforms_seconds: float = 2
    delay_between_tasks_seconds: float = 3
    navigation_timeout_ms: int = 30_000
    consent_timeout_ms: int = 5_000
    # Espera fija para que cargue el contenido dinámico (no hay evento confiable)
    settle_seconds: float = 8
    headless: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
    locale: str = "en-GB"
    default_currency: str = "EUR"
    platforms: list[str] = field(
        default_factory=lambda: ["google", "skyscanner", "kayak"]
    )
    # Si está seteado, se guarda un screenshot por plataforma cuando no hay precio
    debug_dir: str | None = None
