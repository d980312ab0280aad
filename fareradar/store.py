"""Persistence store for searches, user budgets and price results.

Tablas:
- user_preferences: presupuesto y configuración de alertas (solo lectura acá)
- flight_searches: una fila por búsqueda a chequear (ruta + fechas + URLs)
- flight_results: una fila por precio encontrado en una plataforma
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    func,
)
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from fareradar.models import (
    PriceObservation,
    SearchStatus,
    SearchTask,
    UserBudget,
    utc_now,
)

logger = logging.getLogger(__name__)

Base = declarative_base()


# =======================================
# SECTION: MODELS
# =======================================

class UserPreference(Base):
    __tablename__ = "user_preferences"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(100), unique=True, index=True, nullable=False)

    # En centavos (6000 = €60)
    max_price_round_trip = Column(Integer, nullable=True)
    preferred_currency = Column(String(3), nullable=False, default="EUR")

    alert_enabled = Column(Boolean, nullable=False, default=True)
    alert_email = Column(String(255), nullable=False)

    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)


class FlightSearch(Base):
    __tablename__ = "flight_searches"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(100), index=True, nullable=False)

    origin = Column(String(3), nullable=False)
    destination = Column(String(3), nullable=False)
    destination_city = Column(String(100), nullable=False)
    outbound_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)

    google_flights_url = Column(Text, nullable=True)
    skyscanner_url = Column(Text, nullable=True)
    kayak_url = Column(Text, nullable=True)

    status = Column(String(20), index=True, nullable=False, default=SearchStatus.PENDING)
    last_checked_at = Column(DateTime, nullable=True)
    next_check_at = Column(DateTime, index=True, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utc_now)


class FlightResult(Base):
    __tablename__ = "flight_results"

    id = Column(Integer, primary_key=True)
    search_id = Column(
        String(36), ForeignKey("flight_searches.id", ondelete="CASCADE"), index=True,
    )
    user_id = Column(String(100), index=True, nullable=False)

    origin = Column(String(3), nullable=False)
    destination = Column(String(3), nullable=False)
    destination_city = Column(String(100), nullable=False)
    outbound_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)

    price_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")
    platform = Column(String(30), nullable=False)
    booking_url = Column(Text, nullable=False)

    is_deal = Column(Boolean, index=True, nullable=False, default=False)
    checked_at = Column(DateTime, nullable=False, default=utc_now)


# Columna de URL por plataforma en flight_searches
URL_COLUMNS: dict[str, str] = {
    "google": "google_flights_url",
    "skyscanner": "skyscanner_url",
    "kayak": "kayak_url",
}


# =======================================
# SECTION: STORE
# =======================================

class SearchStore:
    """Reads due searches and writes price results."""

    def __init__(self, database_url: str) -> None:
        url = make_url(database_url)
        connect_args = {}
        if url.get_backend_name() == "sqlite":
            # La API puede disparar corridas desde otro thread
            connect_args["check_same_thread"] = False
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(
            database_url, pool_pre_ping=True, future=True, connect_args=connect_args,
        )
        self.Session = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init_schema(self) -> None:
        """Create missing tables."""
        logger.info("Inicializando esquema en %s", self.engine.url.render_as_string())
        Base.metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------

    def select_due(self, now: datetime, limit: int) -> list[SearchTask]:
        """Return up to ``limit`` pending searches whose check time has passed.

        Una búsqueda está lista si status='pending' y next_check_at es NULL
        o anterior a ``now``. Primero reabre las que ya cumplieron su backoff.
        Las más viejas primero.
        """
        self.reopen_elapsed(now)

        with self.Session() as session:
            rows = (
                session.query(FlightSearch, UserPreference)
                .join(UserPreference, UserPreference.user_id == FlightSearch.user_id)
                .filter(FlightSearch.status == SearchStatus.PENDING)
                .filter(
                    (FlightSearch.next_check_at.is_(None))
                    | (FlightSearch.next_check_at < now)
                )
                .order_by(
                    func.coalesce(FlightSearch.next_check_at, FlightSearch.created_at),
                    FlightSearch.id,
                )
                .limit(limit)
                .all()
            )
            tasks = [_to_task(search, prefs) for search, prefs in rows]

        logger.info("Búsquedas pendientes seleccionadas: %d", len(tasks))
        return tasks

    def get_search(self, search_id: str) -> SearchTask | None:
        """Load one search (any status) joined with its owner's budget."""
        with self.Session() as session:
            row = (
                session.query(FlightSearch, UserPreference)
                .join(UserPreference, UserPreference.user_id == FlightSearch.user_id)
                .filter(FlightSearch.id == search_id)
                .first()
            )
            if row is None:
                return None
            return _to_task(*row)

    def list_results(self, search_id: str) -> list[PriceObservation]:
        """Price results recorded for one search, oldest first."""
        with self.Session() as session:
            rows = (
                session.query(FlightResult)
                .filter(FlightResult.search_id == search_id)
                .order_by(FlightResult.id)
                .all()
            )
            return [_to_observation(r) for r in rows]

    # ------------------------------------------------------------------
    # Escritura
    # ------------------------------------------------------------------

    def reopen_elapsed(self, now: datetime) -> int:
        """Move terminal searches whose backoff has elapsed back to pending."""
        with self.Session() as session:
            count = (
                session.query(FlightSearch)
                .filter(FlightSearch.status.in_(SearchStatus.TERMINAL))
                .filter(FlightSearch.next_check_at.is_not(None))
                .filter(FlightSearch.next_check_at < now)
                .update({FlightSearch.status: SearchStatus.PENDING}, synchronize_session=False)
            )
            session.commit()

        if count:
            logger.info("Reabiertas %d búsquedas con backoff cumplido.", count)
        return count

    def save_observations(self, observations: list[PriceObservation]) -> int:
        """Insert one ``flight_results`` row per observation."""
        if not observations:
            return 0

        with self.Session() as session:
            session.add_all(
                FlightResult(
                    search_id=obs.search_id,
                    user_id=obs.user_id,
                    origin=obs.origin,
                    destination=obs.destination,
                    destination_city=obs.destination_city,
                    outbound_date=obs.outbound_date,
                    return_date=obs.return_date,
                    price_cents=obs.price_cents,
                    currency=obs.currency,
                    platform=obs.platform,
                    booking_url=obs.booking_url,
                    is_deal=obs.is_deal,
                    checked_at=obs.observed_at,
                )
                for obs in observations
            )
            session.commit()

        logger.info("Guardados %d precios.", len(observations))
        return len(observations)

    def mark_checked(
        self,
        search_id: str,
        status: str,
        checked_at: datetime,
        backoff: timedelta,
    ) -> datetime:
        """Set the terminal status and push ``next_check_at`` by ``backoff``.

        Devuelve el nuevo next_check_at.
        """
        if status not in SearchStatus.TERMINAL:
            raise ValueError(f"Not a terminal status: {status!r}")

        next_check_at = checked_at + backoff
        with self.Session() as session:
            updated = (
                session.query(FlightSearch)
                .filter(FlightSearch.id == search_id)
                .update(
                    {
                        FlightSearch.status: status,
                        FlightSearch.last_checked_at: checked_at,
                        FlightSearch.next_check_at: next_check_at,
                    },
                    synchronize_session=False,
                )
            )
            session.commit()

        if not updated:
            logger.warning("Búsqueda %s no encontrada al marcar %s.", search_id, status)
        return next_check_at


def _to_task(search: FlightSearch, prefs: UserPreference) -> SearchTask:
    urls = {
        platform: getattr(search, column)
        for platform, column in URL_COLUMNS.items()
        if getattr(search, column)
    }
    return SearchTask(
        id=search.id,
        user_id=search.user_id,
        origin=search.origin,
        destination=search.destination,
        destination_city=search.destination_city,
        outbound_date=search.outbound_date,
        return_date=search.return_date,
        urls=urls,
        status=search.status,
        last_checked_at=search.last_checked_at,
        next_check_at=search.next_check_at,
        budget=UserBudget(
            user_id=prefs.user_id,
            max_price_cents=prefs.max_price_round_trip,
            alert_enabled=bool(prefs.alert_enabled),
            alert_email=prefs.alert_email,
            currency=prefs.preferred_currency or "EUR",
        ),
    )


def _to_observation(row: FlightResult) -> PriceObservation:
    return PriceObservation(
        search_id=row.search_id,
        user_id=row.user_id,
        platform=row.platform,
        price_cents=row.price_cents,
        currency=row.currency,
        booking_url=row.booking_url,
        is_deal=bool(row.is_deal),
        origin=row.origin,
        destination=row.destination,
        destination_city=row.destination_city,
        outbound_date=row.outbound_date,
        return_date=row.return_date,
        observed_at=row.checked_at,
    )
